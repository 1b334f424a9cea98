#!/usr/bin/env python3
"""
Main entry point for the database tool CLI
"""

import sys

from dbmcp.cli.main_cli import main

if __name__ == "__main__":
    sys.exit(main())
