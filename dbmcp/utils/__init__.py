"""
Utility functions and helper classes
"""

from .formatting import format_table, format_database_layout, format_query_summary
from .log import setup_logging

__all__ = [
    'format_table',
    'format_database_layout',
    'format_query_summary',
    'setup_logging'
]
