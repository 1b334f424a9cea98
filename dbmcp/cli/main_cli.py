"""
Interactive CLI for inspecting and querying a database
"""

import argparse
import sys
from typing import List, Optional

from ..config import Settings, connection_config_from_env, load_connection_file, CONNECTION_FILE
from ..database import ConnectionRegistry, DatabaseError, DatabaseService, ExplainQuery
from ..utils import format_database_layout, format_query_summary, format_table, setup_logging

HELP = """
Commands:
  - Type any SQL statement to run it
  - 'TABLES' - List tables
  - 'SCHEMA <table>' - Show table schema
  - 'EXPLAIN [ANALYZE] <sql>' - Show the execution plan
  - 'EXIT' - Exit
"""


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and query a MySQL or PostgreSQL database")
    parser.add_argument("--config", default=CONNECTION_FILE,
                        help="Connection file (falls back to DB_* environment variables)")
    parser.add_argument("--inspect-only", action="store_true",
                        help="Print the schema and exit")
    return parser.parse_args(argv)


def print_table_schema(layout, table_name: str) -> None:
    table = layout.table(table_name)
    if table is None:
        print(f"Table '{table_name}' not found")
        return

    print(f"\nSchema for {table.name}:")
    print(format_table(
        ["column", "type", "nullable", "default", "primary key"],
        [[c.name, c.type, c.nullable, c.default_value, c.primary_key] for c in table.columns]
    ))
    if table.foreign_keys:
        print("\nForeign Keys:")
        for fk in table.foreign_keys:
            print(f"  - {fk.column} -> {fk.foreign_table}.{fk.foreign_column} ({fk.constraint_name})")


def handle_command(service: DatabaseService, connection_id: str, layout, user_input: str) -> bool:
    """Run one command; returns False when the session should end"""
    command = user_input.upper()

    if command == 'EXIT':
        return False

    if command == 'HELP':
        print(HELP)
    elif command == 'TABLES':
        for table in layout.tables:
            print(f"  {table.name} ({len(table.columns)} columns)")
    elif command.startswith('SCHEMA'):
        parts = user_input.split()
        if len(parts) > 1:
            print_table_schema(layout, parts[1])
        else:
            print("Usage: SCHEMA <table_name>")
    elif command.startswith('EXPLAIN '):
        sql = user_input[len('EXPLAIN '):].strip()
        analyze = sql.upper().startswith('ANALYZE ')
        if analyze:
            sql = sql[len('ANALYZE '):].strip()
        print(format_query_summary(service.explain(connection_id, ExplainQuery(sql=sql, analyze=analyze))))
    else:
        print(format_query_summary(service.execute(connection_id, user_input)))

    return True


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    args = parse_args(argv)
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    service = DatabaseService(ConnectionRegistry(max_size=1, ttl=float('inf')))

    try:
        config = load_connection_file(args.config) or connection_config_from_env()
        print(f"Connecting to {config.engine} database {config.database} at {config.host}...")
        connection_id = service.connect(config)
        layout = service.introspect(connection_id)
    except DatabaseError as e:
        print(f"Error: {e}", file=sys.stderr)
        service.close_all()
        return 1

    print(format_database_layout(layout))
    if args.inspect_only:
        service.close_all()
        return 0

    print(HELP)
    try:
        while True:
            try:
                user_input = input("\nsql> ").strip()
            except EOFError:
                break

            if not user_input:
                continue

            try:
                if not handle_command(service, connection_id, layout, user_input):
                    break
            except DatabaseError as e:
                print(f"Error: {e}")
    except KeyboardInterrupt:
        print("\nSession interrupted.")
    finally:
        service.close_all()

    return 0


if __name__ == "__main__":
    sys.exit(main())
