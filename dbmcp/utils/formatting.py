"""
Markdown rendering of query results and schema layouts
"""

from typing import List, Sequence

from ..database.models import Cell, DatabaseLayout, ExplainResult, QueryResult


def format_cell(cell: Cell) -> str:
    if cell is None:
        return "NULL"
    if isinstance(cell, bool):
        return "true" if cell else "false"
    return str(cell).replace("|", "\\|").replace("\n", " ")


def format_table(headers: Sequence[str], rows: Sequence[Sequence[Cell]]) -> str:
    """Render rows as a markdown table"""
    header_row = " | ".join(headers)
    separator = " | ".join("---" for _ in headers)
    data_rows = [" | ".join(format_cell(cell) for cell in row) for row in rows]
    return "\n".join([header_row, separator, *data_rows])


def format_database_layout(layout: DatabaseLayout) -> str:
    """Render tables, columns and foreign keys as text"""
    table_blocks: List[str] = []
    for table in layout.tables:
        column_defs = []
        for col in table.columns:
            flags = []
            if col.primary_key:
                flags.append("PK")
            if not col.nullable:
                flags.append("NOT NULL")
            suffix = f" ({', '.join(flags)})" if flags else ""
            column_defs.append(f"  {col.name}: {col.type}{suffix}")

        foreign_keys = [
            f"  {fk.column} -> {fk.foreign_table}.{fk.foreign_column}"
            for fk in table.foreign_keys
        ]
        table_blocks.append(
            f"Table: {table.name}\nColumns:\n" + "\n".join(column_defs)
            + "\nForeign Keys:\n" + "\n".join(foreign_keys)
        )

    return f"Database: {layout.name}\n\n" + "\n\n".join(table_blocks)


def format_query_summary(result: QueryResult) -> str:
    if isinstance(result, ExplainResult):
        title = "Query execution plan (with analysis):" if result.with_analysis else "Query execution plan:"
        return f"{title}\n\n{format_table(result.columns, result.rows)}"

    if not result.columns:
        affected = result.affected_rows if result.affected_rows is not None else 0
        return f"Query executed successfully. {affected} row(s) affected."

    return (f"Query executed successfully. {result.row_count} row(s) returned.\n\n"
            f"{format_table(result.columns, result.rows)}")
