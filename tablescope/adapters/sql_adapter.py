"""
SQL export/import text format.

The export is a plain script: per table a DROP/CREATE pair built from the
inferred columns, then one INSERT per row. Nothing here parses SQL; the
import side only splits a script into statements.
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

from ..models import ColumnDescriptor


PROGRESS_EVERY = 100
_RULE = "-- ============================================"


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def sql_literal(value: Any) -> str:
    """Render a JSON value as a SQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):   # bool is an int subclass, check it first
        return "TRUE" if value else "FALSE"
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    if isinstance(value, (dict, list)):
        return "'" + json.dumps(value).replace("'", "''") + "'"
    if isinstance(value, (int, float)):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


def column_definition(col: ColumnDescriptor) -> str:
    definition = f"  {quote_ident(col.name)} {col.type_name}"
    if col.max_length:
        definition += f"({col.max_length})"
    elif col.numeric_precision:
        scale = f",{col.numeric_scale}" if col.numeric_scale else ""
        definition += f"({col.numeric_precision}{scale})"
    if col.nullable == "NO":
        definition += " NOT NULL"
    if col.default_expression:
        definition += f" DEFAULT {col.default_expression}"
    return definition


def create_table_sql(table: str, columns: list[ColumnDescriptor]) -> str:
    lines = [
        f"DROP TABLE IF EXISTS {quote_ident(table)} CASCADE;",
        f"CREATE TABLE {quote_ident(table)} (",
        ",\n".join(column_definition(c) for c in columns),
        ");",
    ]
    return "\n".join(lines) + "\n"


def insert_sql(table: str, row: dict) -> str:
    columns = ", ".join(quote_ident(c) for c in row)
    values = ", ".join(sql_literal(v) for v in row.values())
    return f"INSERT INTO {quote_ident(table)} ({columns}) VALUES ({values});"


def render_script(
    tables: dict[str, dict],
    *,
    include_schema: bool = True,
    include_data: bool = True,
    generated_at: Optional[datetime] = None,
) -> str:
    """
    Render per-table export data as a SQL script.

    `tables` maps table name to {"columns": [ColumnDescriptor], "data": [...],
    "schemaError"?: str, "dataError"?: str}.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    out = [
        "-- Supabase Database Export",
        f"-- Generated on: {generated_at.isoformat()}",
        f"-- Tables exported: {', '.join(tables)}",
        "",
    ]

    for table, info in tables.items():
        out += [_RULE, f"-- Table: {table}", _RULE, ""]

        columns = info.get("columns")
        if include_schema and columns:
            out.append(f"-- Schema for table: {table}")
            out.append(create_table_sql(table, columns))

        rows = info.get("data") or []
        if include_data and rows:
            out.append(f"-- Data for table: {table} ({len(rows)} rows)")
            for index, row in enumerate(rows, start=1):
                out.append(insert_sql(table, row))
                if index % PROGRESS_EVERY == 0:
                    out.append(f"-- Inserted {index} rows so far...")
            out.append("")

        if info.get("schemaError"):
            out.append(f"-- Schema Error: {info['schemaError']}")
        if info.get("dataError"):
            out.append(f"-- Data Error: {info['dataError']}")
        out.append("")

    out.append("-- Export completed")
    return "\n".join(out) + "\n"


def _strip_comment_lines(chunk: str) -> str:
    return "\n".join(
        line for line in chunk.splitlines() if not line.strip().startswith("--")
    ).strip()


def split_statements(script: str) -> list[str]:
    """
    Split a script on ';' into runnable statements.

    Whole-line `--` comments are dropped, and chunks that are blank or
    only comments are skipped. Semicolons inside string literals are not
    recognized.
    """
    statements = []
    for chunk in script.split(";"):
        statement = _strip_comment_lines(chunk)
        if statement:
            statements.append(statement)
    return statements
