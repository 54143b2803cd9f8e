#!/usr/bin/env python3
"""
Command-line entrypoint.

Each invocation connects, runs one operation and exits. Failures are
printed as one line on stderr with exit status 1.
"""
import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from .config import get_settings
from .discovery import run_discovery
from .errors import TablescopeError
from .gateway import connect, disconnect
from .inference import infer_columns
from .logging_config import setup_logging
from .models import ColumnDescriptor
from .records import delete_row, get_page, insert_row, update_row
from .transfer import export_filename, export_tables, import_file


# ─────────────────────────────────────────────
# Presentation helpers
# ─────────────────────────────────────────────

def guess_key_column(columns: Sequence[ColumnDescriptor]) -> Optional[str]:
    """
    Pick the column to scope updates and deletes by.

    `id` first, then any column containing "id", then one defaulting to
    gen_random_uuid(), then the first column.
    """
    for col in columns:
        if col.name == "id":
            return col.name
    for col in columns:
        if "id" in col.name:
            return col.name
    for col in columns:
        if col.default_expression and "gen_random_uuid" in col.default_expression:
            return col.name
    return columns[0].name if columns else None


def filter_rows(rows: list[dict], term: str) -> list[dict]:
    """Rows where any value contains `term`, case-insensitively."""
    if not term:
        return rows
    needle = term.lower()
    return [
        row for row in rows
        if any(needle in str(value).lower() for value in row.values())
    ]


def parse_assignments(pairs: Sequence[str]) -> dict[str, Any]:
    """
    FIELD=VALUE arguments to a row dict.

    Values are read as JSON when they parse (numbers, true/false, null,
    objects); anything else is kept as a string. `FIELD=` yields "" and is
    therefore written as null.
    """
    fields: dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise argparse.ArgumentTypeError(f"Expected FIELD=VALUE, got {pair!r}")
        key, raw = pair.split("=", 1)
        try:
            fields[key] = json.loads(raw) if raw else ""
        except ValueError:
            fields[key] = raw
    return fields


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


# ─────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────

def cmd_tables(conn, args, settings) -> int:
    result = run_discovery(conn, settings=settings)
    if args.verbose:
        print(result.to_json())
    else:
        for name in result.table_names:
            print(name)
    if not result.tables:
        print("No tables found.", file=sys.stderr)
    return 0


def cmd_columns(conn, args, settings) -> int:
    _print_json([c.to_dict() for c in infer_columns(conn, args.table)])
    return 0


def cmd_rows(conn, args, settings) -> int:
    rowset = get_page(conn, args.table, args.page, args.page_size, settings=settings)
    rows = filter_rows(rowset.rows, args.search)
    _print_json({"total_count": rowset.total_count, "page": args.page, "rows": rows})
    return 0


def _key_column(conn, args) -> str:
    if args.key_column:
        return args.key_column
    key = guess_key_column(infer_columns(conn, args.table))
    if not key:
        raise TablescopeError(f'Cannot choose a key column for "{args.table}"; pass --key-column.')
    return key


def cmd_insert(conn, args, settings) -> int:
    insert_row(conn, args.table, parse_assignments(args.fields))
    print("Row inserted.")
    return 0


def cmd_update(conn, args, settings) -> int:
    key = _key_column(conn, args)
    update_row(conn, args.table, parse_assignments(args.fields), key, args.key_value)
    print(f"Row updated ({key} = {args.key_value}).")
    return 0


def cmd_delete(conn, args, settings) -> int:
    key = _key_column(conn, args)
    delete_row(conn, args.table, key, args.key_value)
    print(f"Row deleted ({key} = {args.key_value}).")
    return 0


def cmd_export(conn, args, settings) -> int:
    result = export_tables(
        conn, args.tables, args.format,
        include_schema=not args.no_schema,
        include_data=not args.no_data,
    )
    output = args.output or Path(export_filename(args.format))
    output.write_text(result.content, encoding="utf-8")
    print(f"Exported {len(result.tables_exported)} table(s) to {output}")
    for error in result.errors:
        print(f"  • {error}", file=sys.stderr)
    return 0 if result.success else 1


def cmd_import(conn, args, settings) -> int:
    result = import_file(conn, args.file.name, args.file.read_text(encoding="utf-8"), settings=settings)
    if result.tables_processed:
        print(f"Tables processed: {result.tables_processed}")
        print(f"Rows inserted: {result.rows_inserted}")
    if result.statements_executed or not result.tables_processed:
        print(f"SQL statements executed: {result.statements_executed}")
    if result.errors:
        print(f"Import completed with {len(result.errors)} error(s):", file=sys.stderr)
        for error in result.errors[:10]:
            print(f"  • {error}", file=sys.stderr)
        if len(result.errors) > 10:
            print(f"  • ... and {len(result.errors) - 10} more errors", file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tablescope", description="Browse and edit a hosted REST database.")
    parser.add_argument("--url", default=os.environ.get("TABLESCOPE_URL"), help="Project URL (or TABLESCOPE_URL)")
    parser.add_argument("--key", default=os.environ.get("TABLESCOPE_KEY"), help="API key (or TABLESCOPE_KEY)")
    parser.add_argument("--name", default=None, help="Display name for the connection")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("tables", help="Discover accessible tables")
    p.add_argument("--verbose", action="store_true", help="Print the full discovery report")
    p.set_defaults(handler=cmd_tables)

    p = sub.add_parser("columns", help="Infer the columns of a table")
    p.add_argument("table")
    p.set_defaults(handler=cmd_columns)

    p = sub.add_parser("rows", help="Show one page of rows")
    p.add_argument("table")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--page-size", type=int, default=None)
    p.add_argument("--search", default="", help="Case-insensitive filter over the page's values")
    p.set_defaults(handler=cmd_rows)

    p = sub.add_parser("insert", help="Insert a row")
    p.add_argument("table")
    p.add_argument("fields", nargs="+", metavar="FIELD=VALUE")
    p.set_defaults(handler=cmd_insert)

    p = sub.add_parser("update", help="Update the row(s) matching a key")
    p.add_argument("table")
    p.add_argument("fields", nargs="+", metavar="FIELD=VALUE")
    p.add_argument("--key-column", default=None)
    p.add_argument("--key-value", required=True)
    p.set_defaults(handler=cmd_update)

    p = sub.add_parser("delete", help="Delete the row(s) matching a key")
    p.add_argument("table")
    p.add_argument("--key-column", default=None)
    p.add_argument("--key-value", required=True)
    p.set_defaults(handler=cmd_delete)

    p = sub.add_parser("export", help="Export tables as JSON or SQL")
    p.add_argument("tables", nargs="+")
    p.add_argument("--format", choices=["json", "sql"], default="json")
    p.add_argument("--no-schema", action="store_true")
    p.add_argument("--no-data", action="store_true")
    p.add_argument("--output", type=Path, default=None)
    p.set_defaults(handler=cmd_export)

    p = sub.add_parser("import", help="Import a .json or .sql file")
    p.add_argument("file", type=Path)
    p.set_defaults(handler=cmd_import)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(args.log_level or settings.log_level)

    if not args.url or not args.key:
        print("error: --url and --key (or TABLESCOPE_URL / TABLESCOPE_KEY) are required", file=sys.stderr)
        return 2

    try:
        conn = connect(args.url, args.key, args.name, settings=settings)
    except TablescopeError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1

    try:
        return args.handler(conn, args, settings)
    except (TablescopeError, argparse.ArgumentTypeError, OSError) as e:
        print(f"error: {getattr(e, 'message', e)}", file=sys.stderr)
        return 1
    finally:
        disconnect(conn)


if __name__ == "__main__":
    sys.exit(main())
