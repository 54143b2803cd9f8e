"""
Export and import orchestration.

Both directions work item by item and collect failures in the returned
result object: one unreadable table does not stop an export, and one
rejected row or statement does not stop an import. Only input that cannot
be processed at all raises ImportValidationError, before any request is
sent.
"""

from datetime import date, datetime
from pathlib import PurePath
from typing import Any, Callable, Optional, Sequence

from . import gateway
from .adapters.json_adapter import columns_from_schema, encode_document, parse_document
from .adapters.sql_adapter import render_script, split_statements
from .config import Settings
from .errors import ImportValidationError, NetworkError, ServiceError, TablescopeError
from .gateway import Connection
from .inference import infer_columns
from .logging_config import get_logger
from .models import ExportResult, ImportResult
from .records import execute_sql, fetch_all_rows


logger = get_logger(__name__)

EXPORT_FORMATS = ("json", "sql")


# ─────────────────────────────────────────────
# Export
# ─────────────────────────────────────────────

def export_filename(fmt: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"supabase-export-{today.isoformat()}.{fmt}"


def _collect_table(conn: Connection, table: str, include_schema: bool, include_data: bool) -> dict:
    info: dict[str, Any] = {"name": table}

    if include_schema:
        try:
            info["columns"] = infer_columns(conn, table)
        except TablescopeError as e:
            logger.warning("Schema export failed for %s: %s", table, e.message)
            info["columns"] = []
            info["schemaError"] = e.message

    if include_data:
        try:
            info["data"] = fetch_all_rows(conn, table)
        except TablescopeError as e:
            logger.warning("Data export failed for %s: %s", table, e.message)
            info["data"] = []
            info["dataError"] = e.message

    return info


def export_tables(
    conn: Connection,
    tables: Sequence[str],
    fmt: str = "json",
    include_schema: bool = True,
    include_data: bool = True,
    *,
    generated_at: Optional[datetime] = None,
) -> ExportResult:
    """
    Export the schema and/or rows of `tables` as a JSON or SQL document.

    Raises:
        ImportValidationError: no tables, unknown format, or nothing to export.
    """
    if fmt not in EXPORT_FORMATS:
        raise ImportValidationError(f"Unsupported export format: {fmt!r}")
    if not tables:
        raise ImportValidationError("Please select at least one table to export.")
    if not include_schema and not include_data:
        raise ImportValidationError("Please select either schema or data (or both) to export.")

    collected = {table: _collect_table(conn, table, include_schema, include_data) for table in tables}

    errors = []
    for table, info in collected.items():
        if info.get("schemaError"):
            errors.append(f"Schema error for {table}: {info['schemaError']}")
        if info.get("dataError"):
            errors.append(f"Data error for {table}: {info['dataError']}")

    if fmt == "json":
        document = {}
        for table, info in collected.items():
            entry = {"name": table}
            if include_schema:
                entry["schema"] = [c.to_dict() for c in info["columns"]]
                if info.get("schemaError"):
                    entry["schemaError"] = info["schemaError"]
            if include_data:
                entry["data"] = info["data"]
                if info.get("dataError"):
                    entry["dataError"] = info["dataError"]
            document[table] = entry
        content = encode_document(document)
    else:
        content = render_script(
            collected,
            include_schema=include_schema,
            include_data=include_data,
            generated_at=generated_at,
        )

    logger.info("Exported %d table(s) as %s with %d error(s)", len(collected), fmt, len(errors))
    return ExportResult(content=content, format=fmt, tables_exported=list(collected), errors=errors)


# ─────────────────────────────────────────────
# Import
# ─────────────────────────────────────────────

def import_json_document(conn: Connection, document: dict) -> ImportResult:
    """Insert every row of every table entry, one request per row."""
    result = ImportResult()

    for table, info in document.items():
        result.tables_processed += 1
        if not isinstance(info, dict):
            result.errors.append(f"Table error for {table}: expected an object, got {type(info).__name__}")
            continue

        if "schema" in info:
            try:
                columns_from_schema(info["schema"])
            except ValueError as e:
                result.errors.append(f"Schema error for {table}: {e}")

        rows = info.get("data")
        if rows is None:
            continue
        if not isinstance(rows, list):
            result.errors.append(f"Table error for {table}: data must be a list")
            continue

        for row in rows:
            if not isinstance(row, dict):
                result.errors.append(f"Insert error in {table}: row must be an object")
                continue
            try:
                gateway.insert_rows(conn, table, row)
            except (ServiceError, NetworkError) as e:
                result.errors.append(f"Insert error in {table}: {e.message}")
            else:
                result.rows_inserted += 1

    return result


def import_sql_script(
    conn: Connection,
    script: str,
    *,
    executor: Optional[Callable[[Connection, str], Any]] = None,
    settings: Optional[Settings] = None,
) -> ImportResult:
    """Run each statement independently; no transaction wraps the script."""
    run = executor or (lambda c, statement: execute_sql(c, statement, settings=settings))

    result = ImportResult()
    for statement in split_statements(script):
        try:
            run(conn, statement)
        except TablescopeError as e:
            result.errors.append(f"SQL Error: {e.message}")
        else:
            result.statements_executed += 1
    return result


def import_file(
    conn: Connection,
    filename: str,
    text: str,
    *,
    settings: Optional[Settings] = None,
) -> ImportResult:
    """
    Import an uploaded file; the format comes from its extension.

    Raises:
        ImportValidationError: unsupported extension, malformed JSON, or an
            empty SQL file.
    """
    suffix = PurePath(filename).suffix.lower()

    if suffix == ".json":
        document = parse_document(text)
        result = import_json_document(conn, document)
    elif suffix == ".sql":
        if not text.strip():
            raise ImportValidationError("Empty SQL file")
        result = import_sql_script(conn, text, settings=settings)
    else:
        raise ImportValidationError("Unsupported file type. Please select a JSON or SQL file.")

    if result.errors:
        logger.warning("Import of %s completed with %d error(s)", filename, len(result.errors))
    else:
        logger.info("Imported %s", filename)
    return result
