"""
Row-level data access: paged reads, counts and single-row writes.

Writes apply the empty-string-as-null policy: a blank form field means
"clear this value", so "" is sent as null. Key-column selection for
update/delete is the caller's job; nothing here guesses a primary key.
"""

import concurrent.futures
from typing import Any, Optional

from . import gateway
from .config import Settings, get_settings
from .errors import NetworkError, QueryError, ServiceError, TablescopeError, WriteError
from .gateway import Connection
from .inference import infer_columns
from .logging_config import get_logger
from .models import RowSet


logger = get_logger(__name__)

SQL_RPC_UNAVAILABLE = (
    "Direct SQL execution requires custom database functions. "
    "Please use the table interface instead."
)


def normalize_empty_strings(fields: dict[str, Any]) -> dict[str, Any]:
    """Copy of `fields` with every "" replaced by None; other values untouched."""
    return {key: (None if value == "" else value) for key, value in fields.items()}


def page_offset(page: int, page_size: int) -> int:
    if page < 1 or page_size < 1:
        raise QueryError(f"Invalid page request: page={page}, page_size={page_size}")
    return (page - 1) * page_size


def get_page(
    conn: Connection,
    table: str,
    page: int = 1,
    page_size: Optional[int] = None,
    *,
    settings: Optional[Settings] = None,
) -> RowSet:
    """
    One page of rows plus the table's total count and inferred columns.

    The rows read, the count and the column inference are independent and
    run concurrently; all three must succeed.

    Raises:
        QueryError: any of the three requests failed.
    """
    if page_size is None:
        page_size = (settings or get_settings()).page_size
    offset = page_offset(page, page_size)

    with concurrent.futures.ThreadPoolExecutor(max_workers=3) as executor:
        future_columns = executor.submit(infer_columns, conn, table)
        future_rows = executor.submit(gateway.select_rows, conn, table, limit=page_size, offset=offset)
        future_count = executor.submit(gateway.count_rows, conn, table)

        try:
            rows = future_rows.result()
            total = future_count.result()
            columns = future_columns.result()
        except TablescopeError as e:
            raise QueryError(f"Failed to load table data: {e.message}")

    logger.debug("Loaded %s page %d (%d rows of %d)", table, page, len(rows), total)
    return RowSet(columns=columns, rows=rows, total_count=total)


def count_rows(conn: Connection, table: str) -> int:
    try:
        return gateway.count_rows(conn, table)
    except (ServiceError, NetworkError) as e:
        raise QueryError(f"Failed to count rows: {e.message}")


def fetch_all_rows(conn: Connection, table: str) -> list[dict]:
    """Every row the gateway will return for `table` in one unpaged read."""
    try:
        return gateway.select_rows(conn, table)
    except (ServiceError, NetworkError) as e:
        raise QueryError(f"Failed to load table data: {e.message}")


def insert_row(conn: Connection, table: str, fields: dict[str, Any]) -> None:
    try:
        gateway.insert_rows(conn, table, normalize_empty_strings(fields))
    except (ServiceError, NetworkError) as e:
        raise WriteError(f"Failed to insert row: {e.message}")
    logger.info("Inserted row into %s", table)


def update_row(
    conn: Connection,
    table: str,
    fields: dict[str, Any],
    key_column: str,
    key_value: Any,
) -> None:
    """Update the rows where key_column = key_value."""
    try:
        gateway.update_rows(conn, table, normalize_empty_strings(fields), key_column, key_value)
    except (ServiceError, NetworkError) as e:
        raise WriteError(f"Failed to update row: {e.message}")
    logger.info("Updated %s where %s = %r", table, key_column, key_value)


def delete_row(conn: Connection, table: str, key_column: str, key_value: Any) -> None:
    try:
        gateway.delete_rows(conn, table, key_column, key_value)
    except (ServiceError, NetworkError) as e:
        raise WriteError(f"Failed to delete row: {e.message}")
    logger.info("Deleted from %s where %s = %r", table, key_column, key_value)


def execute_sql(
    conn: Connection,
    statement: str,
    *,
    rpc_function: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> Any:
    """
    Hand one raw SQL statement to a gateway RPC function.

    The gateway has no SQL endpoint of its own; this only works when the
    project defines a function taking a `query` argument and its name is
    configured.
    """
    function = rpc_function or (settings or get_settings()).sql_rpc_function
    if not function:
        raise QueryError(f"SQL execution not available: {SQL_RPC_UNAVAILABLE}")
    try:
        return gateway.call_rpc(conn, function, {"query": statement})
    except (ServiceError, NetworkError) as e:
        raise QueryError(e.message)
