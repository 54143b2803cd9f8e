"""
Column inference from sampled rows.

The gateway exposes no reliable column metadata, so a table's columns are
inferred from the values of a single row. This is lossy:

  * a column that is null in the sample is always reported as text,
  * nullability is always reported as "YES",
  * an empty table yields no columns at all.

These limitations are kept as they are. A deployment with a real metadata
endpoint should add a separate source rather than change this one.
"""

import re
from typing import Any

from .errors import NetworkError, ServiceError, TableAccessError
from .gateway import Connection, select_rows
from .logging_config import get_logger
from .models import ColumnDescriptor, ColumnType


logger = get_logger(__name__)

_UUID_RE = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE,
)
_ISO_DATETIME_RE = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}')


def infer_value_type(value: Any) -> ColumnType:
    """Map one JSON value to a column type. Total: every input gets a type."""
    if value is None:
        return ColumnType.TEXT
    if isinstance(value, bool):   # bool is an int subclass, check it first
        return ColumnType.BOOLEAN
    if isinstance(value, int):
        return ColumnType.INTEGER
    if isinstance(value, float):
        return ColumnType.INTEGER if value.is_integer() else ColumnType.NUMERIC
    if isinstance(value, str):
        if _UUID_RE.match(value):
            return ColumnType.UUID
        if _ISO_DATETIME_RE.match(value):
            return ColumnType.TIMESTAMPTZ
        return ColumnType.TEXT
    if isinstance(value, (dict, list)):
        return ColumnType.JSONB
    return ColumnType.TEXT


def columns_from_row(row: dict) -> list[ColumnDescriptor]:
    """One descriptor per field, positioned in the row's field order."""
    return [
        ColumnDescriptor(name=key, inferred_type=infer_value_type(value), position=index)
        for index, (key, value) in enumerate(row.items(), start=1)
    ]


def infer_columns(conn: Connection, table: str) -> list[ColumnDescriptor]:
    """
    Sample one row of `table` and infer its columns.

    Returns an empty list for a readable table with no rows.

    Raises:
        TableAccessError: the table cannot be read.
    """
    try:
        sample = select_rows(conn, table, limit=1)
    except (ServiceError, NetworkError) as e:
        raise TableAccessError(table, f'Cannot access table "{table}": {e.message}')

    if sample:
        first = sample[0]
        if not isinstance(first, dict):
            raise TableAccessError(table, f'Unexpected row shape in "{table}": {type(first).__name__}')
        return columns_from_row(first)

    # Readable but empty: confirm with a zero-row read before giving up.
    try:
        select_rows(conn, table, limit=0)
    except (ServiceError, NetworkError) as e:
        raise TableAccessError(
            table,
            f'Table "{table}" appears to be empty and column structure cannot be determined: {e.message}',
        )

    logger.debug("Table %s has no rows; no columns inferred", table)
    return []
