"""
JSON export/import document format.

An export document maps each table name to
    {"name": ..., "schema": [column dicts], "data": [row objects]}
plus optional "schemaError"/"dataError" strings when part of a table could
not be read. Imports accept the same shape with every key optional.
"""

import json

from ..errors import ImportValidationError
from ..models import ColumnDescriptor


def encode_document(document: dict) -> str:
    return json.dumps(document, indent=2, default=str)


def parse_document(text: str) -> dict:
    """
    Parse an uploaded JSON export.

    Raises ImportValidationError if the text is not JSON or the top level is
    not an object of table entries.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportValidationError(f"Invalid JSON: {e}")

    if not isinstance(data, dict):
        raise ImportValidationError(
            "Invalid JSON structure. Expected an object with table definitions."
        )
    return data


def columns_from_schema(entries) -> list[ColumnDescriptor]:
    """
    Rebuild column descriptors from a table's "schema" list.

    Accepts both export keys ("column_name", "data_type") and the short
    forms ("name", "type").
    """
    if not isinstance(entries, list):
        raise ValueError(f"schema must be a list, got {type(entries).__name__}")
    columns = []
    for index, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ValueError(f"schema entry {index} is not an object")
        try:
            columns.append(ColumnDescriptor.from_dict(entry, position=index))
        except KeyError as e:
            raise ValueError(f"schema entry {index} is missing field {e}")
    return columns
