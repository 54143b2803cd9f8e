from .json_adapter import columns_from_schema, encode_document, parse_document
from .sql_adapter import render_script, split_statements, sql_literal
