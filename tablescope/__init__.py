from .models import (
    ColumnDescriptor, ColumnType, TableDescriptor, TableKind, RowSet,
    DiscoveryResult, ProbeFailure, ExportResult, ImportResult,
)
from .errors import (
    TablescopeError, InvalidUrl, AuthFailed, NetworkError, ServiceError,
    TableAccessError, QueryError, WriteError, ImportValidationError,
)
from .config import Settings, get_settings, load_settings
from .gateway import Connection, connect, disconnect
from .discovery import DEFAULT_STRATEGIES, DiscoveryStrategy, discover_tables, run_discovery
from .inference import infer_columns, infer_value_type
from .records import (
    get_page, count_rows, fetch_all_rows, insert_row, update_row, delete_row,
    execute_sql, normalize_empty_strings,
)
from .transfer import export_tables, export_filename, import_file
