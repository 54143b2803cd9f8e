"""
Typed failures raised by the client.

Discovery probes never raise these; their failures are recorded as
ProbeFailure entries instead. Import/export collect per-item errors in
their result objects and only raise ImportValidationError for input that
cannot be processed at all.
"""
from typing import Optional


class TablescopeError(Exception):
    """Base class for every failure surfaced to the caller."""
    error_code: str = "internal_error"

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class InvalidUrl(TablescopeError):
    """Endpoint is malformed or outside the allowed hosting domains."""
    error_code = "invalid_url"


class AuthFailed(TablescopeError):
    """The authenticated probe was rejected."""
    error_code = "auth_failed"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, details=f"status={status_code}" if status_code else None)
        self.status_code = status_code


class NetworkError(TablescopeError):
    """The gateway could not be reached."""
    error_code = "network_error"


class ServiceError(TablescopeError):
    """The gateway answered with an error response.

    Raised by the low-level request helpers; the data-access layer rewraps
    it as QueryError/WriteError/TableAccessError with an operation prefix.
    """
    error_code = "service_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, details=f"status={status_code}" if status_code else None)
        self.status_code = status_code


class TableAccessError(TablescopeError):
    """A table could not be read for schema inference."""
    error_code = "table_access_error"

    def __init__(self, table: str, message: str):
        super().__init__(message, details=f"table={table}")
        self.table = table


class QueryError(TablescopeError):
    error_code = "query_error"


class WriteError(TablescopeError):
    error_code = "write_error"


class ImportValidationError(TablescopeError):
    """An import file (or export request) was rejected before any request was sent."""
    error_code = "import_validation_error"
