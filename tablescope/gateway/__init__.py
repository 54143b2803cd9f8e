"""
REST gateway connection.

connect() validates the endpoint, verifies the credential with one
authenticated request against the data root and returns a Connection.
The Connection is the only handle the rest of the package uses; it is
passed explicitly to every call and never stored at module level.

The query helpers at the bottom mirror the PostgREST surface the hosted
gateway exposes: select with limit/offset, exact counts via HEAD, and
equality-filtered writes.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote, urlparse

import requests

from ..config import Settings, get_settings
from ..errors import AuthFailed, InvalidUrl, NetworkError, ServiceError
from ..logging_config import get_logger


logger = get_logger(__name__)

REST_ROOT = "/rest/v1/"


@dataclass
class Connection:
    """
    An authenticated handle to one gateway project.

    Read-only after connect() apart from the `connected` flag that
    disconnect() clears.
    """
    endpoint: str
    credential: str = field(repr=False)
    display_name: Optional[str] = None
    timeout: float = 30.0
    connected: bool = field(default=True, repr=False)

    @property
    def rest_root(self) -> str:
        return f"{self.endpoint}{REST_ROOT}"

    @property
    def label(self) -> str:
        return self.display_name or urlparse(self.endpoint).hostname or self.endpoint

    def headers(self) -> dict[str, str]:
        """The credential goes out twice: as the API key and as a bearer token."""
        return {
            "apikey": self.credential,
            "Authorization": f"Bearer {self.credential}",
            "Accept": "application/json",
        }

    def url_for(self, path: str = "") -> str:
        return self.rest_root + quote(path, safe="/")

    def request(
        self,
        method: str,
        path: str = "",
        *,
        params: Optional[dict] = None,
        payload: Any = None,
        headers: Optional[dict] = None,
    ) -> requests.Response:
        """
        Issue one authenticated request relative to the data root.

        Transport failures become NetworkError. HTTP error statuses are
        returned as-is; callers decide what an error response means.
        """
        if not self.connected:
            raise NetworkError("Not connected")

        merged = self.headers()
        if headers:
            merged.update(headers)

        try:
            return requests.request(
                method,
                self.url_for(path),
                params=params,
                json=payload,
                headers=merged,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise NetworkError(f"Request timed out after {self.timeout:g} seconds.")
        except requests.exceptions.ConnectionError as e:
            raise NetworkError(f"Connection failed: {e}")
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Request failed: {e}")


# ─────────────────────────────────────────────
# Connect / disconnect
# ─────────────────────────────────────────────

def validate_endpoint(endpoint: str, settings: Optional[Settings] = None) -> str:
    """
    Normalize an endpoint URL and check it belongs to an allowed domain.

    Returns the endpoint without trailing slashes. Raises InvalidUrl.
    """
    settings = settings or get_settings()
    cleaned = (endpoint or "").strip().rstrip("/")
    parsed = urlparse(cleaned)
    host = (parsed.hostname or "").lower()

    if parsed.scheme not in ("http", "https") or not host:
        raise InvalidUrl(f"Not a valid URL: {endpoint!r}")

    for domain in settings.allowed_domains:
        if host == domain or host.endswith("." + domain):
            return cleaned

    allowed = ", ".join(settings.allowed_domains)
    raise InvalidUrl(
        f"Please enter a valid project URL (expected a host under: {allowed}).",
        details=f"host={host}",
    )


def connect(
    endpoint: str,
    credential: str,
    display_name: Optional[str] = None,
    *,
    settings: Optional[Settings] = None,
) -> Connection:
    """
    Validate the endpoint and verify the credential against the data root.

    Raises:
        InvalidUrl:   endpoint is malformed or outside the allowed domains.
        AuthFailed:   credential missing or the probe got a non-2xx status.
        NetworkError: the gateway could not be reached.
    """
    settings = settings or get_settings()
    cleaned = validate_endpoint(endpoint, settings)
    if not credential or not credential.strip():
        raise AuthFailed("An API key is required.")

    conn = Connection(
        endpoint=cleaned,
        credential=credential.strip(),
        display_name=display_name,
        timeout=settings.request_timeout,
    )

    response = conn.request("GET")
    if not response.ok:
        logger.info("Authentication probe rejected for %s: HTTP %s", cleaned, response.status_code)
        raise AuthFailed(
            f"Connection failed: {response.status_code} {response.reason}",
            status_code=response.status_code,
        )

    logger.info("Connected to %s", conn.label)
    return conn


def disconnect(conn: Connection) -> None:
    """Discard the handle. No request is made."""
    conn.connected = False
    logger.info("Disconnected from %s", conn.label)


# ─────────────────────────────────────────────
# Query helpers
# ─────────────────────────────────────────────

def service_error_message(response: requests.Response) -> str:
    """The gateway's own error text, or the HTTP status line if it sent none."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error_description", "error", "hint"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}: {response.reason}"


def _raise_for_service_error(response: requests.Response) -> None:
    if not response.ok:
        raise ServiceError(service_error_message(response), status_code=response.status_code)


def eq_filter(value: Any) -> str:
    """Render an equality predicate value in the gateway's filter syntax."""
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


def select_rows(
    conn: Connection,
    table: str,
    *,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[dict]:
    """GET rows from a table. Raises ServiceError or NetworkError."""
    params: dict[str, Any] = {"select": "*"}
    if limit is not None:
        params["limit"] = limit
    if offset:
        params["offset"] = offset

    response = conn.request("GET", table, params=params)
    _raise_for_service_error(response)

    try:
        rows = response.json()
    except ValueError as e:
        raise ServiceError(f"Response is not valid JSON: {e}")
    if not isinstance(rows, list):
        raise ServiceError(f"Expected a JSON array of rows, got {type(rows).__name__}.")
    return rows


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """'0-49/1234' or '*/1234' -> 1234. None when the total is missing or '*'."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    if not total.isdigit():
        return None
    return int(total)


def count_rows(conn: Connection, table: str) -> int:
    """Exact row count via a body-less HEAD request."""
    response = conn.request(
        "HEAD", table,
        params={"select": "*"},
        headers={"Prefer": "count=exact"},
    )
    _raise_for_service_error(response)
    return parse_content_range(response.headers.get("Content-Range")) or 0


def insert_rows(conn: Connection, table: str, payload: dict | list) -> None:
    response = conn.request(
        "POST", table,
        payload=payload,
        headers={"Prefer": "return=minimal"},
    )
    _raise_for_service_error(response)


def update_rows(conn: Connection, table: str, payload: dict, column: str, value: Any) -> None:
    response = conn.request(
        "PATCH", table,
        params={column: eq_filter(value)},
        payload=payload,
        headers={"Prefer": "return=minimal"},
    )
    _raise_for_service_error(response)


def delete_rows(conn: Connection, table: str, column: str, value: Any) -> None:
    response = conn.request("DELETE", table, params={column: eq_filter(value)})
    _raise_for_service_error(response)


def call_rpc(conn: Connection, function: str, payload: dict) -> Any:
    response = conn.request("POST", f"rpc/{function}", payload=payload)
    _raise_for_service_error(response)
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
