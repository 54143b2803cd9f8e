"""
The built-in table discovery strategies, in the order they are tried.

Only `openapi` reads real metadata. The others guess names and keep the
ones the gateway answers for, so they can never be complete.
"""

import re
from itertools import product

from ..errors import NetworkError
from ..gateway import Connection
from ..logging_config import get_logger
from ..models import TableDescriptor
from .base import ProbeContext


logger = get_logger(__name__)

_TABLE_PATH_RE = re.compile(r'^/([A-Za-z_][A-Za-z0-9_]*)$')

TABLE_DICTIONARY = (
    "users", "profiles", "posts", "comments", "products", "orders", "todos", "items",
    "categories", "tags", "files", "uploads", "settings", "notifications", "messages",
    "events", "bookings", "payments", "invoices", "customers", "suppliers", "inventory",
    "articles", "pages", "media", "galleries", "reviews", "ratings", "favorites",
    "subscriptions", "plans", "transactions", "logs", "analytics", "reports",
    "teams", "organizations", "projects", "tasks", "issues", "milestones",
    "contacts", "addresses", "phones", "emails", "documents", "attachments",
)

BRUTE_FORCE_PREFIXES = ("", "app_", "user_", "admin_", "public_", "data_")
BRUTE_FORCE_SUFFIXES = ("", "s", "_data", "_info", "_details", "_records")
BRUTE_FORCE_WORDS = tuple("abcdefghijklmnopqrstuvwxyz") + (
    "data", "info", "list", "item", "record", "entry", "log", "event",
    "action", "status", "type", "kind", "group", "set",
)
BRUTE_FORCE_MAX_LENGTH = 20


# ─────────────────────────────────────────────
# 1. API document
# ─────────────────────────────────────────────

def tables_from_api_document(document) -> list[TableDescriptor]:
    """Every top-level `/name` path except `/rpc` is a table."""
    if not isinstance(document, dict) or not isinstance(document.get("paths"), dict):
        return []
    tables = []
    for path in document["paths"]:
        match = _TABLE_PATH_RE.match(path)
        if match and match.group(1) != "rpc":
            tables.append(TableDescriptor(name=match.group(1)))
    return tables


def discover_from_api_document(conn: Connection, ctx: ProbeContext) -> list[TableDescriptor]:
    try:
        response = conn.request("GET")
    except NetworkError as e:
        ctx.unreachable = True
        ctx.record_failure("openapi", conn.rest_root, e.message)
        return []

    if not response.ok:
        ctx.record_failure("openapi", conn.rest_root, f"Failed to fetch schema: {response.status_code}")
        return []

    try:
        document = response.json()
    except ValueError as e:
        ctx.record_failure("openapi", conn.rest_root, f"API document is not valid JSON: {e}")
        return []

    tables = tables_from_api_document(document)
    logger.debug("API document listed %d table path(s)", len(tables))
    return tables


# ─────────────────────────────────────────────
# 2. Dictionary of common names
# ─────────────────────────────────────────────

def discover_from_dictionary(conn: Connection, ctx: ProbeContext) -> list[TableDescriptor]:
    tables = []
    for name in TABLE_DICTIONARY:
        if ctx.probe_table(conn, name, "dictionary"):
            logger.info("Discovered table via dictionary probe: %s", name)
            tables.append(TableDescriptor(name=name))
    return tables


# ─────────────────────────────────────────────
# 3. Introspection query
# ─────────────────────────────────────────────

def discover_from_introspection(conn: Connection, ctx: ProbeContext) -> list[TableDescriptor]:
    """
    Ask the data root for a `table_name` projection.

    The hosted gateway almost never answers this with rows; anything other
    than a list of objects carrying a string `table_name` is ignored.
    """
    try:
        response = conn.request("GET", params={"select": "table_name"})
    except NetworkError as e:
        logger.info("Introspection failed: %s", e.message)
        ctx.record_failure("introspection", conn.rest_root, e.message)
        return []

    if not response.ok:
        logger.info("Introspection failed: HTTP %s", response.status_code)
        ctx.record_failure("introspection", conn.rest_root, f"HTTP {response.status_code}")
        return []

    try:
        payload = response.json()
    except ValueError as e:
        logger.info("Introspection returned non-JSON body: %s", e)
        ctx.record_failure("introspection", conn.rest_root, f"Response is not valid JSON: {e}")
        return []

    if not isinstance(payload, list):
        logger.info("Introspection returned %s, not a row list", type(payload).__name__)
        return []

    tables = []
    for entry in payload:
        if isinstance(entry, dict) and isinstance(entry.get("table_name"), str) and entry["table_name"]:
            tables.append(TableDescriptor(name=entry["table_name"]))
    return tables


# ─────────────────────────────────────────────
# 4. Brute force
# ─────────────────────────────────────────────

def brute_force_candidates(
    prefixes=BRUTE_FORCE_PREFIXES,
    words=BRUTE_FORCE_WORDS,
    suffixes=BRUTE_FORCE_SUFFIXES,
    max_length: int = BRUTE_FORCE_MAX_LENGTH,
) -> list[str]:
    """prefix × word × suffix in product order, length-filtered. Repeated spellings are kept."""
    names = (p + w + s for p, w, s in product(prefixes, words, suffixes))
    return [n for n in names if 0 < len(n) <= max_length]


def discover_by_brute_force(conn: Connection, ctx: ProbeContext) -> list[TableDescriptor]:
    """
    Probe every candidate name one at a time.

    A hit does not end the pass; the whole candidate list is always probed
    (subject to the probe budget).
    """
    tables = []
    for name in brute_force_candidates():
        if ctx.probe_table(conn, name, "brute_force"):
            logger.info("Discovered table via brute force: %s", name)
            tables.append(TableDescriptor(name=name))
    return tables
