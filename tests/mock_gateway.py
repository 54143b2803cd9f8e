"""
Local mock of the hosted REST gateway for tests.

Serves the PostgREST subset the client uses (API document at the data
root, select with limit/offset, exact counts via HEAD, equality-filtered
writes, RPC calls) from in-memory tables, and records every request so
tests can assert call counts, headers and payloads.

Built on stdlib http.server + socketserver so no real network is needed.
Each MockGateway binds a random OS-assigned port; use it as a context
manager so the server is always shut down.
"""

import http.server
import json
import socketserver
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, unquote, urlparse

# Make the project root importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from tablescope import Connection, Settings


REST_PREFIX = "/rest/v1/"
TEST_KEY = "test-anon-key"


class _Server(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True


@dataclass
class RecordedRequest:
    method: str
    path: str                      # relative to the data root, e.g. "users" or ""
    query: dict[str, str]
    headers: dict[str, str]
    body: Any = None


@dataclass
class MockGateway:
    tables: dict[str, list[dict]] = field(default_factory=dict)
    api_document: Optional[dict] = None
    root_status: int = 200
    forbidden: set = field(default_factory=set)
    introspection: Any = None              # body for ?select=table_name; None -> 404
    fail_empty_probe: set = field(default_factory=set)
    insert_error: Optional[Callable[[dict], Optional[str]]] = None
    rpc: dict[str, Callable[[dict], Any]] = field(default_factory=dict)
    requests: list[RecordedRequest] = field(default_factory=list)

    def __post_init__(self):
        self._lock = threading.Lock()
        self._httpd = None
        self.port = None

    # ── lifecycle ─────────────────────────────

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()

    def start(self):
        gateway = self

        class Handler(http.server.BaseHTTPRequestHandler):
            def do_GET(self):
                gateway._handle(self, "GET")

            def do_HEAD(self):
                gateway._handle(self, "HEAD")

            def do_POST(self):
                gateway._handle(self, "POST")

            def do_PATCH(self):
                gateway._handle(self, "PATCH")

            def do_DELETE(self):
                gateway._handle(self, "DELETE")

            def log_message(self, *args):
                pass  # suppress server output during tests

        self._httpd = _Server(("127.0.0.1", 0), Handler)
        self.port = self._httpd.server_address[1]
        thread = threading.Thread(target=self._httpd.serve_forever)
        thread.daemon = True
        thread.start()
        return self

    def stop(self):
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None

    # ── helpers for tests ─────────────────────

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def settings(self, **overrides) -> Settings:
        values = {"allowed_domains": ("127.0.0.1",), "request_timeout": 5.0}
        values.update(overrides)
        return Settings(**values)

    def connection(self) -> Connection:
        return Connection(endpoint=self.url, credential=TEST_KEY, timeout=5.0)

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> list[RecordedRequest]:
        with self._lock:
            recorded = list(self.requests)
        return [
            r for r in recorded
            if (method is None or r.method == method) and (path is None or r.path == path)
        ]

    def table_probes(self) -> list[RecordedRequest]:
        """GET requests against anything other than the data root or RPC."""
        return [r for r in self.calls("GET") if r.path and not r.path.startswith("rpc/")]

    # ── request handling ──────────────────────

    def _send(self, handler, status: int, body: Any = None, headers: Optional[dict] = None, head: bool = False):
        payload = b"" if body is None else json.dumps(body).encode()
        handler.send_response(status)
        handler.send_header("Content-Type", "application/json")
        handler.send_header("Content-Length", str(0 if head else len(payload)))
        for key, value in (headers or {}).items():
            handler.send_header(key, value)
        handler.end_headers()
        if payload and not head:
            handler.wfile.write(payload)

    def _handle(self, handler, method: str):
        parsed = urlparse(handler.path)
        query = {k: v[0] for k, v in parse_qs(parsed.query, keep_blank_values=True).items()}
        length = int(handler.headers.get("Content-Length") or 0)
        raw = handler.rfile.read(length) if length else b""
        body = json.loads(raw) if raw else None

        if not parsed.path.startswith(REST_PREFIX):
            self._send(handler, 404, {"message": "Not found"})
            return
        path = unquote(parsed.path[len(REST_PREFIX):])

        with self._lock:
            self.requests.append(RecordedRequest(method, path, query, dict(handler.headers), body))

        if handler.headers.get("apikey") != TEST_KEY:
            self._send(handler, 401, {"message": "Invalid API key"}, head=method == "HEAD")
            return

        if path == "":
            self._handle_root(handler, method, query)
        elif path.startswith("rpc/"):
            self._handle_rpc(handler, path[len("rpc/"):], body)
        else:
            self._handle_table(handler, method, path, query, body)

    def _handle_root(self, handler, method, query):
        if query.get("select") == "table_name":
            if self.introspection is None:
                self._send(handler, 404, {"message": "Could not find the table_name column"})
            else:
                self._send(handler, 200, self.introspection)
            return
        if self.root_status != 200:
            self._send(handler, self.root_status, {"message": "Unauthorized"})
            return
        document = self.api_document if self.api_document is not None else {"swagger": "2.0", "paths": {"/": {}}}
        self._send(handler, 200, document)

    def _handle_rpc(self, handler, function, body):
        fn = self.rpc.get(function)
        if fn is None:
            self._send(handler, 404, {"message": f"Could not find the function public.{function}"})
            return
        try:
            self._send(handler, 200, fn(body))
        except Exception as e:
            self._send(handler, 400, {"message": str(e)})

    def _matches(self, row: dict, query: dict) -> bool:
        for column, predicate in query.items():
            if column == "select":
                continue
            op, _, expected = predicate.partition(".")
            actual = row.get(column)
            if op == "is" and expected == "null":
                if actual is not None:
                    return False
            elif op == "eq":
                rendered = str(actual).lower() if isinstance(actual, bool) else str(actual)
                if rendered != expected:
                    return False
        return True

    def _handle_table(self, handler, method, table, query, body):
        head = method == "HEAD"
        if table in self.forbidden:
            self._send(handler, 401, {"message": f"permission denied for table {table}"}, head=head)
            return
        if table not in self.tables:
            self._send(handler, 404, {"message": f'relation "public.{table}" does not exist'}, head=head)
            return

        rows = self.tables[table]

        if method == "GET":
            limit = query.get("limit")
            if limit == "0" and table in self.fail_empty_probe:
                self._send(handler, 400, {"message": "zero-row probe rejected"})
                return
            offset = int(query.get("offset", 0))
            end = None if limit is None else offset + int(limit)
            self._send(handler, 200, rows[offset:end])
        elif method == "HEAD":
            total = len(rows)
            content_range = f"0-{total - 1}/{total}" if total else "*/0"
            self._send(handler, 200, headers={"Content-Range": content_range}, head=True)
        elif method == "POST":
            new_rows = body if isinstance(body, list) else [body]
            for row in new_rows:
                message = self.insert_error(row) if self.insert_error else None
                if message:
                    self._send(handler, 400, {"message": message})
                    return
            with self._lock:
                rows.extend(new_rows)
            self._send(handler, 201)
        elif method == "PATCH":
            with self._lock:
                for row in rows:
                    if self._matches(row, query):
                        row.update(body or {})
            self._send(handler, 204)
        elif method == "DELETE":
            with self._lock:
                self.tables[table] = [r for r in rows if not self._matches(r, query)]
            self._send(handler, 204)
