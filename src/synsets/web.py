"""JSON HTTP API over the concept store.

Routes:
    GET /                              → {"version": ...}
    GET /health                        → database connectivity
    GET /api/tree                      → root node + total concept count
    GET /api/tree/children?path=...    → direct children of one node
    GET /api/search?q=...              → substring search over paths

Each request opens its own SQLite connection; handlers never share state, so
the threading server needs no locking. Requests never create the store:
before the first seed the read routes answer with empty results.
"""

from __future__ import annotations

import json
import logging
import socketserver
import sqlite3
import urllib.parse
from contextlib import closing
from datetime import UTC, datetime
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import TYPE_CHECKING, Any

from synsets.db import open_reader
from synsets.models import SearchResponse, TreeNode, TreeResponse
from synsets.search import search
from synsets.tree import fetch_children, fetch_tree

if TYPE_CHECKING:
    from synsets.config import SynsetsConfig

logger = logging.getLogger("synsets.web")


class _Handler(BaseHTTPRequestHandler):
    cfg: SynsetsConfig  # injected via make_handler()

    def do_GET(self) -> None:
        parsed = urllib.parse.urlparse(self.path)
        path = parsed.path.rstrip("/") or "/"
        qs = urllib.parse.parse_qs(parsed.query)
        try:
            if path == "/":
                self._json({"version": self.cfg.version})
            elif path == "/health":
                self._health()
            elif path == "/api/tree":
                self._tree()
            elif path == "/api/tree/children":
                self._children(qs.get("path", [""])[0])
            elif path == "/api/search":
                self._search(qs.get("q", [""])[0])
            else:
                self._json({"error": "Not found"}, 404)
        except Exception:
            logger.exception("request failed: %s", self.path)
            self._json({"error": "Internal server error"}, 500)

    def do_OPTIONS(self) -> None:
        self.send_response(204)
        self._cors_headers()
        self.send_header("Access-Control-Allow-Methods", "GET, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    def _health(self) -> None:
        timestamp = datetime.now(UTC).isoformat()
        try:
            conn = open_reader(self.cfg)
            if conn is None:
                logger.warning("health check: no store at %s, run `synsets seed`", self.cfg.db_path)
                self._json({"status": "unhealthy", "database": "disconnected", "timestamp": timestamp})
                return
            with closing(conn):
                conn.execute("SELECT 1").fetchone()
        except sqlite3.Error:
            logger.exception("health check failed")
            self._json({"status": "unhealthy", "database": "disconnected", "timestamp": timestamp})
            return
        self._json({"status": "healthy", "database": "connected", "timestamp": timestamp})

    def _tree(self) -> None:
        conn = open_reader(self.cfg)
        if conn is None:
            result = TreeResponse.no_data()
        else:
            with closing(conn):
                result = fetch_tree(conn)
        self._json(result.to_dict())

    def _children(self, path: str) -> None:
        if not path:
            self._json({"error": "Path parameter is required"}, 400)
            return
        children: list[TreeNode] = []
        conn = open_reader(self.cfg)
        if conn is not None:
            with closing(conn):
                children = fetch_children(conn, path)
        self._json([c.to_dict() for c in children])

    def _search(self, query: str) -> None:
        query = query.strip()
        if not query:
            self._json({"error": "Search query cannot be empty"}, 400)
            return
        result = SearchResponse(query=query)
        conn = open_reader(self.cfg)
        if conn is not None:
            with closing(conn):
                result = search(conn, query, limit=self.cfg.search.limit)
        self._json(result.to_dict())

    # ------------------------------------------------------------------
    # Response helpers
    # ------------------------------------------------------------------

    def _cors_headers(self) -> None:
        origin = self.cfg.server.cors_origin
        if origin:
            self.send_header("Access-Control-Allow-Origin", origin)
            self.send_header("Access-Control-Allow-Credentials", "true")
            self.send_header("Vary", "Origin")

    def _json(self, payload: Any, status: int = 200) -> None:
        encoded = json.dumps(payload, ensure_ascii=False).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self._cors_headers()
        self.end_headers()
        self.wfile.write(encoded)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        pass  # suppress per-request logging


class _ThreadingHTTPServer(socketserver.ThreadingMixIn, HTTPServer):
    daemon_threads = True


def make_handler(cfg: SynsetsConfig) -> type[_Handler]:
    class _Bound(_Handler):
        pass
    _Bound.cfg = cfg
    return _Bound


def make_server(cfg: SynsetsConfig, host: str, port: int) -> HTTPServer:
    """Bind (but don't start) the API server. Port 0 picks a free port."""
    return _ThreadingHTTPServer((host, port), make_handler(cfg))


def serve(cfg: SynsetsConfig, host: str, port: int) -> None:
    """Start the API server (blocking until Ctrl+C)."""
    server = make_server(cfg, host, port)
    logger.info("synsets api  →  http://%s:%d  (Ctrl+C to stop)", host, server.server_address[1])
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
