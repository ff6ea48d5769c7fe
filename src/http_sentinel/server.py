from __future__ import annotations

import json
import logging
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Dict
from urllib.parse import parse_qs, unquote, urlparse

from .api import SentinelAPI
from .errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)

LOGS_PREFIX = "/api/logs"


def _int_param(query: Dict[str, list[str]], name: str) -> int | None:
    value = query.get(name, [None])[0]
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


class SentinelHandler(BaseHTTPRequestHandler):
    api: SentinelAPI | None = None

    def _send_json(self, payload: Any, status: HTTPStatus = HTTPStatus.OK) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Cache-Control", "no-store")
        body = json.dumps(payload, ensure_ascii=False).encode()
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_body(self) -> str:
        length = int(self.headers.get("Content-Length", 0) or 0)
        return self.rfile.read(length).decode("utf-8", errors="replace")

    def _dispatch(self, operation: Callable[[], Any]) -> None:
        if self.api is None:
            self._send_json({"error": "API not configured"}, status=HTTPStatus.INTERNAL_SERVER_ERROR)
            return
        try:
            payload = operation()
        except NotFound:
            self._send_json({"error": "Log entry not found"}, status=HTTPStatus.NOT_FOUND)
        except InvalidInput as exc:
            self._send_json({"error": str(exc)}, status=HTTPStatus.BAD_REQUEST)
        except Exception:
            logger.exception("Unhandled error serving %s %s", self.command, self.path)
            self._send_json({"error": "Server error"}, status=HTTPStatus.INTERNAL_SERVER_ERROR)
        else:
            self._send_json(payload)

    def _json_body(self) -> Any:
        try:
            return json.loads(self._read_body() or "null")
        except json.JSONDecodeError as exc:
            raise InvalidInput(f"Invalid JSON body: {exc}") from exc

    def _ingest(self) -> Dict[str, int]:
        data = self._json_body()
        if not isinstance(data, dict) or "entries" not in data:
            raise InvalidInput("Request body must be an object with an 'entries' list")
        return self.api.ingest(data["entries"])

    def do_GET(self) -> None:  # noqa: N802 (HTTP verb naming)
        parsed = urlparse(self.path)
        route = parsed.path.rstrip("/") or "/"
        query = parse_qs(parsed.query)
        if route == "/health":
            self._send_json({"status": "ok"})
        elif route == LOGS_PREFIX:
            self._dispatch(lambda: self.api.list_recent(_int_param(query, "limit")))
        elif route == f"{LOGS_PREFIX}/stats/summary":
            self._dispatch(lambda: self.api.get_summary())
        elif route == f"{LOGS_PREFIX}/stats/attacks":
            self._dispatch(
                lambda: self.api.get_aggregate_stats(_int_param(query, "sample"), _int_param(query, "bins"))
            )
        elif route == f"{LOGS_PREFIX}/stats/report":
            top = _int_param(query, "top")
            self._dispatch(lambda: self.api.get_report(_int_param(query, "sample"), top if top and top > 0 else 5))
        elif route.startswith(f"{LOGS_PREFIX}/") and route.count("/") == 3:
            event_id = unquote(route.rsplit("/", 1)[1])
            self._dispatch(lambda: self.api.get_by_id(event_id))
        else:
            self.send_error(HTTPStatus.NOT_FOUND, "Not Found")

    def do_POST(self) -> None:  # noqa: N802
        route = urlparse(self.path).path.rstrip("/")
        if route == f"{LOGS_PREFIX}/ingest":
            self._dispatch(self._ingest)
        elif route == f"{LOGS_PREFIX}/ingest/raw":
            self._dispatch(lambda: self.api.ingest_raw(self._read_body(), src_ip=self.client_address[0]))
        elif route == f"{LOGS_PREFIX}/classify":
            self._dispatch(lambda: self.api.classify_entry(self._json_body()))
        else:
            self.send_error(HTTPStatus.NOT_FOUND, "Unknown endpoint")

    def log_message(self, format: str, *args) -> None:  # noqa: A003 (shadow built-in)
        logger.debug("%s - %s", self.address_string(), format % args)


def build_server(api: SentinelAPI, host: str = "127.0.0.1", port: int = 5000) -> ThreadingHTTPServer:
    handler_cls = type("BoundHandler", (SentinelHandler,), {"api": api})
    return ThreadingHTTPServer((host, port), handler_cls)


def serve_http(api: SentinelAPI, host: str = "127.0.0.1", port: int = 5000) -> None:
    server = build_server(api, host=host, port=port)
    logger.info("Serving HTTP Sentinel API on http://%s:%s", host, server.server_address[1])
    print(f"[*] Serving HTTP Sentinel API on http://{host}:{server.server_address[1]}{LOGS_PREFIX}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
