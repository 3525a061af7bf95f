"""HTTP transport adapter for the contest server.

Owns the socket and request parsing, then hands ``type``/``body`` to the core
router. The contest server treats anything but a 200 as a contract violation,
so every response is a 200 ``text/html`` page, empty or not.
"""

from __future__ import annotations

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, Optional
from urllib.parse import parse_qs, unquote_plus, urlparse

from core.config import ServerConfig
from core.router import MessageRouter

LOGGER = logging.getLogger(__name__)

CONTENT_TYPE = "text/html; charset=utf-8"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class ChallengeHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, server_address, RequestHandlerClass, *, router: MessageRouter, config: ServerConfig):
        super().__init__(server_address, RequestHandlerClass)
        self.router = router
        self.config = config


def _first(params: Dict[str, list], name: str) -> Optional[str]:
    values = params.get(name)
    return values[0] if values else None


def _is_form(content_type: str) -> bool:
    return content_type.split(";", 1)[0].strip().lower() == FORM_CONTENT_TYPE


class ChallengeRequestHandler(BaseHTTPRequestHandler):
    server: ChallengeHTTPServer

    def _send(self, text: Optional[str]) -> None:
        body = text.encode("utf-8") if text else b""
        self.send_response(200)
        self.send_header("Content-Type", CONTENT_TYPE)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body and self.command != "HEAD":
            self.wfile.write(body)

    def _send_info(self) -> None:
        LOGGER.debug("%s request from %s", self.command, self.client_address[0])
        self._send(self.server.config.info_html)

    def _content_length(self) -> Optional[int]:
        raw = self.headers.get("Content-Length")
        if raw is None:
            return None
        try:
            length = int(raw)
        except ValueError:
            return None
        return length if length >= 0 else None

    def _read_envelope(self, length: int) -> tuple[Optional[str], Optional[str]]:
        raw = self.rfile.read(length).decode("utf-8", errors="replace") if length else ""
        content_type = self.headers.get("Content-Type", "")
        params = parse_qs(urlparse(self.path).query, keep_blank_values=True)

        if _is_form(content_type):
            for name, values in parse_qs(raw, keep_blank_values=True, encoding="utf-8").items():
                params.setdefault(name, []).extend(values)
            body = _first(params, "body")
            if body is not None and self.server.config.decode_form_body:
                # The contest server percent-encodes the JSON inside the form field.
                body = unquote_plus(body, encoding="utf-8")
        else:
            body = _first(params, "body")
            if body is None and raw:
                body = raw
        return _first(params, "type"), body

    def do_POST(self):
        length = self._content_length()
        if length is None:
            LOGGER.info("Initial message with no content received")
            return self._send(None)

        message_type, body = self._read_envelope(length)
        try:
            response = self.server.router.handle(message_type, body)
        except Exception:
            LOGGER.exception("Error while handling %s message", message_type)
            response = None

        if response and not response.startswith("handle"):
            LOGGER.debug("Send response: %s", response)
        return self._send(response)

    def do_GET(self):
        self._send_info()

    do_HEAD = do_GET
    do_PUT = do_GET
    do_DELETE = do_GET
    do_PATCH = do_GET

    def log_message(self, format, *args):
        LOGGER.debug("%s - %s", self.address_string(), format % args)


def build_server(router: MessageRouter, config: ServerConfig) -> ChallengeHTTPServer:
    return ChallengeHTTPServer((config.host, config.port), ChallengeRequestHandler, router=router, config=config)


def start_http_server(router: MessageRouter, config: Optional[ServerConfig] = None) -> ChallengeHTTPServer:
    """Start the server on a daemon thread and return it; callers shut it down."""

    server = build_server(router, config or ServerConfig())
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


def serve(router: MessageRouter, config: ServerConfig) -> None:
    """Serve in the foreground until interrupted."""

    server = build_server(router, config)
    host, port = server.server_address[:2]
    LOGGER.info("Listening for contest messages on %s:%s", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        LOGGER.info("Interrupted, shutting down")
    finally:
        server.server_close()
