"""HTTP and websocket front end for the JSON-RPC dispatcher."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, BinaryIO, Protocol
from urllib.parse import urlsplit

WS_PATH = "/edge_ws"

TEXT_MESSAGE = 0x1
BINARY_MESSAGE = 0x2
_CONTINUATION = 0x0
_CLOSE = 0x8
_PING = 0x9
_PONG = 0xA

_CLOSE_NORMAL = 1000
_CLOSE_GOING_AWAY = 1001
_CLOSE_ABNORMAL = 1006
_GRACEFUL_CLOSE_CODES = frozenset({_CLOSE_NORMAL, _CLOSE_GOING_AWAY, _CLOSE_ABNORMAL})

_WS_GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"

_ALLOW_METHODS = "POST, OPTIONS"
_ALLOW_HEADERS = (
    "Accept, Content-Type, Content-Length, Accept-Encoding, X-CSRF-Token, Authorization"
)

_log = logging.getLogger(__name__)


class RequestDispatcher(Protocol):
    """What the server needs from a JSON-RPC dispatcher."""

    def handle(self, body: bytes) -> bytes: ...

    def handle_ws(self, body: bytes, conn: Any) -> bytes: ...


@dataclass
class ServerConfig:
    """Settings for the JSON-RPC HTTP server."""

    addr: tuple[str, int]
    network_id: int = 0
    network_name: str = ""
    version: str = ""
    access_control_allow_origin: list[str] = field(default_factory=list)


@dataclass
class HttpResponse:
    """The status, headers and body of an HTTP reply."""

    status: int
    headers: dict[str, str]
    body: bytes


def allowed_origin(allowed: Iterable[str], origin: str) -> str | None:
    """Return the Access-Control-Allow-Origin value for origin, or None if not allowed."""
    for candidate in allowed:
        if candidate == "*":
            return "*"
        if candidate == origin:
            return origin
    return None


class _WsClosed(Exception):
    """The peer closed the websocket."""

    def __init__(self, code: int) -> None:
        super().__init__(f"websocket closed with code {code}")
        self.code = code


def _accept_key(key: str) -> str:
    digest = hashlib.sha1((key + _WS_GUID).encode("ascii")).digest()
    return base64.b64encode(digest).decode("ascii")


def _read_exact(rfile: BinaryIO, size: int) -> bytes:
    data = rfile.read(size) if size else b""
    if len(data) < size:
        raise _WsClosed(_CLOSE_ABNORMAL)
    return data


def _encode_frame(opcode: int, payload: bytes) -> bytes:
    size = len(payload)
    if size < 126:
        header = bytes([0x80 | opcode, size])
    elif size < 1 << 16:
        header = bytes([0x80 | opcode, 126]) + size.to_bytes(2, "big")
    else:
        header = bytes([0x80 | opcode, 127]) + size.to_bytes(8, "big")
    return header + payload


class WebSocketConnection:
    """A server-side websocket connection that can be written from several threads."""

    def __init__(self, rfile: BinaryIO, wfile: BinaryIO) -> None:
        self._rfile = rfile
        self._wfile = wfile
        self._lock = threading.Lock()
        self.filter_id = ""

    def _write_frame(self, opcode: int, payload: bytes) -> None:
        with self._lock:
            self._wfile.write(_encode_frame(opcode, payload))
            self._wfile.flush()

    def write_message(self, message_type: int, data: bytes) -> None:
        """Send a message to the peer; logs and re-raises write failures."""
        try:
            self._write_frame(message_type, bytes(data))
        except (OSError, ValueError) as exc:
            _log.error("Unable to write WS message, %s", exc)
            raise

    def _read_frame(self) -> tuple[bool, int, bytes]:
        first, second = _read_exact(self._rfile, 2)
        fin = bool(first & 0x80)
        opcode = first & 0x0F
        if not second & 0x80:
            raise ConnectionError("websocket frame from client is not masked")
        size = second & 0x7F
        if size == 126:
            size = int.from_bytes(_read_exact(self._rfile, 2), "big")
        elif size == 127:
            size = int.from_bytes(_read_exact(self._rfile, 8), "big")
        mask = _read_exact(self._rfile, 4)
        masked = _read_exact(self._rfile, size)
        payload = bytes(b ^ mask[i % 4] for i, b in enumerate(masked))
        return fin, opcode, payload

    def read_message(self) -> tuple[int, bytes]:
        """Block for the next data message; raises _WsClosed when the peer closes."""
        message_type: int | None = None
        fragments: list[bytes] = []
        while True:
            fin, opcode, payload = self._read_frame()
            if opcode == _PING:
                self._write_frame(_PONG, payload)
                continue
            if opcode == _PONG:
                continue
            if opcode == _CLOSE:
                code = int.from_bytes(payload[:2], "big") if len(payload) >= 2 else 1005
                try:
                    self._write_frame(_CLOSE, payload[:2])
                except (OSError, ValueError):
                    pass
                raise _WsClosed(code)
            if opcode == _CONTINUATION:
                if message_type is None:
                    raise ConnectionError("unexpected continuation frame")
            else:
                if message_type is not None:
                    raise ConnectionError("expected continuation frame")
                message_type = opcode
            fragments.append(payload)
            if fin:
                return message_type, b"".join(fragments)


def _is_supported_ws_type(message_type: int) -> bool:
    return message_type in (TEXT_MESSAGE, BINARY_MESSAGE)


class JSONRPCServer:
    """Serves JSON-RPC over HTTP POST and over websockets at /edge_ws."""

    def __init__(self, config: ServerConfig, dispatcher: RequestDispatcher) -> None:
        self.config = config
        self._dispatcher = dispatcher
        self._serving = False
        self._state_lock = threading.Lock()
        self._httpd = ThreadingHTTPServer(config.addr, _make_handler(self))
        self._httpd.daemon_threads = True
        _log.info("http server started addr=%s:%d", *self.address)

    @property
    def address(self) -> tuple[str, int]:
        host, port = self._httpd.server_address[:2]
        return str(host), int(port)

    def handle_request(self, method: str, body: bytes, origin: str = "") -> HttpResponse:
        """Answer a plain HTTP request made to the JSON-RPC endpoint."""
        headers = {
            "Content-Type": "application/json",
            "Access-Control-Allow-Methods": _ALLOW_METHODS,
            "Access-Control-Allow-Headers": _ALLOW_HEADERS,
        }
        cors = allowed_origin(self.config.access_control_allow_origin, origin)
        if cors is not None:
            headers["Access-Control-Allow-Origin"] = cors

        if method == "POST":
            payload = self._handle_jsonrpc(body)
        elif method == "GET":
            payload = self._handle_get()
        elif method == "OPTIONS":
            payload = b""
        else:
            payload = f"method {method} not allowed".encode("utf-8")
        return HttpResponse(200, headers, payload)

    def _handle_jsonrpc(self, body: bytes) -> bytes:
        _log.debug("handle request=%r", body)
        try:
            response = self._dispatcher.handle(body)
        except Exception as exc:
            return str(exc).encode("utf-8")
        _log.debug("handle response=%r", response)
        return response

    def _handle_get(self) -> bytes:
        data = {
            "name": self.config.network_name,
            "networkID": self.config.network_id,
            "version": self.config.version,
        }
        return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    def _handle_ws_message(
        self, message_type: int, message: bytes, conn: WebSocketConnection
    ) -> None:
        try:
            response = self._dispatcher.handle_ws(message, conn)
        except Exception as exc:
            _log.error("Unable to handle WS request, %s", exc)
            response = f"WS Handle error: {exc}".encode("utf-8")
        try:
            conn.write_message(message_type, response)
        except (OSError, ValueError):
            pass

    def _serve_ws(self, conn: WebSocketConnection) -> None:
        _log.info("Websocket connection established")
        while True:
            try:
                message_type, message = conn.read_message()
            except _WsClosed as closed:
                if closed.code in _GRACEFUL_CLOSE_CODES:
                    _log.info("Closing WS connection gracefully")
                else:
                    _log.error("Unable to read WS message, %s", closed)
                    _log.info("Closing WS connection with error")
                break
            except (OSError, ConnectionError, ValueError) as exc:
                _log.error("Unable to read WS message, %s", exc)
                _log.info("Closing WS connection with error")
                break
            if _is_supported_ws_type(message_type):
                threading.Thread(
                    target=self._handle_ws_message,
                    args=(message_type, message, conn),
                    daemon=True,
                ).start()

        remove = getattr(self._dispatcher, "remove_filter_by_ws", None)
        if callable(remove):
            remove(conn)

    def serve_forever(self) -> None:
        """Serve requests until shutdown() is called."""
        with self._state_lock:
            self._serving = True
        try:
            self._httpd.serve_forever()
        except Exception as exc:
            _log.error("closed http connection: %s", exc)
            raise

    def shutdown(self) -> None:
        """Stop serving and release the listening socket."""
        with self._state_lock:
            serving = self._serving
            self._serving = False
        if serving:
            self._httpd.shutdown()
        self._httpd.server_close()


def _make_handler(server: JSONRPCServer) -> type[BaseHTTPRequestHandler]:
    class _Handler(BaseHTTPRequestHandler):
        protocol_version = "HTTP/1.1"

        def log_message(self, format: str, *args: Any) -> None:
            _log.debug(format, *args)

        def _read_body(self) -> bytes:
            encoding = self.headers.get("Transfer-Encoding", "")
            if "chunked" in encoding.lower():
                chunks = []
                while True:
                    line = self.rfile.readline()
                    size = int(line.split(b";", 1)[0].strip() or b"0", 16)
                    if size == 0:
                        while self.rfile.readline() not in (b"\r\n", b"\n", b""):
                            pass
                        return b"".join(chunks)
                    chunks.append(self.rfile.read(size))
                    self.rfile.readline()
            length = int(self.headers.get("Content-Length") or 0)
            if length < 0:
                raise ValueError("negative Content-Length")
            return self.rfile.read(length) if length else b""

        def _serve(self) -> None:
            if urlsplit(self.path).path == WS_PATH:
                self._upgrade()
                return
            try:
                body = self._read_body()
            except ValueError:
                self.send_error(400, "Bad Request")
                return
            response = server.handle_request(
                self.command, body, self.headers.get("Origin", "")
            )
            self.send_response(response.status)
            for name, value in response.headers.items():
                self.send_header(name, value)
            self.send_header("Content-Length", str(len(response.body)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(response.body)

        def _upgrade(self) -> None:
            key = self.headers.get("Sec-WebSocket-Key", "")
            upgrade = self.headers.get("Upgrade", "").lower()
            connection = self.headers.get("Connection", "").lower()
            if (
                self.command != "GET"
                or "websocket" not in upgrade
                or "upgrade" not in connection
                or self.headers.get("Sec-WebSocket-Version") != "13"
                or not key
            ):
                _log.error("Unable to upgrade to a WS connection")
                self.send_error(400, "Bad Request")
                return
            self.send_response(101, "Switching Protocols")
            self.send_header("Upgrade", "websocket")
            self.send_header("Connection", "Upgrade")
            self.send_header("Sec-WebSocket-Accept", _accept_key(key))
            self.end_headers()
            self.wfile.flush()
            self.close_connection = True
            server._serve_ws(WebSocketConnection(self.rfile, self.wfile))

        do_GET = _serve
        do_POST = _serve
        do_OPTIONS = _serve
        do_PUT = _serve
        do_DELETE = _serve
        do_PATCH = _serve
        do_HEAD = _serve

    return _Handler