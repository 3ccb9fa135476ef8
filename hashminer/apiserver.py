"""TCP endpoint of the monitoring API, serving JSON-RPC lines and a plain HTTP status page."""

from __future__ import annotations

import codecs
import ipaddress
import json
import re
import socket
import threading
from typing import Callable

from hashminer.apirequests import MinerControl, RequestProcessor
from hashminer.apistats import get_http_miner_stat_detail
from hashminer.log import Channel, log_line

__all__ = ["ApiSession", "ApiServer", "build_http_response"]

DEFAULT_SERVER_NAME = "hashminer"

_HTTP_PATTERN = re.compile(r"^([A-Z]{1,6}) (/\S*) (HTTP/1\.[0-9])")
_STAT_PATHS = ("/", "/getstat1")


def build_http_response(
    version: str, status: str, content_type: str, body: str, server: str = DEFAULT_SERVER_NAME
) -> str:
    """Return a complete HTTP response carrying ``body``."""
    length = len(body.encode("utf-8"))
    return (
        f"{version} {status}\r\n"
        f"Server: {server}\r\n"
        f"Content-Type: {content_type}\r\n"
        f"Content-Length: {length}\r\n\r\n"
        f"{body}\r\n"
    )


def _encode_reply(reply: dict) -> str:
    return json.dumps(reply, sort_keys=True, separators=(",", ":")) + "\n"


class ApiSession:
    """One client of the API: turns received bytes into replies to send back.

    After an HTTP request has been answered ``should_close`` is set and the
    connection is to be dropped once the reply is sent.
    """

    def __init__(
        self,
        session_id: int,
        processor: RequestProcessor,
        http_body: Callable[[], str],
        server_name: str = DEFAULT_SERVER_NAME,
    ) -> None:
        self.session_id = session_id
        self.processor = processor
        self.http_body = http_body
        self.server_name = server_name
        self.should_close = False
        self._message = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, data: bytes | str) -> list[str]:
        """Take in received data and return the replies it produces, in order."""
        if isinstance(data, bytes):
            data = self._decoder.decode(data)
        self._message += data
        if len(self._message) < 4:
            return []

        match = _HTTP_PATTERN.match(self._message)
        if match:
            self._message = ""
            self.should_close = True
            return [self._http_reply(*match.groups())]

        replies = []
        while "\n" in self._message:
            line, self._message = self._message.split("\n", 1)
            line = line.strip()
            if line:
                replies.append(_encode_reply(self._json_reply(line)))
        return replies

    def _http_reply(self, method: str, path: str, version: str) -> str:
        if method != "GET":
            what = f"Method {method} not allowed"
            return build_http_response(
                version, "405 Method not allowed", "text/plain", what, self.server_name
            )
        if path not in _STAT_PATHS:
            what = f"The requested resource {path} not found on this server"
            return build_http_response(
                version, "404 Not Found", "text/plain", what, self.server_name
            )
        try:
            body = self.http_body()
        except Exception as exc:
            what = f"Internal error : {exc}"
            return build_http_response(
                version, "500 Internal Server Error", "text/plain", what, self.server_name
            )
        return build_http_response(
            version, "200 Ok Error", "text/html; charset=utf-8", body, self.server_name
        )

    def _json_reply(self, line: str) -> dict:
        try:
            request = json.loads(line)
        except ValueError as exc:
            what = str(exc).replace("\n", " ")
            log_line(Channel.WARN, f"API : Got invalid Json message {what}")
            return {
                "jsonrpc": "2.0",
                "id": None,
                "error": {"errorcode": "-32700", "message": f"Json parse error : {what}"},
            }
        try:
            return self.processor.process(request)
        except Exception as exc:
            return {
                "jsonrpc": "2.0",
                "id": None,
                "error": {"errorcode": "500", "message": str(exc)},
            }


class ApiServer:
    """Listens for API clients and serves each on its own thread.

    A negative ``port`` puts the API in read-only mode on the absolute port;
    a zero port leaves the server off.
    """

    def __init__(
        self,
        address: str,
        port: int,
        password: str,
        control: MinerControl,
        http_body: Callable[[], str] | None = None,
        server_name: str = DEFAULT_SERVER_NAME,
    ) -> None:
        self.address = address
        self.read_only = port < 0
        self.port = abs(port)
        self._password = password
        self.control = control
        self.http_body = http_body or (
            lambda: get_http_miner_stat_detail(control.get_stat_detail())
        )
        self.server_name = server_name
        self._lock = threading.Lock()
        self._running = threading.Event()
        self._listener: socket.socket | None = None
        self._accept_thread: threading.Thread | None = None
        self._sessions: dict[int, tuple[socket.socket, threading.Thread]] = {}
        self._last_session_id = 0

    def is_running(self) -> bool:
        """Return whether the server is accepting connections."""
        return self._running.is_set()

    @property
    def session_count(self) -> int:
        """The number of open client sessions."""
        with self._lock:
            return len(self._sessions)

    def start(self) -> None:
        """Bind and begin accepting clients; does nothing if the port is zero."""
        if self.port == 0 or self.is_running():
            return
        family = (
            socket.AF_INET6
            if ipaddress.ip_address(self.address).version == 6
            else socket.AF_INET
        )
        try:
            listener = socket.create_server(
                (self.address, self.port), family=family, backlog=64
            )
        except OSError:
            log_line(Channel.WARN, f"Could not start API server on port: {self.port}")
            log_line(Channel.WARN, "Ensure port is not in use by another service")
            return
        listener.settimeout(0.2)
        self._listener = listener
        suffix = "." if not self._password else ". Authentication needed."
        log_line(Channel.NOTE, f"Api server listening on port {self.port}{suffix}")
        self._running.set()
        self._accept_thread = threading.Thread(
            target=self._accept_loop, name="api", daemon=True
        )
        self._accept_thread.start()

    def stop(self) -> None:
        """Stop accepting, drop every session and wait for the threads to end."""
        if not self.is_running():
            return
        self._running.clear()
        if self._accept_thread is not None:
            self._accept_thread.join()
            self._accept_thread = None
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        with self._lock:
            sessions = list(self._sessions.values())
        for conn, _ in sessions:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        for _, thread in sessions:
            thread.join(timeout=5)
        with self._lock:
            self._sessions.clear()

    def __enter__(self) -> ApiServer:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _accept_loop(self) -> None:
        assert self._listener is not None
        while self._running.is_set():
            try:
                conn, peer = self._listener.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            conn.settimeout(None)
            with self._lock:
                self._last_session_id += 1
                session_id = self._last_session_id
                processor = RequestProcessor(self.control, self.read_only, self._password)
                session = ApiSession(session_id, processor, self.http_body, self.server_name)
                thread = threading.Thread(
                    target=self._serve, args=(session, conn), name="api", daemon=True
                )
                self._sessions[session_id] = (conn, thread)
            log_line(Channel.NOTE, f"New API session from {peer[0]}:{peer[1]}")
            thread.start()

    def _serve(self, session: ApiSession, conn: socket.socket) -> None:
        try:
            with conn:
                while self._running.is_set():
                    data = conn.recv(4096)
                    if not data:
                        break
                    for reply in session.feed(data):
                        conn.sendall(reply.encode("utf-8"))
                    if session.should_close:
                        break
        except OSError:
            pass
        finally:
            with self._lock:
                self._sessions.pop(session.session_id, None)