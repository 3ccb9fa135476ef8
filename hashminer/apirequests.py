"""JSON-RPC 2.0 request handling for the miner's monitoring and control API."""

from __future__ import annotations

import hmac
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from hashminer.log import LOG_NEXT, Channel, LogOptions, log_line

__all__ = [
    "RpcError",
    "ValueKind",
    "MinerControl",
    "RequestProcessor",
    "get_request_value",
    "parse_request_id",
    "check_write_access",
]

_MAX_UINT = 0xFFFFFFFF
_MAX_UINT64 = 0xFFFFFFFFFFFFFFFF
_MAX_PASSWORD_LENGTH = 500
_MISSING = object()


class RpcError(Exception):
    """A JSON-RPC error with its numeric code and message."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def as_json(self) -> dict[str, Any]:
        """Return the error object placed in a response."""
        return {"code": self.code, "message": self.message}


class ValueKind(Enum):
    """The JSON type a request member must have."""

    BOOL = "bool"
    UINT = "uint"
    UINT64 = "uint64"
    OBJECT = "object"
    STRING = "string"


class MinerControl(ABC):
    """What the API needs from the running miner."""

    @abstractmethod
    def get_stat1(self) -> Any:
        """Return the ``miner_getstat1`` result."""

    @abstractmethod
    def get_stat_detail(self) -> Any:
        """Return the ``miner_getstatdetail`` result."""

    @abstractmethod
    def shuffle(self) -> None:
        """Give the nonce scrambler a new range."""

    @abstractmethod
    def restart(self) -> None:
        """Restart mining asynchronously."""

    @abstractmethod
    def reboot(self, args: list[str]) -> bool:
        """Reboot the miner; return whether that was started."""

    @abstractmethod
    def get_connections(self) -> Any:
        """Return the configured pool connections."""

    @abstractmethod
    def add_connection(self, uri: str) -> None:
        """Add a pool connection; raise on a bad URI."""

    @abstractmethod
    def set_active_connection(self, target: int | str) -> None:
        """Switch to the connection with this index or URI; raise if impossible."""

    @abstractmethod
    def remove_connection(self, index: int) -> None:
        """Remove a pool connection; raise if impossible."""

    @abstractmethod
    def get_scrambler_info(self) -> Any:
        """Return the nonce scrambler description."""

    @abstractmethod
    def get_nonce_scrambler(self) -> int:
        """Return the current nonce scrambler."""

    @abstractmethod
    def get_segment_width(self) -> int:
        """Return the current nonce segment width."""

    @abstractmethod
    def set_nonce_scrambler(self, nonce: int) -> None:
        """Set the nonce scrambler."""

    @abstractmethod
    def set_segment_width(self, width: int) -> None:
        """Set the nonce segment width."""

    @abstractmethod
    def pause_miner(self, index: int, pause: bool) -> bool:
        """Pause or resume a miner; return False if there is no such miner."""


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (list, dict)) and not value)


def _as_uint(value: Any, limit: int) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 0 <= value <= limit else None
    if isinstance(value, float) and value.is_integer() and 0 <= value <= limit:
        return int(value)
    return None


def _to_uint64(value: Any) -> int | None:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value if 0 <= value <= _MAX_UINT64 else None
    if isinstance(value, float) and 0 <= value <= _MAX_UINT64:
        return int(value)
    return None


def _as_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, str)):
        return str(value)
    raise TypeError("Value is not convertible to string.")


def get_request_value(
    request: dict[str, Any],
    name: str,
    kind: ValueKind,
    optional: bool = False,
    default: Any = None,
) -> Any:
    """Return the member ``name`` of ``request`` checked against ``kind``.

    A missing optional member gives ``default``; any other problem raises
    ``RpcError`` with code -32602.
    """
    if name not in request:
        if optional:
            return default
        raise RpcError(-32602, f"Missing '{name}'")
    value = request[name]

    if kind is ValueKind.UINT64:
        if _is_empty(value):
            raise RpcError(-32602, f"Empty '{name}'")
        converted = _to_uint64(value)
        if converted is None:
            raise RpcError(-32602, f"Bad value in '{name}'")
        return converted

    if kind is ValueKind.BOOL:
        valid = isinstance(value, bool)
    elif kind is ValueKind.UINT:
        valid = _as_uint(value, _MAX_UINT) is not None
    elif kind is ValueKind.OBJECT:
        valid = isinstance(value, dict)
    else:
        valid = isinstance(value, str)
    if not valid:
        raise RpcError(-32602, f"Invalid type of value '{name}'")
    if _is_empty(value):
        raise RpcError(-32602, f"Empty '{name}'")
    if kind is ValueKind.UINT:
        return _as_uint(value, _MAX_UINT)
    return value


def parse_request_id(request: dict[str, Any]) -> int | str:
    """Return the request id, which must be an unsigned integer or a string."""
    value = request.get("id")
    if "id" not in request or _is_empty(value):
        raise RpcError(-32600, "Invalid Request (missing or empty id)")
    as_uint = _as_uint(value, _MAX_UINT)
    if as_uint is not None:
        return as_uint
    if isinstance(value, str):
        return value
    raise RpcError(-32600, "Invalid Request (id has invalid type)")


def check_write_access(read_only: bool) -> None:
    """Raise ``RpcError`` if the API is in read-only mode."""
    if read_only:
        raise RpcError(-32601, "Method not available")


def _parse_hex_nonce(text: str) -> int:
    digits = []
    for ch in text[2:]:
        if ch not in "0123456789abcdefABCDEF":
            break
        digits.append(ch)
    value = int("".join(digits), 16) if digits else 0
    if value > _MAX_UINT64:
        raise RpcError(-422, "Invalid nonce")
    return value


class RequestProcessor:
    """Answers JSON-RPC requests of one API session."""

    def __init__(
        self,
        control: MinerControl,
        read_only: bool = False,
        password: str = "",
        log_options: LogOptions | None = None,
    ) -> None:
        self.control = control
        self.read_only = read_only
        self._password = password
        self.log_options = log_options if log_options is not None else LogOptions()
        self.authenticated = not password

    def process(self, request: Any) -> dict[str, Any]:
        """Return the response object for one decoded request."""
        if request is None:
            request = {}
        if not isinstance(request, dict):
            raise TypeError("request must be a JSON object")

        response: dict[str, Any] = {"jsonrpc": "2.0"}
        try:
            response["id"] = parse_request_id(request)
        except RpcError as err:
            response["id"] = None
            response["error"] = err.as_json()
            return response

        try:
            jsonrpc = get_request_value(request, "jsonrpc", ValueKind.STRING)
            if jsonrpc != "2.0":
                raise RpcError(-32600, "Invalid Request")
            method = get_request_value(request, "method", ValueKind.STRING)
        except RpcError:
            response["error"] = RpcError(-32600, "Invalid Request").as_json()
            return response

        try:
            if not self.authenticated or method == "api_authorize":
                self._authorize(method, request)
            else:
                log_line(Channel.NOTE, f"API : Method {method} requested", self.log_options)
                self._dispatch(method, request, response)
        except RpcError as err:
            response.pop("result", None)
            response["error"] = err.as_json()
        return response

    def _authorize(self, method: str, request: dict[str, Any]) -> None:
        if method != "api_authorize":
            raise RpcError(-403, "Authorization needed")
        self.authenticated = False
        params = get_request_value(request, "params", ValueKind.OBJECT)
        given = get_request_value(params, "psw", ValueKind.STRING)
        given_bytes = given.encode()[:_MAX_PASSWORD_LENGTH]
        expected_bytes = self._password.encode()[:_MAX_PASSWORD_LENGTH]
        if hmac.compare_digest(given_bytes, expected_bytes):
            self.authenticated = True
            return
        log_line(Channel.WARN, "API : Invalid password provided.", self.log_options)
        raise RpcError(-401, "Invalid password")

    def _params(self, request: dict[str, Any]) -> dict[str, Any]:
        return get_request_value(request, "params", ValueKind.OBJECT)

    def _dispatch(self, method: str, request: dict[str, Any], response: dict[str, Any]) -> None:
        control = self.control
        if method == "miner_getstat1":
            response["result"] = control.get_stat1()
        elif method == "miner_getstatdetail":
            response["result"] = control.get_stat_detail()
        elif method == "miner_shuffle":
            check_write_access(self.read_only)
            response["result"] = True
            control.shuffle()
        elif method == "miner_ping":
            response["result"] = "pong"
        elif method == "miner_restart":
            check_write_access(self.read_only)
            response["result"] = True
            control.restart()
        elif method == "miner_reboot":
            check_write_access(self.read_only)
            response["result"] = control.reboot(["api_miner_reboot"])
        elif method == "miner_getconnections":
            response["result"] = control.get_connections()
        elif method == "miner_addconnection":
            check_write_access(self.read_only)
            uri = get_request_value(self._params(request), "uri", ValueKind.STRING)
            try:
                control.add_connection(uri)
            except Exception:
                raise RpcError(-422, f"Bad URI : {uri}") from None
            response["result"] = True
        elif method == "miner_setactiveconnection":
            check_write_access(self.read_only)
            params = self._params(request)
            if "index" in params:
                name, kind = "index", ValueKind.UINT
            else:
                name, kind = "URI", ValueKind.STRING
            try:
                target = get_request_value(params, name, kind)
            except RpcError:
                raise RpcError(-422, "Invalid index") from None
            try:
                control.set_active_connection(target)
            except Exception as exc:
                raise RpcError(-422, str(exc)) from None
            response["result"] = True
        elif method == "miner_removeconnection":
            check_write_access(self.read_only)
            index = get_request_value(self._params(request), "index", ValueKind.UINT)
            try:
                control.remove_connection(index)
            except Exception as exc:
                raise RpcError(-422, str(exc)) from None
            response["result"] = True
        elif method == "miner_getscramblerinfo":
            response["result"] = control.get_scrambler_info()
        elif method == "miner_setscramblerinfo":
            check_write_access(self.read_only)
            self._set_scrambler_info(self._params(request))
            response["result"] = True
        elif method == "miner_pausegpu":
            check_write_access(self.read_only)
            params = self._params(request)
            index = get_request_value(params, "index", ValueKind.UINT)
            pause = get_request_value(params, "pause", ValueKind.BOOL)
            if not control.pause_miner(index, pause):
                raise RpcError(-422, "Index out of bounds")
            response["result"] = True
        elif method == "miner_setverbosity":
            check_write_access(self.read_only)
            verbosity = get_request_value(self._params(request), "verbosity", ValueKind.UINT)
            if verbosity >= LOG_NEXT:
                raise RpcError(-422, f"Verbosity out of bounds (0-{LOG_NEXT - 1})")
            log_line(Channel.NOTE, f"Setting verbosity level to {verbosity}", self.log_options)
            self.log_options.verbosity = verbosity
            response["result"] = True
        else:
            raise RpcError(-32601, "Method not found")

    def _set_scrambler_info(self, params: dict[str, Any]) -> None:
        control = self.control
        any_value = False
        nonce = control.get_nonce_scrambler()
        width = control.get_segment_width()

        if "noncescrambler" in params:
            any_value = True
            text = _as_string(params["noncescrambler"])
            if text.startswith("0x"):
                nonce = _parse_hex_nonce(text)
            else:
                nonce = get_request_value(params, "noncescrambler", ValueKind.UINT64)

        if "segmentwidth" in params:
            any_value = True
            width = get_request_value(params, "segmentwidth", ValueKind.UINT)

        if not any_value:
            raise RpcError(-32602, "Missing parameters")

        if width < 10:
            width = 10
        if width > 50:
            width = 40
        control.set_nonce_scrambler(nonce)
        control.set_segment_width(width)