"""Routes JSON-RPC requests to the methods of registered services."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .codec import new_rpc_response
from .rpc_errors import (
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    RpcError,
    SubscriptionNotFoundError,
)

JSONRPC_VERSION = "2.0"
SUBSCRIBE_METHOD = "edge_subscribe"

_log = logging.getLogger(__name__)

_MISSING: Any = object()

SubscribeHandler = Callable[[str, list, Any], str]


def lower_case_first(name: str) -> str:
    """Lower-case the first character of a name."""
    if not name:
        return ""
    return name[0].lower() + name[1:]


def format_filter_response(id: Any, result: str) -> str:
    """Format a subscription reply; the id must be a string, an integral number or None."""
    if isinstance(id, str):
        return f'{{"jsonrpc":"2.0","id":"{id}","result":"{result}"}}'
    if isinstance(id, (int, float)) and not isinstance(id, bool):
        if isinstance(id, int) or id.is_integer():
            return f'{{"jsonrpc":"2.0","id":{int(id)},"result":"{result}"}}'
        raise InvalidRequestError("Invalid json request")
    if id is None:
        return f'{{"jsonrpc":"2.0","id":null,"result":"{result}"}}'
    raise InvalidRequestError("Invalid json request")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _load_json(body: bytes | str) -> Any:
    text = body.decode("utf-8") if isinstance(body, (bytes, bytearray)) else body
    return json.loads(text, parse_constant=_reject_constant)


def _normalize_id(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    return value


@dataclass
class _Request:
    id: Any = None
    method: str = ""
    params: Any = _MISSING


def _decode_request(obj: Any) -> _Request:
    """Turn a decoded JSON value into a request; field names match case-insensitively."""
    request = _Request()
    if obj is None:
        return request
    if not isinstance(obj, dict):
        raise ValueError("request must be a JSON object")
    for key, value in obj.items():
        name = key.lower()
        if name == "id":
            request.id = _normalize_id(value)
        elif name == "method":
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValueError("method must be a string")
            request.method = value
        elif name == "params":
            request.params = value
    return request


@dataclass(frozen=True)
class _Function:
    fn: Callable[..., Any]
    num_params: int
    required: int

    def build_args(self, values: list) -> list:
        args = []
        for index in range(self.num_params):
            if index < len(values):
                args.append(values[index])
            elif index < self.required:
                args.append(None)
            else:
                break
        return args


def _describe(fn: Callable[..., Any]) -> _Function:
    """Count the positional parameters a callable takes, without its bound instance."""
    target = getattr(fn, "__func__", fn)
    code = getattr(target, "__code__", None)
    if code is None:
        raise TypeError("callable has no inspectable code")
    names = code.co_varnames[: code.co_argcount]
    defaults = getattr(target, "__defaults__", None) or ()
    required = len(names) - len(defaults)
    if target is not fn and getattr(fn, "__self__", None) is not None:
        names = names[1:]
        required -= 1
    return _Function(fn, len(names), max(required, 0))


class Dispatcher:
    """Handles JSON-RPC requests by calling 'service_method' on registered services."""

    def __init__(
        self,
        batch_length_limit: int = 0,
        subscribe_handler: SubscribeHandler | None = None,
    ) -> None:
        self.batch_length_limit = batch_length_limit
        self._subscribe_handler = subscribe_handler
        self._services: dict[str, dict[str, _Function]] = {}

    def register_service(self, name: str, service: Any) -> None:
        """Expose every public method of service as '<name>_<method>'."""
        if not name:
            raise ValueError("jsonrpc: serviceName cannot be empty")
        functions: dict[str, _Function] = {}
        for attr in dir(service):
            if attr.startswith("_"):
                continue
            member = getattr(service, attr)
            if not callable(member):
                continue
            try:
                functions[lower_case_first(attr)] = _describe(member)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"jsonrpc: function '{name}_{attr}' is not usable: {exc}") from exc
        self._services[name] = functions

    def _lookup(self, method: str) -> _Function:
        service_name, sep, func_name = method.partition("_")
        if not sep:
            raise MethodNotFoundError(method)
        functions = self._services.get(service_name)
        if functions is None or func_name not in functions:
            raise MethodNotFoundError(method)
        return functions[func_name]

    def _handle_req(self, request: _Request) -> bytes | None:
        _log.debug("request method=%s id=%r", request.method, request.id)
        function = self._lookup(request.method)

        values: list = []
        if function.num_params > 0:
            if request.params is _MISSING:
                raise InvalidParamsError("Invalid Params")
            if request.params is not None:
                if not isinstance(request.params, list):
                    raise InvalidParamsError("Invalid Params")
                values = request.params

        args = function.build_args(values)
        try:
            result = function.fn(*args)
        except Exception as exc:
            _log.error("failed to dispatch method=%s err=%s", request.method, exc)
            raise InvalidRequestError(str(exc)) from exc

        if result is None:
            return None
        try:
            return json.dumps(result, separators=(",", ":"), allow_nan=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            _log.error("failed to dispatch method=%s err=%s", request.method, exc)
            raise InternalError("Internal error") from exc

    def _respond(self, request: _Request) -> bytes:
        try:
            reply = self._handle_req(request)
        except RpcError as err:
            return new_rpc_response(request.id, JSONRPC_VERSION, None, err).to_bytes()
        return new_rpc_response(request.id, JSONRPC_VERSION, reply, None).to_bytes()

    @staticmethod
    def _invalid(id: Any = None, message: str = "Invalid json request") -> bytes:
        return new_rpc_response(
            id, JSONRPC_VERSION, None, InvalidRequestError(message)
        ).to_bytes()

    def handle(self, body: bytes) -> bytes:
        """Handle a single request or a batch and return the encoded reply."""
        stripped = bytes(body).lstrip(b" \t\r\n")
        if not stripped:
            return self._invalid()

        if stripped[:1] == b"{":
            try:
                request = _decode_request(_load_json(body))
            except ValueError:
                return self._invalid()
            if not request.method:
                return self._invalid(request.id)
            return self._respond(request)

        try:
            decoded = _load_json(body)
            if decoded is None:
                decoded = []
            if not isinstance(decoded, list):
                raise ValueError("batch must be a JSON array")
            requests = [_decode_request(item) for item in decoded]
        except ValueError:
            return self._invalid()

        if self.batch_length_limit and len(requests) > self.batch_length_limit:
            return self._invalid(message="Batch request length too long")

        try:
            parts = [self._respond(request) for request in requests]
        except ValueError:
            return new_rpc_response(
                None, JSONRPC_VERSION, None, InternalError("Internal error")
            ).to_bytes()
        return b"[" + b",".join(parts) + b"]"

    def _handle_subscribe(self, request: _Request, conn: Any) -> str:
        if request.params is _MISSING or (
            request.params is not None and not isinstance(request.params, list)
        ):
            raise InvalidRequestError("Invalid json request")
        params = request.params or []
        if not params:
            raise InvalidParamsError("Invalid params")

        method = params[0]
        if not isinstance(method, str):
            raise SubscriptionNotFoundError("")
        if self._subscribe_handler is None:
            raise SubscriptionNotFoundError(method)
        try:
            filter_id = self._subscribe_handler(method, list(params[1:]), conn)
        except RpcError:
            raise
        except Exception as exc:
            raise InternalError(str(exc)) from exc
        return str(filter_id)

    def handle_ws(self, body: bytes, conn: Any) -> bytes:
        """Handle a websocket message; raises the RpcError of a failed ordinary call."""
        try:
            request = _decode_request(_load_json(body))
        except ValueError:
            return self._invalid()

        if request.method == SUBSCRIBE_METHOD:
            try:
                filter_id = self._handle_subscribe(request, conn)
                return format_filter_response(request.id, filter_id).encode("utf-8")
            except RpcError as err:
                return new_rpc_response(request.id, JSONRPC_VERSION, None, err).to_bytes()

        reply = self._handle_req(request)
        return new_rpc_response(request.id, JSONRPC_VERSION, reply, None).to_bytes()