"""JSON-RPC response objects and their wire encoding."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from .rpc_errors import RpcError

_HTML_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _marshal(value: Any) -> str:
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    return text.translate(_HTML_ESCAPES)


def _compact(raw: bytes) -> str:
    """Validate raw JSON and strip insignificant whitespace from it."""
    text = raw.decode("utf-8")
    json.loads(text, parse_constant=_reject_constant)
    out: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
            out.append(ch)
        elif ch not in " \t\r\n":
            out.append(ch)
    return "".join(out).translate(_HTML_ESCAPES)


@dataclass
class ObjectError:
    """The error member of a JSON-RPC response."""

    code: int
    message: str
    data: Any = None

    def _fields(self) -> str:
        parts = [f'"code":{_marshal(self.code)}', f'"message":{_marshal(self.message)}']
        if self.data is not None:
            parts.append(f'"data":{_marshal(self.data)}')
        return "{" + ",".join(parts) + "}"

    def to_json(self) -> str:
        """Encode as compact JSON; data is left out when it is None."""
        return self._fields()

    def __str__(self) -> str:
        try:
            return self.to_json()
        except (TypeError, ValueError) as exc:
            return f"jsonrpc.internal marshal error: {exc}"


@dataclass
class ErrorResponse:
    """A JSON-RPC response that carries an error."""

    jsonrpc: str
    id: Any
    error: ObjectError | None

    def data(self) -> bytes:
        """The encoded error object, or the encoding failure's text."""
        try:
            return (self.error.to_json() if self.error else "null").encode("utf-8")
        except (TypeError, ValueError) as exc:
            return str(exc).encode("utf-8")

    def to_bytes(self) -> bytes:
        """Serialise the whole response; the id is left out when it is None."""
        parts = [f'"jsonrpc":{_marshal(self.jsonrpc)}']
        if self.id is not None:
            parts.append(f'"id":{_marshal(self.id)}')
        error = self.error.to_json() if self.error is not None else "null"
        parts.append(f'"error":{error}')
        return ("{" + ",".join(parts) + "}").encode("utf-8")


@dataclass
class SuccessResponse:
    """A JSON-RPC response that carries a raw JSON result."""

    jsonrpc: str
    id: Any
    result: bytes | None
    error: ObjectError | None = None

    def data(self) -> bytes:
        """The raw result, or b"No Data" when there is none."""
        if self.result is not None:
            return self.result
        return b"No Data"

    def to_bytes(self) -> bytes:
        """Serialise the response; raises ValueError if the result is not valid JSON."""
        result = "null" if self.result is None else _compact(self.result)
        parts = [
            f'"jsonrpc":{_marshal(self.jsonrpc)}',
            f'"id":{_marshal(self.id)}',
            f'"result":{result}',
        ]
        if self.error is not None:
            parts.append(f'"error":{self.error.to_json()}')
        return ("{" + ",".join(parts) + "}").encode("utf-8")


Response = Union[ErrorResponse, SuccessResponse]


def new_rpc_error_response(
    id: Any, code: int, message: str, jsonrpc_version: str
) -> ErrorResponse:
    """Build an error response with the given code and message."""
    return ErrorResponse(jsonrpc=jsonrpc_version, id=id, error=ObjectError(code, message))


def new_rpc_response(
    id: Any, jsonrpc_version: str, reply: bytes | None, error: RpcError | None
) -> Response:
    """Build a success response, or an error response when an error is given."""
    if error is None:
        return SuccessResponse(jsonrpc=jsonrpc_version, id=id, result=reply)
    return new_rpc_error_response(id, error.code, error.message, jsonrpc_version)