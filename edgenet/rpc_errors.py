"""JSON-RPC error types, each carrying its standard error code."""

from __future__ import annotations


class RpcError(Exception):
    """Base class for errors reported back to a JSON-RPC caller."""

    code: int = -32603

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def error_code(self) -> int:
        return self.code


class InternalError(RpcError):
    """An internal failure while handling a request."""

    code = -32603


class InvalidParamsError(RpcError):
    """The request parameters could not be used."""

    code = -32602


class InvalidRequestError(RpcError):
    """The request itself was malformed or refused."""

    code = -32600


class SubscriptionNotFoundError(RpcError):
    """A subscription was requested for an unknown subscribe method."""

    code = -32601

    def __init__(self, method: str) -> None:
        super().__init__(f"subscribe method {method} not found")
        self.method = method


class MethodNotFoundError(RpcError):
    """The requested method does not exist."""

    code = -32601

    def __init__(self, method: str) -> None:
        super().__init__(f"the method {method} does not exist/is not available")
        self.method = method