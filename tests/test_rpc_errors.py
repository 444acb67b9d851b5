import pytest

from edgenet.rpc_errors import (
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    RpcError,
    SubscriptionNotFoundError,
)


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (InternalError("x"), -32603),
        (InvalidParamsError("x"), -32602),
        (InvalidRequestError("x"), -32600),
        (SubscriptionNotFoundError("x"), -32601),
        (MethodNotFoundError("x"), -32601),
    ],
)
def test_error_codes(error, code):
    assert error.code == code
    assert error.error_code == code


def test_plain_message_is_kept():
    error = InvalidParamsError("Invalid params")
    assert str(error) == "Invalid params"
    assert error.message == "Invalid params"


def test_method_not_found_message():
    error = MethodNotFoundError("edge_foo")
    assert str(error) == "the method edge_foo does not exist/is not available"
    assert error.method == "edge_foo"


def test_subscription_not_found_message():
    error = SubscriptionNotFoundError("blocks")
    assert str(error) == "subscribe method blocks not found"


def test_errors_share_rpc_error_base():
    error = InvalidRequestError("Invalid json request")
    assert isinstance(error, RpcError)
    assert error.code == -32600
    assert error.message == "Invalid json request"
    assert str(error) == "Invalid json request"