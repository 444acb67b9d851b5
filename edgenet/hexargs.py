"""Hex encodings of integers and byte strings used in JSON-RPC arguments."""

from __future__ import annotations

import re

_HEX_RE = re.compile(r"[0-9a-fA-F]*")
_MAX_UINT64 = (1 << 64) - 1


def _text(value: str | bytes) -> str:
    if isinstance(value, bytes):
        return value.decode("ascii")
    return value


def _strip_prefix(text: str) -> str:
    return text[2:] if text.startswith("0x") else text


def encode_uint(value: int) -> str:
    """Encode an unsigned 64-bit integer as 0x-prefixed hex."""
    if not 0 <= value <= _MAX_UINT64:
        raise ValueError(f"value {value} out of range for uint64")
    return f"0x{value:x}"


def decode_uint(text: str | bytes) -> int:
    """Decode hex text, with or without a 0x prefix, into an unsigned 64-bit integer."""
    digits = _strip_prefix(_text(text))
    if not digits or _HEX_RE.fullmatch(digits) is None:
        raise ValueError(f"invalid hex number {digits!r}")
    value = int(digits, 16)
    if value > _MAX_UINT64:
        raise ValueError(f"hex number {digits!r} out of range for uint64")
    return value


def encode_big(value: int) -> str:
    """Encode an arbitrary integer as 0x-prefixed hex."""
    if value < 0:
        return f"0x-{-value:x}"
    return f"0x{value:x}"


def decode_big(text: str | bytes) -> int:
    """Decode hex text into a non-negative integer."""
    return int.from_bytes(decode_to_hex(text), "big")


def encode_bytes(data: bytes) -> str:
    """Encode bytes as 0x-prefixed hex."""
    return "0x" + bytes(data).hex()


def decode_bytes(text: str | bytes) -> bytes | None:
    """Decode hex text into bytes; None when the text is not valid hex."""
    try:
        return decode_to_hex(text)
    except ValueError:
        return None


def decode_to_hex(text: str | bytes) -> bytes:
    """Decode hex text into bytes, dropping a 0x prefix and padding odd lengths."""
    digits = _strip_prefix(_text(text))
    if _HEX_RE.fullmatch(digits) is None:
        raise ValueError(f"invalid hex string {digits!r}")
    if len(digits) % 2:
        digits = "0" + digits
    return bytes.fromhex(digits)