"""Peer address helpers: multiaddr parsing, dial priorities and formatting."""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from enum import IntEnum


class DialPriority(IntEnum):
    """Dial priorities; lower values are dialed first."""

    REQUESTED_DIAL = 1
    RANDOM_DIAL = 10


DNS_REGEX = (
    r"^/?(dns)(4|6)?/[^-|^/][A-Za-z0-9-]([^-|^/]?)+([\\-\\.]{1}[a-z0-9]+)*"
    r"\\.[A-Za-z]{2,}(/?)$"
)

_LOOPBACK_RE = re.compile(
    r"^\/ip4\/127(?:\.[0-9]+){0,2}\.[0-9]+\/tcp\/\d+$"
    r"|^\/ip4\/localhost\/tcp\/\d+$"
    r"|^\/ip6\/(?:0*\:)*?:?0*1\/tcp\/\d+$"
    r"|" + DNS_REGEX
)

_DNS_ADDR_RE = re.compile(
    r"^/?(dns)(4|6)?/[^-|^/][A-Za-z0-9-]([^-|^/]?)+([\-\.]{1}[a-z0-9]+)*"
    r"\.[A-Za-z]{2,}(/?)$"
)

_BASE58 = frozenset("123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz")

_VALUELESS_PROTOCOLS = frozenset(
    {
        "quic", "quic-v1", "ws", "wss", "http", "https", "tls", "noise",
        "p2p-circuit", "webtransport", "webrtc", "webrtc-direct", "utp", "udt",
    }
)
_VALUED_PROTOCOLS = frozenset(
    {"ip4", "ip6", "tcp", "udp", "dns", "dns4", "dns6", "dnsaddr", "p2p", "ipfs", "sni", "certhash"}
)


@dataclass(frozen=True)
class AddrInfo:
    """A peer identity together with the addresses it can be dialed at."""

    id: str
    addrs: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "addrs", tuple(self.addrs))

    def __str__(self) -> str:
        return "{" + f"{self.id}: [{' '.join(self.addrs)}]" + "}"


def _validate_value(protocol: str, value: str) -> None:
    try:
        if protocol == "ip4":
            ipaddress.IPv4Address(value)
        elif protocol == "ip6":
            ipaddress.IPv6Address(value)
        elif protocol in ("tcp", "udp"):
            if not value.isdigit() or not 0 <= int(value) <= 65535:
                raise ValueError(f"invalid port {value!r}")
        elif protocol in ("p2p", "ipfs"):
            if not value or not set(value) <= _BASE58:
                raise ValueError(f"invalid peer id {value!r}")
        elif not value:
            raise ValueError(f"empty value for {protocol}")
    except ValueError as exc:
        raise ValueError(f"invalid multiaddr value for /{protocol}: {exc}") from None


def _parse_multiaddr(addr: str) -> list[tuple[str, str | None]]:
    """Split a multiaddr string into (protocol, value) pairs, validating each."""
    if not addr.startswith("/"):
        raise ValueError(f"invalid multiaddr {addr!r}: must begin with /")
    parts = iter(addr.strip("/").split("/") if addr.strip("/") else [])
    components: list[tuple[str, str | None]] = []
    for protocol in parts:
        if protocol in _VALUELESS_PROTOCOLS:
            components.append((protocol, None))
        elif protocol in _VALUED_PROTOCOLS:
            value = next(parts, None)
            if value is None:
                raise ValueError(f"invalid multiaddr {addr!r}: /{protocol} needs a value")
            _validate_value(protocol, value)
            components.append((protocol, value))
        else:
            raise ValueError(f"invalid multiaddr {addr!r}: unknown protocol {protocol!r}")
    if not components:
        raise ValueError(f"invalid multiaddr {addr!r}: empty")
    return components


def _join(components: list[tuple[str, str | None]]) -> str:
    return "".join(f"/{p}" if v is None else f"/{p}/{v}" for p, v in components)


def string_to_addr_info(addr: str) -> AddrInfo:
    """Parse a '/.../p2p/<id>' multiaddr into an AddrInfo."""
    components = _parse_multiaddr(addr)
    protocol, peer_id = components[-1]
    if protocol not in ("p2p", "ipfs") or peer_id is None:
        raise ValueError(f"invalid p2p multiaddr {addr!r}: missing peer id")
    transport = components[:-1]
    return AddrInfo(peer_id, (_join(transport),) if transport else ())


def is_loopback(addr: str) -> bool:
    """Report whether a multiaddr string is a loopback address."""
    return _LOOPBACK_RE.search(addr) is not None


def addr_info_to_string(addr: AddrInfo) -> str:
    """Format a dialable address, preferring a non-loopback one."""
    if not addr.addrs:
        raise ValueError("No dial addresses found")
    dial_address = addr.addrs[0]
    if len(addr.addrs) > 1 and is_loopback(dial_address):
        dial_address = next((a for a in addr.addrs if not is_loopback(a)), dial_address)
    return f"{dial_address}/p2p/{addr.id}"


def multiaddr_from_dns(addr: str, port: int) -> str:
    """Build a '/dnsX/<domain>/tcp/<port>' multiaddr from a DNS address."""
    if _DNS_ADDR_RE.search(addr) is None:
        raise ValueError("invalid DNS address")
    split = addr.strip("/").split("/")
    if len(split) != 2:
        raise ValueError("invalid DNS address")
    version, domain = split
    if version not in ("dns", "dns4", "dns6"):
        raise ValueError("invalid DNS version")
    result = f"/{version}/{domain}/tcp/{port}"
    try:
        _parse_multiaddr(result)
    except ValueError:
        raise ValueError("could not create a multi address") from None
    return result