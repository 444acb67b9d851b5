"""Parameters for the base networking server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEFAULT_LIBP2P_PORT = 50003
DEFAULT_EDGE_LIBP2P_PORT = 50001
DEFAULT_RELAY_LIBP2P_PORT = 50004


@dataclass
class NetworkConfig:
    """Settings for the networking server.

    The default peer limits keep outbound connections at a fifth of the
    total, and at a quarter of the inbound ones.
    """

    network_id: int = 0
    no_discover: bool = False
    addr: tuple[str, int] = ("127.0.0.1", DEFAULT_LIBP2P_PORT)
    nat_addr: str | None = None
    dns: str | None = None
    data_dir: str = ""
    max_peers: int = 40
    max_inbound_peers: int = 32
    max_outbound_peers: int = 8
    secrets_manager: Any = None


def default_config() -> NetworkConfig:
    """Return a fresh configuration with the default settings."""
    return NetworkConfig()