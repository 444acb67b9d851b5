"""The set of bootnodes a node was configured with."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator

from .common import AddrInfo, string_to_addr_info

MINIMUM_BOOT_NODES = 1


class NoBootnodesError(ValueError):
    """Raised when no bootnode configuration is given."""

    def __init__(self) -> None:
        super().__init__("no bootnodes specified")


class MinBootnodesError(ValueError):
    """Raised when fewer than the minimum number of bootnodes are given."""

    def __init__(self) -> None:
        super().__init__(f"minimum {MINIMUM_BOOT_NODES} bootnode is required")


class Bootnodes:
    """Bootnode addresses with fast lookup and a thread-safe connection counter."""

    def __init__(self, bootnodes: Iterable[AddrInfo] = ()) -> None:
        self._nodes = list(bootnodes)
        self._by_id = {node.id: node for node in self._nodes}
        self._conn_count = 0
        self._lock = threading.Lock()

    def is_bootnode(self, peer_id: str) -> bool:
        return peer_id in self._by_id

    def conn_count(self) -> int:
        with self._lock:
            return self._conn_count

    def increase_conn_count(self, delta: int) -> None:
        with self._lock:
            self._conn_count += delta

    def has_bootnodes(self) -> bool:
        return len(self._nodes) > 0

    def __iter__(self) -> Iterator[AddrInfo]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)


def parse_bootnodes(raw_addrs: Iterable[str] | None, host_id: str) -> Bootnodes:
    """Parse bootnode multiaddrs, leaving out any that share the host's ID."""
    if raw_addrs is None:
        raise NoBootnodesError()
    raw_list = list(raw_addrs)
    if len(raw_list) < MINIMUM_BOOT_NODES:
        raise MinBootnodesError()

    nodes = []
    for raw in raw_list:
        try:
            node = string_to_addr_info(raw)
        except ValueError as exc:
            raise ValueError(f"failed to parse bootnode {raw}: {exc}") from exc
        if node.id != host_id:
            nodes.append(node)
    return Bootnodes(nodes)