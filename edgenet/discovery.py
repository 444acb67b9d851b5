"""Peer discovery: a Kademlia-style routing table and the discovery service."""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections.abc import Callable, Iterable
from typing import Protocol

from .common import AddrInfo, addr_info_to_string, string_to_addr_info
from .connections import Direction
from .events import PeerEvent, PeerEventType

MAX_DISCOVERY_PEER_REQ_COUNT = 16
"""The most peers that may be requested from another peer."""

PEER_DISCOVERY_INTERVAL = 5.0
"""Seconds between queries of a random connected peer."""

BOOTNODE_DISCOVERY_INTERVAL = 60.0
"""Seconds between queries of a random bootnode."""

DEFAULT_BUCKET_SIZE = 256

_KEY_BITS = 256

_log = logging.getLogger(__name__)


def _convert_key(key: str) -> int:
    return int.from_bytes(hashlib.sha256(key.encode("utf-8")).digest(), "big")


class RoutingTable:
    """Peers grouped into buckets by the length of the prefix their key shares with ours.

    Keys are SHA-256 hashes of the peer IDs; closeness is XOR distance.
    """

    def __init__(self, local_id: str, bucket_size: int = DEFAULT_BUCKET_SIZE) -> None:
        if bucket_size < 1:
            raise ValueError("bucket size must be at least 1")
        self.local_id = local_id
        self.bucket_size = bucket_size
        self._local_key = _convert_key(local_id)
        self._buckets: dict[int, dict[str, int]] = {}
        self._lock = threading.RLock()
        self.peer_added: Callable[[str], None] | None = None
        self.peer_removed: Callable[[str], None] | None = None

    def _common_prefix_len(self, key: int) -> int:
        return _KEY_BITS - (key ^ self._local_key).bit_length()

    def try_add_peer(self, peer_id: str) -> bool:
        """Add a peer; True if added, False if already present.

        Raises ValueError for the local peer or when the peer's bucket is full.
        """
        key = _convert_key(peer_id)
        cpl = self._common_prefix_len(key)
        if cpl == _KEY_BITS:
            raise ValueError("cannot add the local peer to the routing table")
        with self._lock:
            bucket = self._buckets.setdefault(cpl, {})
            if peer_id in bucket:
                return False
            if len(bucket) >= self.bucket_size:
                raise ValueError("peer rejected; insufficient capacity")
            bucket[peer_id] = key
        if self.peer_added is not None:
            self.peer_added(peer_id)
        return True

    def remove_peer(self, peer_id: str) -> bool:
        """Remove a peer; True if it was present."""
        cpl = self._common_prefix_len(_convert_key(peer_id))
        with self._lock:
            bucket = self._buckets.get(cpl)
            if bucket is None or bucket.pop(peer_id, None) is None:
                return False
        if self.peer_removed is not None:
            self.peer_removed(peer_id)
        return True

    def nearest_peers(self, key: str, count: int) -> list[str]:
        """Return up to count peers closest to the key, nearest first."""
        if count <= 0:
            return []
        target = _convert_key(key)
        with self._lock:
            ranked = sorted(
                (peer_key ^ target, peer_id)
                for bucket in self._buckets.values()
                for peer_id, peer_key in bucket.items()
            )
        return [peer_id for _, peer_id in ranked[:count]]

    def list_peers(self) -> list[str]:
        """Return every peer in the table, bucket by bucket."""
        with self._lock:
            return [
                peer_id
                for cpl in sorted(self._buckets)
                for peer_id in self._buckets[cpl]
            ]

    def __len__(self) -> int:
        with self._lock:
            return sum(len(bucket) for bucket in self._buckets.values())


class DiscoveryClient(Protocol):
    def find_peers(self, count: int, key: str = "") -> list[str]: ...


class NetworkingServer(Protocol):
    """What the discovery service needs from the networking server."""

    def get_disc_proto(self) -> str: ...

    def get_random_bootnode(self) -> AddrInfo | None: ...

    def get_bootnode_conn_count(self) -> int: ...

    def new_discovery_client(self, peer_id: str) -> DiscoveryClient: ...

    def close_protocol_stream(self, protocol: str, peer_id: str) -> None: ...

    def disconnect_from_peer(self, peer_id: str, reason: str) -> None: ...

    def add_to_peer_store(self, peer_info: AddrInfo) -> None: ...

    def remove_from_peer_store(self, peer_info: AddrInfo) -> None: ...

    def get_peer_info(self, peer_id: str) -> AddrInfo | None: ...

    def get_random_peer(self) -> str | None: ...

    def fetch_or_set_temporary_dial(self, peer_id: str, new_value: bool) -> bool: ...

    def remove_temporary_dial(self, peer_id: str) -> None: ...

    def temporary_dial_peer(self, peer_info: AddrInfo) -> None: ...

    def has_free_connection_slot(self, direction: Direction) -> bool: ...


class DiscoveryService:
    """Finds other peers in the network and feeds them to the routing table."""

    def __init__(self, server: NetworkingServer, routing_table: RoutingTable) -> None:
        self._server = server
        self._table = routing_table
        self._closed = threading.Event()

    def start(self) -> threading.Thread:
        """Start the periodic discovery loop in a background thread."""
        worker = threading.Thread(target=self._run, daemon=True)
        worker.start()
        return worker

    def close(self) -> None:
        """Stop the discovery loop."""
        self._closed.set()

    def _run(self) -> None:
        now = time.monotonic()
        next_peer = now + PEER_DISCOVERY_INTERVAL
        next_bootnode = now + BOOTNODE_DISCOVERY_INTERVAL
        while True:
            wait = max(0.0, min(next_peer, next_bootnode) - time.monotonic())
            if self._closed.wait(wait):
                return
            now = time.monotonic()
            if now >= next_peer:
                self._spawn(self.regular_peer_discovery)
                next_peer += PEER_DISCOVERY_INTERVAL
            if now >= next_bootnode:
                self._spawn(self.bootnode_peer_discovery)
                next_bootnode += BOOTNODE_DISCOVERY_INTERVAL

    @staticmethod
    def _spawn(task: Callable[[], None]) -> None:
        threading.Thread(target=task, daemon=True).start()

    def routing_table_size(self) -> int:
        return len(self._table)

    def routing_table_peers(self) -> list[str]:
        return self._table.list_peers()

    def handle_network_event(self, event: PeerEvent) -> None:
        """Keep the routing table in step with peer connections."""
        if event.type == PeerEventType.PEER_CONNECTED:
            try:
                self._table.try_add_peer(event.peer_id)
            except ValueError as exc:
                _log.error("failed to add peer to routing table: %s", exc)
        elif event.type in (
            PeerEventType.PEER_DISCONNECTED,
            PeerEventType.PEER_FAILED_TO_CONNECT,
        ):
            self._table.remove_peer(event.peer_id)

    def connect_to_bootnodes(self, bootnodes: Iterable[AddrInfo]) -> None:
        """Add the bootnodes to the peer store and the routing table."""
        for node in bootnodes:
            try:
                self._add_to_table(node)
            except ValueError as exc:
                _log.error("Failed to add new peer %s to routing table: %s", node.id, exc)

    def _add_to_table(self, node: AddrInfo) -> None:
        self._server.add_to_peer_store(node)
        try:
            self._table.try_add_peer(node.id)
        except ValueError:
            self._server.remove_from_peer_store(node)
            raise

    def _add_peers_to_table(self, node_addrs: Iterable[str]) -> None:
        for raw in node_addrs:
            try:
                node = string_to_addr_info(raw)
            except ValueError as exc:
                _log.error("Failed to parse address: %s", exc)
                continue
            try:
                self._add_to_table(node)
            except ValueError as exc:
                _log.error("Failed to add new peer %s to routing table: %s", node.id, exc)

    def _attempt_to_find_peers(self, peer_id: str) -> None:
        _log.debug("Querying a peer for near peers: %s", peer_id)
        nodes = self._find_peers_call(peer_id, False)
        _log.debug("Found %d new near peers", len(nodes))
        self._add_peers_to_table(nodes)

    def _find_peers_call(self, peer_id: str, should_close_conn: bool) -> list[str]:
        try:
            client = self._server.new_discovery_client(peer_id)
        except Exception as exc:
            raise ConnectionError(
                f"unable to create new discovery client connection, {exc}"
            ) from exc

        nodes = client.find_peers(MAX_DISCOVERY_PEER_REQ_COUNT)

        if should_close_conn:
            self._server.close_protocol_stream(self._server.get_disc_proto(), peer_id)

        return list(nodes or ())

    def regular_peer_discovery(self) -> None:
        """Ask a random connected peer for its peers."""
        if not self._server.has_free_connection_slot(Direction.OUTBOUND):
            return
        peer_id = self._server.get_random_peer()
        if peer_id is None:
            return
        _log.debug("running regular peer discovery with %s", peer_id)
        try:
            self._attempt_to_find_peers(peer_id)
        except Exception as exc:
            _log.error("Failed to find new peers from %s: %s", peer_id, exc)

    def bootnode_peer_discovery(self) -> None:
        """Ask a random unconnected bootnode for its peers."""
        if not self._server.has_free_connection_slot(Direction.OUTBOUND):
            return

        is_temporary_dial = False
        bootnode: AddrInfo | None = None
        while bootnode is None:
            bootnode = self._server.get_random_bootnode()
            if bootnode is None:
                return
            if self._server.get_bootnode_conn_count() > 0:
                if self._server.fetch_or_set_temporary_dial(bootnode.id, True):
                    bootnode = None
                    continue
                is_temporary_dial = True

        try:
            self._server.temporary_dial_peer(bootnode)
            try:
                found = self._find_peers_call(bootnode.id, True)
            except Exception as exc:
                _log.error(
                    "Unable to execute bootnode peer discovery with %s: %s", bootnode.id, exc
                )
                return
            self._add_peers_to_table(found)
        finally:
            if is_temporary_dial:
                self._server.remove_temporary_dial(bootnode.id)
                self._server.disconnect_from_peer(bootnode.id, "Thank you")

    def find_peers(self, from_peer: str, count: int, key: str = "") -> list[str]:
        """Answer a peer's request with the dialable addresses of our nearest peers."""
        count = min(count, MAX_DISCOVERY_PEER_REQ_COUNT)
        if not key:
            key = from_peer

        result = []
        for peer_id in self._table.nearest_peers(key, count):
            if peer_id == from_peer:
                continue
            info = self._server.get_peer_info(peer_id)
            if info is not None and info.addrs:
                result.append(addr_info_to_string(info))
        return result