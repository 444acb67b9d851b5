"""Peer handshaking: the gatekeeper for new peer connections."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Protocol

from .connections import Direction
from .events import PeerEvent, PeerEventType

PEER_ID_KEY = "peerID"

_BASE58 = frozenset("123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz")

_log = logging.getLogger(__name__)


class InvalidNetworkIDError(Exception):
    """Raised when a peer reports a different network ID."""

    def __init__(self, message: str = "invalid network ID") -> None:
        super().__init__(message)


class NoAvailableSlotsError(Exception):
    """Raised when no connection slot is free for a peer."""

    def __init__(self, message: str = "no available Slots") -> None:
        super().__init__(message)


@dataclass
class Status:
    """Handshake message describing a node."""

    metadata: dict[str, str] = field(default_factory=dict)
    network: int = 0
    temporary_dial: bool = False


class IdentityClient(Protocol):
    def hello(self, status: Status) -> Status: ...


class NetworkingServer(Protocol):
    """What the identity service needs from the networking server."""

    def new_identity_client(self, peer_id: str) -> IdentityClient: ...

    def disconnect_from_peer(self, peer_id: str, reason: str) -> None: ...

    def add_peer(self, peer_id: str, direction: Direction) -> None: ...

    def update_pending_conn_count(self, delta: int, direction: Direction) -> None: ...

    def emit_event(self, event: PeerEvent) -> None: ...

    def is_temporary_dial(self, peer_id: str) -> bool: ...

    def has_free_connection_slot(self, direction: Direction) -> bool: ...


def _decode_peer_id(text: str) -> str:
    if not text or not set(text) <= _BASE58:
        raise ValueError(f"failed to parse peer ID {text!r}")
    return text


class IdentityService:
    """Performs the hello handshake with newly connected peers."""

    def __init__(self, server: NetworkingServer, network_id: int, host_id: str) -> None:
        self._server = server
        self.network_id = network_id
        self.host_id = host_id
        self._pending: dict[str, Direction] = {}
        self._lock = threading.Lock()

    def on_connected(self, peer_id: str, direction: Direction) -> threading.Thread | None:
        """React to a new connection; returns the handshake thread if one started."""
        _log.debug("Conn peer=%s direction=%s", peer_id, direction.name)
        if self.has_pending_status(peer_id):
            return None

        if not self._server.has_free_connection_slot(direction):
            self._server.disconnect_from_peer(peer_id, str(NoAvailableSlotsError()))
            return None

        self._add_pending_status(peer_id, direction)
        worker = threading.Thread(
            target=self._run_handshake, args=(peer_id, direction), daemon=True
        )
        worker.start()
        return worker

    def _run_handshake(self, peer_id: str, direction: Direction) -> None:
        event_type = PeerEventType.PEER_DIAL_COMPLETED
        try:
            self.handle_connected(peer_id, direction)
        except Exception as exc:  # any handshake failure closes the connection
            self._server.disconnect_from_peer(peer_id, str(exc))
            event_type = PeerEventType.PEER_FAILED_TO_CONNECT
        self._remove_pending_status(peer_id)
        self._server.emit_event(PeerEvent(peer_id, event_type))

    def has_pending_status(self, peer_id: str) -> bool:
        """Report whether a handshake with the peer is under way."""
        with self._lock:
            return peer_id in self._pending

    def _add_pending_status(self, peer_id: str, direction: Direction) -> None:
        with self._lock:
            if peer_id in self._pending:
                return
            self._pending[peer_id] = direction
        self._server.update_pending_conn_count(1, direction)

    def _remove_pending_status(self, peer_id: str) -> None:
        with self._lock:
            direction = self._pending.pop(peer_id, None)
        if direction is not None:
            self._server.update_pending_conn_count(-1, direction)

    def handle_connected(self, peer_id: str, direction: Direction) -> None:
        """Run the handshake with a peer and register it unless the dial is temporary."""
        try:
            client = self._server.new_identity_client(peer_id)
        except Exception as exc:
            raise ConnectionError(
                f"unable to create new identity client connection, {exc}"
            ) from exc

        status = self.construct_status(peer_id)
        response = client.hello(status)

        if status.network != response.network:
            raise InvalidNetworkIDError()

        if not response.temporary_dial and not status.temporary_dial:
            self._server.add_peer(peer_id, direction)

    def hello(self, status: Status) -> Status:
        """Answer a peer's hello with this node's status."""
        peer_id = _decode_peer_id(status.metadata.get(PEER_ID_KEY, ""))
        return self.construct_status(peer_id)

    def construct_status(self, peer_id: str) -> Status:
        """Build this node's status as sent to the given peer."""
        return Status(
            metadata={PEER_ID_KEY: self.host_id},
            network=self.network_id,
            temporary_dial=self._server.is_temporary_dial(peer_id),
        )