"""Peer events emitted by the networking server."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class PeerEventType(IntEnum):
    """Kinds of peer events, in the order they are numbered on the wire."""

    PEER_CONNECTED = 0
    PEER_FAILED_TO_CONNECT = 1
    PEER_DISCONNECTED = 2
    PEER_DIAL_COMPLETED = 3
    PEER_ADDED_TO_DIAL_QUEUE = 4

    def __str__(self) -> str:
        return _EVENT_NAMES[self]


_EVENT_NAMES = {
    PeerEventType.PEER_CONNECTED: "PeerConnected",
    PeerEventType.PEER_FAILED_TO_CONNECT: "PeerFailedToConnect",
    PeerEventType.PEER_DISCONNECTED: "PeerDisconnected",
    PeerEventType.PEER_DIAL_COMPLETED: "PeerDialCompleted",
    PeerEventType.PEER_ADDED_TO_DIAL_QUEUE: "PeerAddedToDialQueue",
}


@dataclass(frozen=True)
class PeerEvent:
    """An event concerning a single peer."""

    peer_id: str
    type: PeerEventType