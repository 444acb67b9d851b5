import dataclasses

import pytest

from edgenet.events import PeerEvent, PeerEventType


@pytest.mark.parametrize(
    "event_type, name",
    [
        (PeerEventType.PEER_CONNECTED, "PeerConnected"),
        (PeerEventType.PEER_FAILED_TO_CONNECT, "PeerFailedToConnect"),
        (PeerEventType.PEER_DISCONNECTED, "PeerDisconnected"),
        (PeerEventType.PEER_DIAL_COMPLETED, "PeerDialCompleted"),
        (PeerEventType.PEER_ADDED_TO_DIAL_QUEUE, "PeerAddedToDialQueue"),
    ],
)
def test_event_type_names(event_type, name):
    assert str(event_type) == name


def test_event_types_are_numbered_in_order():
    assert [int(t) for t in PeerEventType] == sorted(int(t) for t in PeerEventType)
    assert PeerEventType(0) is PeerEventType.PEER_CONNECTED


def test_peer_event_equality_and_hash():
    first = PeerEvent("peer", PeerEventType.PEER_CONNECTED)
    second = PeerEvent("peer", PeerEventType.PEER_CONNECTED)
    assert first == second
    assert len({first, second}) == 1
    assert first != PeerEvent("peer", PeerEventType.PEER_DISCONNECTED)


def test_peer_event_is_immutable():
    event = PeerEvent("peer", PeerEventType.PEER_CONNECTED)
    with pytest.raises(dataclasses.FrozenInstanceError):
        event.peer_id = "other"  # type: ignore[misc]
    assert event.peer_id == "peer"
    assert event == PeerEvent("peer", PeerEventType.PEER_CONNECTED)