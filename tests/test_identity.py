import threading

import pytest

from edgenet.connections import Direction
from edgenet.events import PeerEvent, PeerEventType
from edgenet.identity import (
    PEER_ID_KEY,
    IdentityService,
    InvalidNetworkIDError,
    Status,
)

HOST_ID = "16Uiu2HAmQkbuGb3K3DmCyEDvKumSVCphVJCGPGHNoc4CobJbxfsC"


class MockIdentityClient:
    def __init__(self):
        self.hello_fn = None

    def hello(self, status):
        if self.hello_fn is not None:
            return self.hello_fn(status)
        return Status()


class MockNetworkingServer:
    def __init__(self):
        self.client = MockIdentityClient()
        self.temporary = False
        self.free_slot = True
        self.added = []
        self.disconnected = []
        self.pending_updates = []
        self.events = []

    def new_identity_client(self, peer_id):
        return self.client

    def disconnect_from_peer(self, peer_id, reason):
        self.disconnected.append((peer_id, reason))

    def add_peer(self, peer_id, direction):
        self.added.append((peer_id, direction))

    def update_pending_conn_count(self, delta, direction):
        self.pending_updates.append((delta, direction))

    def emit_event(self, event):
        self.events.append(event)

    def is_temporary_dial(self, peer_id):
        return self.temporary

    def has_free_connection_slot(self, direction):
        return self.free_slot


def make_service(network_id=0):
    server = MockNetworkingServer()
    return IdentityService(server, network_id, HOST_ID), server


def test_temporary_dial_not_saved():
    service, server = make_service()
    server.temporary = True
    server.client.hello_fn = lambda status: Status(network=0, temporary_dial=True)

    service.handle_connected("TestPeer", Direction.INBOUND)

    assert len(server.added) == 0


def test_handshake_network_mismatch():
    service, server = make_service(network_id=1)
    server.client.hello_fn = lambda status: Status(network=2, temporary_dial=False)

    with pytest.raises(InvalidNetworkIDError):
        service.handle_connected("TestPeer", Direction.INBOUND)

    assert len(server.added) == 0


def test_handshake_success_adds_peer():
    service, server = make_service(network_id=3)
    server.client.hello_fn = lambda status: Status(network=3)

    service.handle_connected("PeerA", Direction.OUTBOUND)

    assert server.added == [("PeerA", Direction.OUTBOUND)]


def test_remote_temporary_dial_not_saved():
    service, server = make_service()
    server.client.hello_fn = lambda status: Status(network=0, temporary_dial=True)

    service.handle_connected("PeerA", Direction.INBOUND)

    assert server.added == []


def test_client_creation_failure_wrapped():
    service, server = make_service()

    def fail(peer_id):
        raise OSError("stream refused")

    server.new_identity_client = fail
    with pytest.raises(ConnectionError, match="unable to create new identity client"):
        service.handle_connected("PeerA", Direction.INBOUND)


def test_construct_status_carries_host_id():
    service, server = make_service(network_id=5)
    server.temporary = True
    status = service.construct_status("PeerA")
    assert status.metadata == {PEER_ID_KEY: HOST_ID}
    assert status.network == 5
    assert status.temporary_dial is True


def test_hello_answers_with_own_status():
    service, _ = make_service(network_id=9)
    reply = service.hello(Status(metadata={PEER_ID_KEY: HOST_ID}, network=9))
    assert reply.metadata[PEER_ID_KEY] == HOST_ID
    assert reply.network == 9


def test_hello_rejects_invalid_peer_id():
    service, _ = make_service()
    with pytest.raises(ValueError):
        service.hello(Status(metadata={PEER_ID_KEY: "not/valid"}))
    with pytest.raises(ValueError):
        service.hello(Status())


def test_on_connected_without_slots_disconnects():
    service, server = make_service()
    server.free_slot = False

    assert service.on_connected("PeerA", Direction.INBOUND) is None
    assert server.disconnected == [("PeerA", "no available Slots")]
    assert server.pending_updates == []


def test_on_connected_success_flow():
    service, server = make_service()
    worker = service.on_connected("PeerA", Direction.INBOUND)
    worker.join(timeout=5)

    assert server.added == [("PeerA", Direction.INBOUND)]
    assert server.pending_updates == [(1, Direction.INBOUND), (-1, Direction.INBOUND)]
    assert server.events == [PeerEvent("PeerA", PeerEventType.PEER_DIAL_COMPLETED)]
    assert service.has_pending_status("PeerA") is False


def test_on_connected_failure_flow():
    service, server = make_service(network_id=1)
    server.client.hello_fn = lambda status: Status(network=2)
    worker = service.on_connected("PeerA", Direction.OUTBOUND)
    worker.join(timeout=5)

    assert server.added == []
    assert server.disconnected == [("PeerA", "invalid network ID")]
    assert server.events == [PeerEvent("PeerA", PeerEventType.PEER_FAILED_TO_CONNECT)]
    assert server.pending_updates == [(1, Direction.OUTBOUND), (-1, Direction.OUTBOUND)]


def test_on_connected_skips_pending_peer():
    service, server = make_service()
    release = threading.Event()
    entered = threading.Event()

    def blocking_hello(status):
        entered.set()
        release.wait(5)
        return Status()

    server.client.hello_fn = blocking_hello
    worker = service.on_connected("PeerA", Direction.INBOUND)
    assert entered.wait(5)

    assert service.has_pending_status("PeerA") is True
    assert service.on_connected("PeerA", Direction.INBOUND) is None

    release.set()
    worker.join(timeout=5)
    assert server.pending_updates == [(1, Direction.INBOUND), (-1, Direction.INBOUND)]
    assert len(server.events) == 1