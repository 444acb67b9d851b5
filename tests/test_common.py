import pytest

from edgenet.common import (
    AddrInfo,
    DialPriority,
    addr_info_to_string,
    is_loopback,
    multiaddr_from_dns,
    string_to_addr_info,
)

PEER_ID = "16Uiu2HAmQkbuGb3K3DmCyEDvKumSVCphVJCGPGHNoc4CobJbxfsC"


def test_string_to_addr_info_splits_peer_id():
    info = string_to_addr_info(f"/ip4/127.0.0.1/tcp/50003/p2p/{PEER_ID}")
    assert info.id == PEER_ID
    assert info.addrs == ("/ip4/127.0.0.1/tcp/50003",)


def test_string_to_addr_info_without_transport():
    info = string_to_addr_info(f"/p2p/{PEER_ID}")
    assert info.id == PEER_ID
    assert info.addrs == ()


@pytest.mark.parametrize(
    "raw",
    [
        "not-a-multiaddr",
        "/ip4/127.0.0.1/tcp/50003",
        "/ip4/999.0.0.1/tcp/1/p2p/" + PEER_ID,
        "/ip4/127.0.0.1/tcp/notaport/p2p/" + PEER_ID,
        "/bogus/1/p2p/" + PEER_ID,
        "/ip4/127.0.0.1/tcp/1/p2p/0OIl",
    ],
)
def test_string_to_addr_info_rejects_invalid(raw):
    with pytest.raises(ValueError):
        string_to_addr_info(raw)


def test_round_trip():
    raw = f"/ip4/10.1.2.3/tcp/50001/p2p/{PEER_ID}"
    assert addr_info_to_string(string_to_addr_info(raw)) == raw


def test_addr_info_to_string_prefers_non_loopback():
    info = AddrInfo(PEER_ID, ["/ip4/127.0.0.1/tcp/1", "/ip4/10.0.0.1/tcp/1"])
    assert addr_info_to_string(info) == f"/ip4/10.0.0.1/tcp/1/p2p/{PEER_ID}"


def test_addr_info_to_string_keeps_first_when_all_loopback():
    info = AddrInfo(PEER_ID, ["/ip4/127.0.0.1/tcp/1", "/ip4/127.0.0.2/tcp/2"])
    assert addr_info_to_string(info) == f"/ip4/127.0.0.1/tcp/1/p2p/{PEER_ID}"


def test_addr_info_to_string_requires_address():
    with pytest.raises(ValueError, match="No dial addresses found"):
        addr_info_to_string(AddrInfo(PEER_ID))


@pytest.mark.parametrize(
    "addr, expected",
    [
        ("/ip4/127.0.0.1/tcp/50003", True),
        ("/ip4/localhost/tcp/50003", True),
        ("/ip6/::1/tcp/50003", True),
        ("/ip4/10.0.0.1/tcp/50003", False),
    ],
)
def test_is_loopback(addr, expected):
    assert is_loopback(addr) is expected


@pytest.mark.parametrize("domain", ["/dns/example.com", "/dns4/example.com/", "dns6/example.com"])
def test_multiaddr_from_dns(domain):
    version, name = domain.strip("/").split("/")
    assert multiaddr_from_dns(domain, 50001) == f"/{version}/{name}/tcp/50001"


@pytest.mark.parametrize("bad", ["/dns7/example.com", "example.com", "/ip4/example.com"])
def test_multiaddr_from_dns_rejects_invalid(bad):
    with pytest.raises(ValueError, match="invalid DNS"):
        multiaddr_from_dns(bad, 50001)


def test_multiaddr_from_dns_rejects_bad_port():
    with pytest.raises(ValueError, match="could not create a multi address"):
        multiaddr_from_dns("/dns4/example.com", 70000)


def test_dial_priority_values():
    assert DialPriority(1) is DialPriority.REQUESTED_DIAL
    assert DialPriority(10) is DialPriority.RANDOM_DIAL