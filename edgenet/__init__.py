"""Peer-to-peer networking primitives and a JSON-RPC front end for edge nodes."""

__version__ = "0.1.0"

__all__ = [
    "bootnodes",
    "codec",
    "common",
    "config",
    "connections",
    "dial",
    "discovery",
    "dispatcher",
    "events",
    "hexargs",
    "http_server",
    "identity",
    "rpc_errors",
]