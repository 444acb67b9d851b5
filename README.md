# edgenet

Building blocks for the networking layer of an edge node, plus a small
JSON-RPC front end over HTTP and websockets. It uses only the standard
library.

## What is inside

Peer networking:

- `edgenet.events`: `PeerEventType` and `PeerEvent`, the events for peers
  that connect, disconnect, fail to connect, finish a dial or are queued
  for dialing. `str()` of an event type gives its name, such as
  `PeerConnected`.
- `edgenet.common`: `AddrInfo` (a peer ID and its addresses) and
  `DialPriority`, plus multiaddress helpers. `string_to_addr_info` parses
  `/ip4/.../tcp/.../p2p/<id>` strings and raises `ValueError` on bad input.
  `addr_info_to_string` picks a non-loopback address when the first one is
  loopback. `multiaddr_from_dns` builds a `/dns*/<domain>/tcp/<port>`
  address. `is_loopback` recognises loopback addresses.
- `edgenet.dial`: `DialQueue`, a thread-safe priority queue of `DialTask`s.
  Lower priority values are dialed first, and tasks of equal priority come
  out in the order they were added. `pop_task(timeout)` blocks until a task
  arrives, the queue is closed or the timeout passes. `try_pop` never
  blocks. `delete_task` drops a peer's task.
- `edgenet.connections`: `ConnectionInfo`, which counts active and pending
  connections per `Direction` against inbound and outbound limits.
- `edgenet.bootnodes`: `Bootnodes` and `parse_bootnodes`. `parse_bootnodes`
  raises `NoBootnodesError` for `None` and `MinBootnodesError` for an empty
  list. It leaves out any bootnode whose ID is the host's own.
- `edgenet.config`: `NetworkConfig` and `default_config()`. The defaults
  bind to `127.0.0.1:50003` and allow 40 peers, split into 32 inbound and
  8 outbound.
- `edgenet.identity`: `IdentityService`, the handshake gatekeeper. It
  exchanges a `Status` with each new peer and raises `InvalidNetworkIDError`
  for a peer on a different network. It does not register temporary dials
  as peers. `on_connected` turns away peers when no slot is free and runs
  the handshake in a background thread.
- `edgenet.discovery`: `RoutingTable` and `DiscoveryService`.
  `RoutingTable` keys peers by the SHA-256 of their ID and ranks them by
  XOR distance. `DiscoveryService` asks random peers and bootnodes for
  their nearest peers and adds the answers to the table. Its `find_peers`
  answers such requests from other peers.

JSON-RPC:

- `edgenet.rpc_errors`: `RpcError` and its subclasses, each with its
  JSON-RPC error code:

  | Error | Code |
  | --- | --- |
  | `InvalidRequestError` | -32600 |
  | `MethodNotFoundError` | -32601 |
  | `SubscriptionNotFoundError` | -32601 |
  | `InvalidParamsError` | -32602 |
  | `InternalError` | -32603 |

- `edgenet.codec`: `SuccessResponse`, `ErrorResponse` and `ObjectError`,
  built with `new_rpc_response` and `new_rpc_error_response`. Each response
  is encoded with `to_bytes()`.
- `edgenet.hexargs`: `0x`-prefixed hex encoding and decoding for unsigned
  64-bit integers (`encode_uint`, `decode_uint`), big integers
  (`encode_big`, `decode_big`) and byte strings (`encode_bytes`,
  `decode_bytes`, `decode_to_hex`).
- `edgenet.dispatcher`: `Dispatcher`. It exposes every public method of a
  registered service as `<service>_<method>`, with the first letter of the
  method lower-cased. It handles single requests and batches and applies an
  optional batch length limit. `handle_ws` also answers `edge_subscribe`
  messages through a `subscribe_handler` you supply.
- `edgenet.http_server`: `JSONRPCServer` and `ServerConfig`. A POST to any
  path goes to the dispatcher. A GET returns the network name, ID and
  version. `/edge_ws` accepts websocket connections. CORS headers follow
  `allowed_origin`.

## Examples

Queue peers for dialing:

```python
from edgenet.common import DialPriority, string_to_addr_info
from edgenet.dial import DialQueue

queue = DialQueue()
info = string_to_addr_info("/ip4/10.0.0.5/tcp/50003/p2p/QmTestPeerAbc123")
queue.add_task(info, DialPriority.REQUESTED_DIAL)

task = queue.pop_task(timeout=1.0)
print(task.peer_id)  # QmTestPeerAbc123
```

Build JSON-RPC responses:

```python
from edgenet.codec import new_rpc_response
from edgenet.rpc_errors import MethodNotFoundError

ok = new_rpc_response(1, "2.0", b'"0x1"', None)
print(ok.to_bytes())  # b'{"jsonrpc":"2.0","id":1,"result":"0x1"}'

failed = new_rpc_response(2, "2.0", None, MethodNotFoundError("edge_missing"))
print(failed.to_bytes())
```

Dispatch calls to a service and serve them over HTTP:

```python
import threading

from edgenet.dispatcher import Dispatcher
from edgenet.http_server import JSONRPCServer, ServerConfig


class Edge:
    def networkId(self):
        return "0x1"


dispatcher = Dispatcher()
dispatcher.register_service("edge", Edge())
print(dispatcher.handle(b'{"jsonrpc":"2.0","id":1,"method":"edge_networkId"}'))

server = JSONRPCServer(ServerConfig(addr=("127.0.0.1", 8545)), dispatcher)
threading.Thread(target=server.serve_forever, daemon=True).start()
# ...
server.shutdown()
```

## What the package does not do

- It has no peer-to-peer transport. It does not open connections to peers,
  run a gossip layer, or create and store node keys. `IdentityService` and
  `DiscoveryService` talk to a networking server through the
  `NetworkingServer` protocols in `edgenet.identity` and `edgenet.discovery`.
  You have to supply that server, along with its identity and discovery
  clients.
- It has no built-in subscription or filter store. `edge_subscribe` over a
  websocket works only through the `subscribe_handler` given to
  `Dispatcher`. Without one, every subscription is answered with
  `SubscriptionNotFoundError`.
- It installs no command; start the server from your own code as shown
  above.

## Requirements

Python 3.10 or newer. Tests use pytest (`pip install .[test]`).