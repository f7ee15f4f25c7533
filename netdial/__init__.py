"""
netdial - listening for and dialing of TCP and UDP connections

A small transport layer that presents TCP and UDP sockets through one
connection/listener interface with deadline-bounded blocking I/O, URI-style
endpoint descriptors and automatic address rendering.

## Quick Start

```python
from netdial import dial_tcp, listen_tcp

listener = listen_tcp("tcp://127.0.0.1:9000")
client = dial_tcp("tcp://127.0.0.1:9000")
server = listener.accept(timeout=1.0)

client.write(b"hello")
buffer = bytearray(1024)
count = server.read(buffer, timeout=1.0)
assert server.remote_addr == client.local_addr
```

Every failure is raised as a `TransportError` subclass; nothing is retried
internally.
"""

from .config import NetdialSettings
from .core.transport import (
    UNKNOWN_ADDR,
    AddressParseError,
    AddressRenderError,
    AddressResolutionError,
    Connection,
    PeerAddressCache,
    ProtocolMismatchError,
    ResolvedAddress,
    TCPConnection,
    TCPListener,
    TransportAcceptError,
    TransportConfig,
    TransportConnectionError,
    TransportError,
    TransportFactory,
    TransportIOError,
    TransportPollError,
    TransportProtocol,
    TransportTimeoutError,
    TransportUsageError,
    UDPConnection,
    UnsupportedAddressFamilyError,
    UnsupportedProtocolError,
    dial_tcp,
    dial_udp,
    listen_tcp,
    listen_udp,
    render_address,
    render_socket_address,
    resolve,
    resolve_all,
)

__all__ = [
    "AddressParseError",
    "AddressRenderError",
    "AddressResolutionError",
    "Connection",
    "NetdialSettings",
    "PeerAddressCache",
    "ProtocolMismatchError",
    "ResolvedAddress",
    "TCPConnection",
    "TCPListener",
    "TransportAcceptError",
    "TransportConfig",
    "TransportConnectionError",
    "TransportError",
    "TransportFactory",
    "TransportIOError",
    "TransportPollError",
    "TransportProtocol",
    "TransportTimeoutError",
    "TransportUsageError",
    "UDPConnection",
    "UNKNOWN_ADDR",
    "UnsupportedAddressFamilyError",
    "UnsupportedProtocolError",
    "dial_tcp",
    "dial_udp",
    "listen_tcp",
    "listen_udp",
    "render_address",
    "render_socket_address",
    "resolve",
    "resolve_all",
]

# Version info
__version__ = "0.1.0"
__license__ = "MIT"
