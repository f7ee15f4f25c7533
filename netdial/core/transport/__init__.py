"""
netdial transport layer.

TCP and UDP sockets behind one connection/listener interface with
deadline-bounded blocking I/O and URI-style addressing.

Example Usage:
    listener = listen_tcp("tcp://127.0.0.1:9000")
    client = dial_tcp("tcp://127.0.0.1:9000")
    server = listener.accept(timeout=1.0)

    client.write(b"Hello, World!")
    buffer = bytearray(64)
    count = server.read(buffer, timeout=1.0)

    # UDP
    server = listen_udp("udp://127.0.0.1:9001")
    client = dial_udp("udp://127.0.0.1:9001")
    client.write(b"ping")
    count, sender = server.read_from(buffer, timeout=1.0)
    server.write_to(b"pong", sender)

Senders are rendered as ``udp://ip:port``. An IPv4 sender can be passed
straight back to write_to(); an IPv6 sender such as ``udp://::1:9001`` must be
bracketed first (``udp://[::1]:9001``) because descriptors end the host at
the first colon.
"""

from .addressing import (
    Endpoint,
    IPv4Endpoint,
    IPv6Endpoint,
    ResolvedAddress,
    SocketEndpoint,
    parse_endpoint,
    render_address,
    render_socket_address,
    resolve,
    resolve_all,
)
from .defaults import UNKNOWN_ADDR
from .factory import TransportFactory
from .interfaces import (
    AddressParseError,
    AddressRenderError,
    AddressResolutionError,
    Connection,
    ProtocolMismatchError,
    Reader,
    ReaderFrom,
    TransportAcceptError,
    TransportConfig,
    TransportConnectionError,
    TransportError,
    TransportIOError,
    TransportPollError,
    TransportProtocol,
    TransportTimeoutError,
    TransportUsageError,
    UnsupportedAddressFamilyError,
    UnsupportedProtocolError,
    Writer,
    WriterTo,
)
from .peer_cache import PeerAddressCache, PeerCacheStatistics
from .tcp_transport import TCPConnection, TCPListener, dial_tcp, listen_tcp
from .udp_transport import (
    DialedMode,
    ListeningMode,
    UDPConnection,
    dial_udp,
    listen_udp,
)

__all__ = [
    "AddressParseError",
    "AddressRenderError",
    "AddressResolutionError",
    "Connection",
    "DialedMode",
    "Endpoint",
    "IPv4Endpoint",
    "IPv6Endpoint",
    "ListeningMode",
    "PeerAddressCache",
    "PeerCacheStatistics",
    "ProtocolMismatchError",
    "Reader",
    "ReaderFrom",
    "ResolvedAddress",
    "SocketEndpoint",
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
    "Writer",
    "WriterTo",
    "dial_tcp",
    "dial_udp",
    "listen_tcp",
    "listen_udp",
    "parse_endpoint",
    "render_address",
    "render_socket_address",
    "resolve",
    "resolve_all",
]
