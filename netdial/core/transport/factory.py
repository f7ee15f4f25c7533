"""
Transport factory for netdial.

Maps a descriptor's scheme to the dial/listen entry points of the matching
transport so callers can stay protocol agnostic:

    conn = TransportFactory.dial("udp://127.0.0.1:9000")
    listener = TransportFactory.listen("tcp://0.0.0.0:9000")
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from netdial.datastructures.type_aliases import EndpointDescriptor

from .addressing import parse_endpoint
from .interfaces import (
    Connection,
    TransportConfig,
    TransportError,
    TransportProtocol,
    UnsupportedProtocolError,
)
from .tcp_transport import TCPListener, dial_tcp, listen_tcp
from .udp_transport import UDPConnection, dial_udp, listen_udp

type Dialer = Callable[[EndpointDescriptor, TransportConfig | None], Connection]
type Listener = Callable[
    [EndpointDescriptor, TransportConfig | None], TCPListener | UDPConnection
]


@dataclass(frozen=True, slots=True)
class TransportEntry:
    """Entry points registered for one protocol."""

    protocol: TransportProtocol
    dialer: Dialer
    listener: Listener
    connection_oriented: bool


class TransportRegistry:
    """Registry for transport implementations keyed by protocol."""

    def __init__(self) -> None:
        self._entries: dict[TransportProtocol, TransportEntry] = {}

    def register_transport(
        self,
        protocol: TransportProtocol,
        dialer: Dialer,
        listener: Listener,
        *,
        connection_oriented: bool,
    ) -> None:
        """Register (or replace) the entry points for ``protocol``."""
        self._entries[protocol] = TransportEntry(
            protocol=protocol,
            dialer=dialer,
            listener=listener,
            connection_oriented=connection_oriented,
        )

    def get_entry(self, protocol: TransportProtocol) -> TransportEntry:
        if protocol not in self._entries:
            raise TransportError(
                f"No transport registered for protocol: {protocol.value}"
            )
        return self._entries[protocol]

    def list_protocols(self) -> list[TransportProtocol]:
        return list(self._entries.keys())


# Global transport registry
_registry = TransportRegistry()
_registry.register_transport(
    TransportProtocol.TCP, dial_tcp, listen_tcp, connection_oriented=True
)
_registry.register_transport(
    TransportProtocol.UDP, dial_udp, listen_udp, connection_oriented=False
)


def get_transport_registry() -> TransportRegistry:
    return _registry


class TransportFactory:
    """Factory that dispatches descriptors to the transport for their scheme."""

    @staticmethod
    def dial(
        descriptor: EndpointDescriptor, config: TransportConfig | None = None
    ) -> Connection:
        """Dial ``descriptor`` with whichever transport its scheme names.

        Raises:
            UnsupportedProtocolError: the scheme is not a supported protocol
            TransportError: construction of the connection failed
        """
        protocol = parse_endpoint(descriptor).protocol
        return _registry.get_entry(protocol).dialer(descriptor, config)

    @staticmethod
    def listen(
        descriptor: EndpointDescriptor, config: TransportConfig | None = None
    ) -> TCPListener | UDPConnection:
        """Listen on ``descriptor`` with whichever transport its scheme names."""
        protocol = parse_endpoint(descriptor).protocol
        return _registry.get_entry(protocol).listener(descriptor, config)

    @staticmethod
    def list_supported_protocols() -> list[str]:
        """List all supported transport protocols."""
        return [protocol.value for protocol in _registry.list_protocols()]

    @staticmethod
    def is_connection_oriented(protocol: str | TransportProtocol) -> bool:
        if isinstance(protocol, str):
            try:
                protocol = TransportProtocol(protocol.lower())
            except ValueError:
                raise UnsupportedProtocolError(
                    f"Unsupported transport protocol: {protocol}"
                ) from None
        return _registry.get_entry(protocol).connection_oriented
