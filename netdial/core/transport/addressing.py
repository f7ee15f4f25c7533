"""
Endpoint descriptor parsing, name resolution and address rendering.

Descriptor grammar::

    protocol "://" [host] ":" [port]

``protocol`` is ``tcp`` or ``udp``. An empty host means the wildcard address
and an empty port means port 80. A bracketed IPv6 literal is accepted as the
host (``udp://[::1]:9000``).

Rendering produces ``"<ip>:<port>"`` with a numeric ip and never performs
reverse DNS. Only IPv4 and IPv6 are representable; the closed union
``IPv4Endpoint | IPv6Endpoint`` rejects every other family at the boundary.
"""

from __future__ import annotations

import ipaddress
import socket
from dataclasses import dataclass
from typing import Any

from loguru import logger

from netdial.datastructures.type_aliases import (
    CanonicalAddress,
    EndpointDescriptor,
    HostAddress,
    PortNumber,
)

from .defaults import DEFAULT_PORT
from .interfaces import (
    AddressParseError,
    AddressRenderError,
    AddressResolutionError,
    ProtocolMismatchError,
    TransportProtocol,
    UnsupportedAddressFamilyError,
    UnsupportedProtocolError,
)

SCHEME_SEPARATOR = "://"
MAX_PORT = 65535


@dataclass(frozen=True, slots=True)
class Endpoint:
    """A parsed, not yet resolved, endpoint descriptor."""

    protocol: TransportProtocol
    host: HostAddress | None
    port: PortNumber

    @property
    def is_wildcard(self) -> bool:
        return self.host is None

    def __str__(self) -> str:
        host = self.host or ""
        if ":" in host:
            host = f"[{host}]"
        return f"{self.protocol.value}{SCHEME_SEPARATOR}{host}:{self.port}"


@dataclass(frozen=True, slots=True)
class IPv4Endpoint:
    """An AF_INET socket address."""

    host: str
    port: PortNumber

    def render(self) -> CanonicalAddress:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class IPv6Endpoint:
    """An AF_INET6 socket address."""

    host: str
    port: PortNumber
    flowinfo: int = 0
    scope_id: int = 0

    def render(self) -> CanonicalAddress:
        return f"{self.host}:{self.port}"


type SocketEndpoint = IPv4Endpoint | IPv6Endpoint


@dataclass(frozen=True, slots=True)
class ResolvedAddress:
    """One candidate returned by system name resolution."""

    family: socket.AddressFamily
    socktype: socket.SocketKind
    proto: int
    sockaddr: tuple[Any, ...]

    @property
    def protocol(self) -> TransportProtocol:
        if self.socktype == socket.SOCK_STREAM:
            return TransportProtocol.TCP
        return TransportProtocol.UDP

    @property
    def endpoint(self) -> SocketEndpoint:
        return socket_endpoint(self.family, self.sockaddr)

    def create_socket(self) -> socket.socket:
        """Acquire a fresh socket matching this address."""
        return socket.socket(self.family, self.socktype, self.proto)


def _parse_port(port_text: str, descriptor: str) -> PortNumber:
    if not port_text:
        return DEFAULT_PORT
    if not port_text.isascii() or not port_text.isdigit():
        raise AddressParseError(
            f'resolve: unable to parse port "{port_text}" in "{descriptor}"'
        )
    port = int(port_text)
    if port > MAX_PORT:
        raise AddressParseError(
            f'resolve: port {port} out of range in "{descriptor}"'
        )
    return port


def parse_endpoint(descriptor: EndpointDescriptor) -> Endpoint:
    """Split a descriptor into protocol, host and port.

    Fields are captured strictly left to right: everything before the first
    ``"://"`` is the protocol, everything up to the next ``":"`` is the host and
    the remainder is the port.

    Raises:
        UnsupportedProtocolError: protocol is missing or not tcp/udp
        AddressParseError: host or port cannot be parsed
    """
    scheme, separator, rest = descriptor.partition(SCHEME_SEPARATOR)
    if not separator:
        raise UnsupportedProtocolError(
            f'resolve: unable to resolve "{descriptor}" - missing protocol'
        )
    try:
        protocol = TransportProtocol(scheme.lower())
    except ValueError:
        raise UnsupportedProtocolError(
            f'resolve: unable to resolve "{descriptor}" - '
            f'Unsupported protocol "{scheme}"'
        ) from None

    if rest.startswith("["):
        host, closed, remainder = rest[1:].partition("]")
        if not closed or not host:
            raise AddressParseError(
                f'resolve: unterminated IPv6 literal in "{descriptor}"'
            )
        if remainder and not remainder.startswith(":"):
            raise AddressParseError(
                f'resolve: unexpected "{remainder}" after host in "{descriptor}"'
            )
        port_text = remainder[1:]
    else:
        host, _, port_text = rest.partition(":")

    return Endpoint(
        protocol=protocol,
        host=host or None,
        port=_parse_port(port_text, descriptor),
    )


def resolve_all(descriptor: EndpointDescriptor) -> list[ResolvedAddress]:
    """Resolve a descriptor into every candidate address.

    The family is left unspecified so IPv4 and IPv6 candidates may both be
    returned; the socket type follows the protocol.

    Raises:
        UnsupportedProtocolError, AddressParseError: descriptor is malformed
        AddressResolutionError: the system resolver failed
    """
    endpoint = parse_endpoint(descriptor)
    flags = socket.AI_PASSIVE if endpoint.is_wildcard else 0
    try:
        infos = socket.getaddrinfo(
            endpoint.host,
            endpoint.port,
            socket.AF_UNSPEC,
            endpoint.protocol.socket_type,
            0,
            flags,
        )
    except socket.gaierror as e:
        raise AddressResolutionError(
            f'resolve: trying to resolve "{descriptor}" but failed - {e.strerror or e}'
        ) from e
    except UnicodeError as e:
        raise AddressResolutionError(
            f'resolve: trying to resolve "{descriptor}" but failed - {e}'
        ) from e

    candidates = [
        ResolvedAddress(family, socktype, proto, sockaddr)
        for family, socktype, proto, _canonname, sockaddr in infos
        if family in (socket.AF_INET, socket.AF_INET6)
    ]
    if not candidates:
        raise AddressResolutionError(
            f'resolve: trying to resolve "{descriptor}" but no IPv4 or IPv6 '
            "address was returned"
        )
    logger.trace(f"Resolved {descriptor} to {len(candidates)} candidate(s)")
    return candidates


def resolve(descriptor: EndpointDescriptor) -> ResolvedAddress:
    """Resolve a descriptor and return its first candidate.

    Candidates beyond the first are never consulted, even when the first later
    fails to bind or connect.
    """
    return resolve_all(descriptor)[0]


def resolve_for(
    descriptor: EndpointDescriptor, protocol: TransportProtocol, operation: str
) -> ResolvedAddress:
    """Resolve a descriptor that must use ``protocol``.

    The protocol is checked before any resolution happens.
    """
    endpoint = parse_endpoint(descriptor)
    if endpoint.protocol is not protocol:
        raise ProtocolMismatchError(
            f'{operation}: attempting to use a non-{protocol.name} socket on "{descriptor}"'
        )
    return resolve(descriptor)


def socket_endpoint(family: int, sockaddr: tuple[Any, ...]) -> SocketEndpoint:
    """Build the tagged endpoint for a raw socket address.

    Raises:
        UnsupportedAddressFamilyError: family is neither AF_INET nor AF_INET6
        AddressRenderError: the address payload is not a numeric ip/port pair
    """
    match family:
        case socket.AF_INET:
            host, port = sockaddr[0], sockaddr[1]
            try:
                ip = ipaddress.IPv4Address(host)
            except ValueError as e:
                raise AddressRenderError(
                    f"render_address: unable to convert IP to human-readable form - {e}"
                ) from e
            return IPv4Endpoint(host=str(ip), port=int(port))
        case socket.AF_INET6:
            host, port = sockaddr[0], sockaddr[1]
            try:
                ip = ipaddress.IPv6Address(host)
            except ValueError as e:
                raise AddressRenderError(
                    f"render_address: unable to convert IP to human-readable form - {e}"
                ) from e
            flowinfo = sockaddr[2] if len(sockaddr) > 2 else 0
            scope_id = sockaddr[3] if len(sockaddr) > 3 else 0
            return IPv6Endpoint(
                host=str(ip), port=int(port), flowinfo=flowinfo, scope_id=scope_id
            )
        case _:
            raise UnsupportedAddressFamilyError(
                f"render_address: unsupported family {family!r}"
            )


def render_address(address: ResolvedAddress | SocketEndpoint) -> CanonicalAddress:
    """Render an address as ``"<ip>:<port>"``."""
    if isinstance(address, ResolvedAddress):
        address = address.endpoint
    return address.render()


def render_socket_address(sock: socket.socket) -> CanonicalAddress:
    """Render the local address a live socket is bound to."""
    try:
        sockaddr = sock.getsockname()
    except OSError as e:
        raise AddressRenderError(
            f"render_address: unable to acquire localaddr - {e.strerror or e}"
        ) from e
    return render_address(socket_endpoint(sock.family, sockaddr))
