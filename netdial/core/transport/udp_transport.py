"""
UDP transport implementation for netdial.

A UDPConnection is created in one of two modes that never change afterwards:

- listening (``listen_udp``): bound to a local address, no fixed peer. Reads
  may omit the sender, writes must name their addressee.
- dialed (``dial_udp``): connected to a fixed peer. Writes may omit the
  addressee, reads must report their sender.

Explicitly addressed writes resolve their peer through a PeerAddressCache so
repeated sends to the same peer string resolve it only once.
"""

from __future__ import annotations

import socket
from collections.abc import Buffer
from dataclasses import dataclass
from typing import Final

from loguru import logger

from netdial.datastructures.type_aliases import (
    AddressString,
    ByteCount,
    DurationSeconds,
    EndpointDescriptor,
)

from .addressing import (
    ResolvedAddress,
    render_address,
    render_socket_address,
    resolve_for,
    socket_endpoint,
)
from .defaults import UNKNOWN_ADDR
from .interfaces import (
    AddressRenderError,
    Connection,
    TransportConfig,
    TransportConnectionError,
    TransportIOError,
    TransportProtocol,
    TransportUsageError,
)
from .peer_cache import PeerAddressCache
from .polling import Readiness, wait_ready

SCHEME: Final = f"{TransportProtocol.UDP.value}://"
MAX_DATAGRAM_SIZE: Final = 65535


@dataclass(frozen=True, slots=True)
class ListeningMode:
    """Bound socket without a fixed peer."""


@dataclass(frozen=True, slots=True)
class DialedMode:
    """Connected socket with a fixed peer descriptor."""

    peer: AddressString


type UDPMode = ListeningMode | DialedMode


def _strerror(e: OSError) -> str:
    return e.strerror or str(e)


class UDPConnection(Connection):
    """A datagram socket in either listening or dialed mode."""

    UNKNOWN_ADDR: Final = UNKNOWN_ADDR

    def __init__(
        self,
        sock: socket.socket,
        mode: UDPMode,
        local_addr: AddressString,
        *,
        peer_cache: PeerAddressCache | None = None,
    ) -> None:
        match mode:
            case DialedMode(peer=peer):
                remote_addr = peer
            case ListeningMode():
                remote_addr = UNKNOWN_ADDR
            case _:
                raise TypeError(f"Unknown UDP connection mode: {mode!r}")
        super().__init__(sock, local_addr, remote_addr)
        self._mode = mode
        self._peers = peer_cache if peer_cache is not None else PeerAddressCache()

    @classmethod
    def listen(
        cls, resolved: ResolvedAddress, *, peer_cache: PeerAddressCache | None = None
    ) -> UDPConnection:
        """Bind a new datagram socket to ``resolved``.

        Raises:
            TransportConnectionError: socket acquisition or bind failed
        """
        try:
            sock = resolved.create_socket()
        except OSError as e:
            raise TransportConnectionError(
                f"UDPConnection: unable to acquire socket - {_strerror(e)}"
            ) from e
        try:
            sock.bind(resolved.sockaddr)
        except OSError as e:
            sock.close()
            raise TransportConnectionError(
                f"UDPConnection: unable to bind socket {render_address(resolved)} "
                f"- {_strerror(e)}"
            ) from e

        try:
            local_addr = SCHEME + render_socket_address(sock)
        except AddressRenderError:
            sock.close()
            raise
        logger.debug(f"UDP connection listening on {local_addr}")
        return cls(sock, ListeningMode(), local_addr, peer_cache=peer_cache)

    @classmethod
    def dial(
        cls,
        resolved: ResolvedAddress,
        descriptor: EndpointDescriptor,
        *,
        peer_cache: PeerAddressCache | None = None,
    ) -> UDPConnection:
        """Connect a new datagram socket to ``resolved``.

        Connecting only fixes the default peer; no packets are exchanged.

        Raises:
            TransportConnectionError: socket acquisition or connect failed
        """
        try:
            sock = resolved.create_socket()
        except OSError as e:
            raise TransportConnectionError(
                f"UDPConnection: unable to acquire socket - {_strerror(e)}"
            ) from e
        try:
            sock.connect(resolved.sockaddr)
        except OSError as e:
            sock.close()
            raise TransportConnectionError(
                f"UDPConnection: unable to connect socket to {descriptor} "
                f"- {_strerror(e)}"
            ) from e

        try:
            local_addr = SCHEME + render_socket_address(sock)
        except AddressRenderError:
            sock.close()
            raise

        if peer_cache is None:
            peer_cache = PeerAddressCache()
        peer_cache.insert(descriptor, resolved)
        logger.debug(f"Dialed UDP connection {local_addr} -> {descriptor}")
        return cls(sock, DialedMode(peer=descriptor), local_addr, peer_cache=peer_cache)

    @property
    def mode(self) -> UDPMode:
        return self._mode

    @property
    def peer_cache(self) -> PeerAddressCache:
        return self._peers

    def read_from(
        self, buffer: Buffer, timeout: DurationSeconds | None = None
    ) -> tuple[ByteCount, AddressString]:
        """Receive one datagram into ``buffer`` and report who sent it.

        The sender is rendered as ``udp://ip:port``; an unrenderable sender is
        reported as ``"?"`` instead of failing the read.

        Raises:
            TransportPollError: the readiness poll failed
            TransportTimeoutError: nothing arrived within ``timeout``
            TransportIOError: the receive itself failed
        """
        sock = self._require_open("read")
        wait_ready(sock, Readiness.READABLE, timeout, operation="UDPConnection.read")
        try:
            received, sender = sock.recvfrom_into(buffer)
        except OSError as e:
            raise TransportIOError(
                f"UDPConnection.read: unable to read - {_strerror(e)}"
            ) from e

        try:
            peer = SCHEME + render_address(socket_endpoint(sock.family, sender))
        except AddressRenderError as e:
            logger.warning(f"UDPConnection.read: unknown sender {sender!r} - {e}")
            peer = UNKNOWN_ADDR
        return received, peer

    def read(
        self, buffer: Buffer, timeout: DurationSeconds | None = None
    ) -> ByteCount:
        """Receive one datagram without reporting its sender.

        Only legal on a listening connection.

        Raises:
            TransportUsageError: the connection is dialed
        """
        match self._mode:
            case DialedMode():
                raise TransportUsageError(
                    "UDPConnection.read: reading from a sending UDP connection "
                    "without addressee"
                )
            case ListeningMode():
                received, _ = self.read_from(buffer, timeout)
                return received

    def write_to(
        self,
        data: Buffer,
        peer: AddressString,
        timeout: DurationSeconds | None = None,
    ) -> ByteCount:
        """Send ``data`` as one datagram to ``peer`` (a ``udp://`` descriptor).

        IPv6 peers must be bracketed, e.g. ``udp://[::1]:9000``.

        Raises:
            ProtocolMismatchError: ``peer`` is not a ``udp://`` descriptor
            AddressParseError, AddressResolutionError: ``peer`` is unusable
            TransportPollError: the readiness poll failed
            TransportTimeoutError: the socket stayed unwritable within ``timeout``
            TransportIOError: the send itself failed
        """
        sock = self._require_open("write")
        resolved = self._peers.resolve(peer)
        wait_ready(sock, Readiness.WRITABLE, timeout, operation="UDPConnection.write")
        try:
            return sock.sendto(data, resolved.sockaddr)
        except OSError as e:
            raise TransportIOError(
                f"UDPConnection.write: unable to write to {peer} - {_strerror(e)}"
            ) from e

    def write(self, data: Buffer, timeout: DurationSeconds | None = None) -> ByteCount:
        """Send ``data`` to the fixed peer of a dialed connection.

        Raises:
            TransportUsageError: the connection is listening
        """
        match self._mode:
            case ListeningMode():
                raise TransportUsageError(
                    "UDPConnection.write: writing to receiving UDP connection "
                    "without addressee"
                )
            case DialedMode(peer=peer):
                return self.write_to(data, peer, timeout)


def listen_udp(
    descriptor: EndpointDescriptor, config: TransportConfig | None = None
) -> UDPConnection:
    """Bind a UDP connection that accepts datagrams from any peer.

    Raises:
        ProtocolMismatchError: descriptor is not ``udp://``
        AddressParseError, AddressResolutionError: descriptor is unusable
        TransportConnectionError: the socket could not be bound
    """
    if config is None:
        config = TransportConfig()
    resolved = resolve_for(descriptor, TransportProtocol.UDP, "listen_udp")
    return UDPConnection.listen(
        resolved, peer_cache=PeerAddressCache(capacity=config.peer_cache_capacity)
    )


def dial_udp(
    descriptor: EndpointDescriptor, config: TransportConfig | None = None
) -> UDPConnection:
    """Create a UDP connection whose reads and writes default to ``descriptor``.

    Raises:
        ProtocolMismatchError: descriptor is not ``udp://``
        AddressParseError, AddressResolutionError: descriptor is unusable
        TransportConnectionError: the socket could not be connected
    """
    if config is None:
        config = TransportConfig()
    resolved = resolve_for(descriptor, TransportProtocol.UDP, "dial_udp")
    return UDPConnection.dial(
        resolved,
        descriptor,
        peer_cache=PeerAddressCache(capacity=config.peer_cache_capacity),
    )
