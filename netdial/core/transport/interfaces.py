"""
Core transport interfaces and types for netdial.

This module defines the protocol enum, the error taxonomy, the reader/writer
capability protocols and the abstract connection every transport builds on,
so TCP and UDP present one consistent API.
"""

from __future__ import annotations

import math
import socket
import struct
from abc import ABC, abstractmethod
from collections.abc import Buffer
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import Protocol, runtime_checkable

from netdial.datastructures.type_aliases import (
    AddressString,
    ByteCount,
    DurationSeconds,
)

from .defaults import (
    DEFAULT_ACCEPT_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_LISTEN_BACKLOG,
    DEFAULT_NO_DELAY,
    DEFAULT_PEER_CACHE_CAPACITY,
)


class TransportProtocol(Enum):
    """Supported transport protocols."""

    TCP = "tcp"
    UDP = "udp"

    @property
    def socket_type(self) -> int:
        """Socket type requested from name resolution for this protocol."""
        if self is TransportProtocol.TCP:
            return socket.SOCK_STREAM
        return socket.SOCK_DGRAM


class TransportError(Exception):
    """Base exception for transport-related errors."""

    pass


class AddressParseError(TransportError, ValueError):
    """Raised when an endpoint descriptor is malformed."""

    pass


class UnsupportedProtocolError(AddressParseError):
    """Raised when a descriptor names a protocol other than tcp or udp."""

    pass


class ProtocolMismatchError(AddressParseError):
    """Raised when a descriptor's protocol does not fit the requested transport."""

    pass


class AddressResolutionError(TransportError):
    """Raised when system name resolution fails for a descriptor."""

    pass


class AddressRenderError(TransportError):
    """Raised when a socket address cannot be rendered."""

    pass


class UnsupportedAddressFamilyError(AddressRenderError):
    """Raised when an address is neither IPv4 nor IPv6."""

    pass


class TransportConnectionError(TransportError):
    """Raised when acquiring, binding, listening or connecting a socket fails."""

    pass


class TransportPollError(TransportError):
    """Raised when the readiness poll itself fails."""

    pass


class TransportTimeoutError(TransportError):
    """Raised when the readiness poll expires with nothing ready."""

    pass


class TransportIOError(TransportError):
    """Raised when a read, write, send or receive syscall fails."""

    pass


class TransportAcceptError(TransportIOError):
    """Raised when accepting a pending connection fails."""

    pass


class TransportUsageError(TransportError):
    """Raised when an operation is not legal in the object's current mode."""

    pass


@runtime_checkable
class Reader(Protocol):
    """Anything that fills a caller-provided buffer within a deadline."""

    def read(
        self, buffer: Buffer, timeout: DurationSeconds | None = None
    ) -> ByteCount: ...


@runtime_checkable
class Writer(Protocol):
    """Anything that writes a buffer within a deadline."""

    def write(
        self, data: Buffer, timeout: DurationSeconds | None = None
    ) -> ByteCount: ...


@runtime_checkable
class ReaderFrom(Protocol):
    """A reader that also reports who sent the data."""

    def read_from(
        self, buffer: Buffer, timeout: DurationSeconds | None = None
    ) -> tuple[ByteCount, AddressString]: ...


@runtime_checkable
class WriterTo(Protocol):
    """A writer that addresses every write explicitly."""

    def write_to(
        self,
        data: Buffer,
        peer: AddressString,
        timeout: DurationSeconds | None = None,
    ) -> ByteCount: ...


@dataclass(slots=True)
class TransportConfig:
    """Configuration shared by listeners and dialers."""

    listen_backlog: int = DEFAULT_LISTEN_BACKLOG
    accept_timeout: DurationSeconds | None = DEFAULT_ACCEPT_TIMEOUT
    connect_timeout: DurationSeconds | None = DEFAULT_CONNECT_TIMEOUT
    peer_cache_capacity: int = DEFAULT_PEER_CACHE_CAPACITY
    no_delay: bool = DEFAULT_NO_DELAY

    def __post_init__(self) -> None:
        if self.listen_backlog < 0:
            raise ValueError("listen_backlog must not be negative")
        if self.peer_cache_capacity <= 0:
            raise ValueError("peer_cache_capacity must be positive")


_MAX_TIMEVAL_SECONDS = 2**31 - 1


def _timeval(timeout: DurationSeconds | None) -> bytes:
    """Pack a duration into a struct timeval; None or negative disables it."""
    if timeout is None or timeout < 0 or not math.isfinite(timeout):
        return struct.pack("@ll", 0, 0)
    if timeout >= _MAX_TIMEVAL_SECONDS:
        return struct.pack("@ll", _MAX_TIMEVAL_SECONDS, 0)
    fraction, whole = math.modf(timeout)
    seconds = int(whole)
    microseconds = int(round(fraction * 1_000_000))
    if microseconds >= 1_000_000:
        seconds, microseconds = seconds + 1, microseconds - 1_000_000
    if seconds == 0 and microseconds == 0 and timeout > 0:
        # a zero timeval means "no timeout" to the kernel
        microseconds = 1
    return struct.pack("@ll", seconds, microseconds)


class Connection(ABC):
    """Abstract base for every connection that owns exactly one socket.

    The socket is closed by close(), by leaving a ``with`` block, or when the
    socket object itself is collected. Socket-level timeouts set here are OS
    safety nets; the per-call ``timeout`` argument of read/write is the
    primary deadline mechanism.
    """

    def __init__(
        self, sock: socket.socket, local_addr: AddressString, remote_addr: AddressString
    ) -> None:
        self._sock = sock
        self._local_addr = local_addr
        self._remote_addr = remote_addr
        self._closed = False

    @property
    def local_addr(self) -> AddressString:
        """Scheme-prefixed local address, e.g. ``tcp://127.0.0.1:5000``."""
        return self._local_addr

    @property
    def remote_addr(self) -> AddressString:
        """Scheme-prefixed peer address."""
        return self._remote_addr

    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        return self._sock.fileno()

    @abstractmethod
    def read(self, buffer: Buffer, timeout: DurationSeconds | None = None) -> int:
        """Read into ``buffer`` once the socket is readable within ``timeout``."""
        pass

    @abstractmethod
    def write(self, data: Buffer, timeout: DurationSeconds | None = None) -> int:
        """Write ``data`` once the socket is writable within ``timeout``."""
        pass

    def set_timeout(self, timeout: DurationSeconds | None) -> None:
        """Set both the socket-level receive and send timeouts."""
        self.set_read_timeout(timeout)
        self.set_write_timeout(timeout)

    def set_read_timeout(self, timeout: DurationSeconds | None) -> None:
        """Set SO_RCVTIMEO on the underlying socket."""
        self._setsockopt(socket.SOL_SOCKET, socket.SO_RCVTIMEO, _timeval(timeout))

    def set_write_timeout(self, timeout: DurationSeconds | None) -> None:
        """Set SO_SNDTIMEO on the underlying socket."""
        self._setsockopt(socket.SOL_SOCKET, socket.SO_SNDTIMEO, _timeval(timeout))

    def close(self) -> None:
        """Close the socket. Calling close twice is harmless."""
        if self._closed:
            return
        self._closed = True
        self._sock.close()

    def _require_open(self, operation: str) -> socket.socket:
        if self._closed:
            raise TransportUsageError(
                f"{type(self).__name__}.{operation}: connection is closed"
            )
        return self._sock

    def _setsockopt(self, level: int, option: int, value: int | bytes) -> None:
        sock = self._require_open("setsockopt")
        try:
            sock.setsockopt(level, option, value)
        except OSError as e:
            raise TransportError(
                f"{type(self).__name__}: unable to set socket option - {e.strerror or e}"
            ) from e

    def __enter__(self) -> Connection:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return (
            f"<{type(self).__name__} local={self._local_addr} "
            f"remote={self._remote_addr} {state}>"
        )
