"""
TCP transport implementation for netdial.

Connections and listeners are thin owners of one blocking stream socket.
Every read, write and accept waits for readiness with a caller supplied
deadline and then performs exactly one syscall; partial transfers are
returned as-is and never retried internally.

Example:
    with listen_tcp("tcp://127.0.0.1:9000") as listener:
        client = dial_tcp("tcp://127.0.0.1:9000")
        server = listener.accept(timeout=1.0)
        client.write(b"hello")
        buffer = bytearray(1024)
        received = server.read(buffer, timeout=1.0)
"""

from __future__ import annotations

import socket
from collections.abc import Buffer
from types import TracebackType
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
from .defaults import DEFAULT_LISTEN_BACKLOG
from .interfaces import (
    AddressRenderError,
    Connection,
    TransportAcceptError,
    TransportConfig,
    TransportConnectionError,
    TransportError,
    TransportIOError,
    TransportProtocol,
    TransportUsageError,
)
from .polling import Readiness, blocking_timeout, wait_ready

SCHEME: Final = f"{TransportProtocol.TCP.value}://"


class _UseDefault:
    def __repr__(self) -> str:
        return "<listener default>"


USE_DEFAULT_TIMEOUT: Final = _UseDefault()


def _strerror(e: Exception) -> str:
    return getattr(e, "strerror", None) or str(e)


class TCPConnection(Connection):
    """A connected, exclusively owned stream socket.

    Instances come from dial() or TCPListener.accept(). The read and write
    directions are independent and may be used from two threads at once;
    concurrent reads (or concurrent writes) are not serialized.
    """

    def __init__(
        self, sock: socket.socket, local_addr: AddressString, remote_addr: AddressString
    ) -> None:
        """Wrap an already connected socket.

        Args:
            sock: Connected stream socket, ownership passes to the connection
            local_addr: Scheme-prefixed local address
            remote_addr: Scheme-prefixed peer address
        """
        super().__init__(sock, local_addr, remote_addr)

    @classmethod
    def dial(
        cls,
        resolved: ResolvedAddress,
        *,
        connect_timeout: DurationSeconds | None = None,
    ) -> TCPConnection:
        """Connect a new socket to ``resolved``.

        Raises:
            TransportConnectionError: socket acquisition or connect failed
            AddressRenderError: the connected socket's address is unrenderable
        """
        remote_addr = SCHEME + render_address(resolved)
        try:
            sock = resolved.create_socket()
        except OSError as e:
            raise TransportConnectionError(
                f"TCPConnection: unable to acquire socket - {_strerror(e)}"
            ) from e

        try:
            sock.settimeout(blocking_timeout(connect_timeout))
            sock.connect(resolved.sockaddr)
            sock.settimeout(None)
        except (OSError, OverflowError, ValueError) as e:
            sock.close()
            raise TransportConnectionError(
                f"TCPConnection: unable to connect socket to {remote_addr} - {_strerror(e)}"
            ) from e

        try:
            local_addr = SCHEME + render_socket_address(sock)
        except AddressRenderError:
            sock.close()
            raise

        logger.debug(f"Dialed TCP connection {local_addr} -> {remote_addr}")
        return cls(sock, local_addr, remote_addr)

    def read(
        self, buffer: Buffer, timeout: DurationSeconds | None = None
    ) -> ByteCount:
        """Read at most ``len(buffer)`` bytes into ``buffer``.

        Returns the number of bytes read; 0 means the peer closed its side.

        Raises:
            TransportPollError: the readiness poll failed
            TransportTimeoutError: nothing arrived within ``timeout``
            TransportIOError: the read itself failed
        """
        sock = self._require_open("read")
        wait_ready(sock, Readiness.READABLE, timeout, operation="TCPConnection.read")
        try:
            return sock.recv_into(buffer)
        except OSError as e:
            raise TransportIOError(
                f"TCPConnection.read: unable to read - {_strerror(e)}"
            ) from e

    def write(self, data: Buffer, timeout: DurationSeconds | None = None) -> ByteCount:
        """Write as much of ``data`` as one send accepts and return the count.

        Raises:
            TransportPollError: the readiness poll failed
            TransportTimeoutError: the socket stayed unwritable within ``timeout``
            TransportIOError: the write itself failed
        """
        sock = self._require_open("write")
        wait_ready(sock, Readiness.WRITABLE, timeout, operation="TCPConnection.write")
        try:
            return sock.send(data)
        except OSError as e:
            raise TransportIOError(
                f"TCPConnection.write: unable to write - {_strerror(e)}"
            ) from e

    def set_no_delay(self, enabled: bool = True) -> None:
        """Toggle TCP_NODELAY. Output coalescing stays on by default."""
        self._setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1 if enabled else 0)


class TCPListener:
    """Owns one bound and listening stream socket.

    Construction either yields a listening socket or raises; a partially set up
    socket is always closed first.
    """

    def __init__(
        self,
        resolved: ResolvedAddress,
        *,
        backlog: int = DEFAULT_LISTEN_BACKLOG,
        accept_timeout: DurationSeconds | None = None,
        no_delay: bool = False,
    ) -> None:
        self._resolved = resolved
        self._timeout = accept_timeout
        self._no_delay = no_delay
        self._closed = False

        try:
            sock = resolved.create_socket()
        except OSError as e:
            raise TransportConnectionError(
                f"TCPListener: unable to acquire socket - {_strerror(e)}"
            ) from e

        step = "claim"
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            step = "bind"
            sock.bind(resolved.sockaddr)
            step = "listen on"
            sock.listen(backlog)
        except OSError as e:
            sock.close()
            raise TransportConnectionError(
                f"TCPListener: unable to {step} socket {render_address(resolved)} "
                f"- {_strerror(e)}"
            ) from e

        self._sock = sock
        try:
            self._local_addr = SCHEME + render_socket_address(sock)
        except AddressRenderError:
            sock.close()
            raise
        logger.debug(f"TCP listener bound on {self._local_addr} (backlog={backlog})")

    @property
    def local_addr(self) -> AddressString:
        """Scheme-prefixed address the listener is bound to."""
        return self._local_addr

    @property
    def resolved(self) -> ResolvedAddress:
        return self._resolved

    @property
    def default_timeout(self) -> DurationSeconds | None:
        return self._timeout

    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        return self._sock.fileno()

    def set_timeout(self, timeout: DurationSeconds | None) -> None:
        """Change the timeout used by accept() when none is passed.

        Not synchronized; change it before sharing the listener across threads.
        """
        self._timeout = timeout

    def accept(
        self, timeout: DurationSeconds | None | _UseDefault = USE_DEFAULT_TIMEOUT
    ) -> TCPConnection:
        """Accept one pending connection.

        Args:
            timeout: Seconds to wait for a pending connection; None or a
                negative value blocks. Omitted uses the listener default.

        Raises:
            TransportPollError: the readiness poll failed
            TransportTimeoutError: no connection arrived within ``timeout``
            TransportAcceptError: the accept call failed
            AddressRenderError: either end of the new connection is unrenderable
        """
        if self._closed:
            raise TransportUsageError("TCPListener.accept: listener is closed")
        if isinstance(timeout, _UseDefault):
            timeout = self._timeout

        wait_ready(self._sock, Readiness.READABLE, timeout, operation="TCPListener.accept")
        try:
            conn_sock, peer = self._sock.accept()
        except OSError as e:
            raise TransportAcceptError(
                f"TCPListener.accept: failed to accept a new connection - {_strerror(e)}"
            ) from e

        try:
            local_addr = SCHEME + render_socket_address(conn_sock)
            remote_addr = SCHEME + render_address(
                socket_endpoint(conn_sock.family, peer)
            )
            if self._no_delay:
                conn_sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except (TransportError, OSError):
            conn_sock.close()
            raise

        logger.debug(f"Accepted TCP connection {remote_addr} on {local_addr}")
        return TCPConnection(conn_sock, local_addr, remote_addr)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._sock.close()
        logger.debug(f"TCP listener on {self._local_addr} closed")

    def __enter__(self) -> TCPListener:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "listening"
        return f"<TCPListener {self._local_addr} {state}>"


def listen_tcp(
    descriptor: EndpointDescriptor, config: TransportConfig | None = None
) -> TCPListener:
    """Start listening for TCP connections on ``descriptor``.

    Raises:
        ProtocolMismatchError: descriptor is not ``tcp://``
        AddressParseError, AddressResolutionError: descriptor is unusable
        TransportConnectionError: the socket could not be set up
    """
    if config is None:
        config = TransportConfig()
    resolved = resolve_for(descriptor, TransportProtocol.TCP, "listen_tcp")
    return TCPListener(
        resolved,
        backlog=config.listen_backlog,
        accept_timeout=config.accept_timeout,
        no_delay=config.no_delay,
    )


def dial_tcp(
    descriptor: EndpointDescriptor, config: TransportConfig | None = None
) -> TCPConnection:
    """Open a TCP connection to ``descriptor``.

    Raises:
        ProtocolMismatchError: descriptor is not ``tcp://``
        AddressParseError, AddressResolutionError: descriptor is unusable
        TransportConnectionError: the connection could not be established
    """
    if config is None:
        config = TransportConfig()
    resolved = resolve_for(descriptor, TransportProtocol.TCP, "dial_tcp")
    conn = TCPConnection.dial(resolved, connect_timeout=config.connect_timeout)
    if config.no_delay:
        try:
            conn.set_no_delay(True)
        except TransportError:
            conn.close()
            raise
    return conn
