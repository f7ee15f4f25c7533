"""
Readiness polling shared by every blocking transport operation.

Each read, write and accept first waits for the socket to become ready and
only then performs exactly one syscall. A failed poll and an expired poll are
reported as different errors so callers can tell a broken socket from a quiet
one.
"""

from __future__ import annotations

import math
import os
import select
import socket
from enum import IntFlag

from netdial.datastructures.type_aliases import (
    DurationSeconds,
    PollTimeoutMilliseconds,
)

from .interfaces import TransportPollError, TransportTimeoutError

BLOCK_INDEFINITELY: PollTimeoutMilliseconds = -1
MAX_POLL_TIMEOUT: PollTimeoutMilliseconds = 2**31 - 1


class Readiness(IntFlag):
    """Readiness conditions a caller can wait for."""

    READABLE = select.POLLIN
    WRITABLE = select.POLLOUT


_FAILURE_EVENTS = select.POLLERR | select.POLLNVAL


def blocking_timeout(timeout: DurationSeconds | None) -> DurationSeconds | None:
    """Map a duration onto socket.settimeout(), where None means block.

    None, negative and non-finite durations all block indefinitely.
    """
    if timeout is None or timeout < 0 or not math.isfinite(timeout):
        return None
    return timeout


def poll_timeout_ms(timeout: DurationSeconds | None) -> PollTimeoutMilliseconds:
    """Convert a duration in seconds into a poll(2) timeout.

    None, negative and non-finite durations block indefinitely. Positive
    durations are rounded up so a tiny timeout never turns into a non-blocking
    poll, and are capped at the largest value poll(2) accepts.
    """
    timeout = blocking_timeout(timeout)
    if timeout is None:
        return BLOCK_INDEFINITELY
    milliseconds = timeout * 1000
    if milliseconds >= MAX_POLL_TIMEOUT:
        return MAX_POLL_TIMEOUT
    return math.ceil(milliseconds)


def wait_ready(
    sock: socket.socket,
    readiness: Readiness,
    timeout: DurationSeconds | None,
    *,
    operation: str,
) -> int:
    """Block until ``sock`` satisfies ``readiness`` or ``timeout`` expires.

    Args:
        sock: Socket to watch
        readiness: Condition to wait for
        timeout: Seconds to wait; None or negative waits forever
        operation: Name used in error messages, e.g. ``"TCPConnection.read"``

    Returns:
        The revents mask reported for the socket

    Raises:
        TransportPollError: poll failed or flagged an error condition
        TransportTimeoutError: nothing became ready before the deadline
    """
    poller = select.poll()
    try:
        poller.register(sock, readiness)
        events = poller.poll(poll_timeout_ms(timeout))
    except (OSError, OverflowError, ValueError) as e:
        detail = e.strerror if isinstance(e, OSError) and e.strerror else e
        raise TransportPollError(
            f"{operation}: failed to poll the socket - {detail}"
        ) from e

    if not events:
        raise TransportTimeoutError(f"{operation}: timeout whilst polling the socket")

    revents = 0
    for _fd, mask in events:
        revents |= mask

    if revents & _FAILURE_EVENTS:
        raise TransportPollError(
            f"{operation}: failed to poll the socket - {_describe_failure(sock, revents)}"
        )
    return revents


def _describe_failure(sock: socket.socket, revents: int) -> str:
    if revents & select.POLLNVAL:
        return "invalid descriptor"
    try:
        code = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
    except OSError as e:
        return e.strerror or str(e)
    if code:
        return os.strerror(code)
    return "socket error condition"
