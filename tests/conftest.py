"""Pytest configuration and fixtures for netdial testing.

Fixtures hand out loopback ports that are free for both TCP and UDP and
track every listener and connection a test opens so nothing outlives it.
"""

from collections.abc import Iterator
from typing import Any

import pytest
from loguru import logger

from port_allocator import PortAllocator, get_port_allocator


class TransportTestContext:
    """Collects transport objects and closes them after the test."""

    def __init__(self) -> None:
        self.resources: list[Any] = []

    def track[T](self, resource: T) -> T:
        self.resources.append(resource)
        return resource

    def close_all(self) -> None:
        for resource in reversed(self.resources):
            try:
                resource.close()
            except Exception as e:
                logger.warning(f"Error closing {resource!r}: {e}")
        self.resources.clear()


@pytest.fixture
def transports() -> Iterator[TransportTestContext]:
    """Provides a context whose tracked transports are closed on teardown."""
    ctx = TransportTestContext()
    try:
        yield ctx
    finally:
        ctx.close_all()


@pytest.fixture
def port_allocator() -> PortAllocator:
    """The process-wide port allocator."""
    return get_port_allocator()


@pytest.fixture
def test_port(port_allocator: PortAllocator) -> Iterator[int]:
    """A single port free for TCP and UDP on 127.0.0.1."""
    with port_allocator.port_context() as port:
        yield port


@pytest.fixture
def port_pair(port_allocator: PortAllocator) -> Iterator[list[int]]:
    """Two distinct ports, e.g. a server and a second listener."""
    with port_allocator.port_range_context(2) as ports:
        yield ports
