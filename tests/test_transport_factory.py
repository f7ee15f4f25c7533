"""
Tests for protocol dispatch through the transport factory.
"""

import pytest

from netdial.core.transport import (
    TCPListener,
    TransportError,
    TransportFactory,
    TransportProtocol,
    UDPConnection,
    UnsupportedProtocolError,
)
from netdial.core.transport.factory import TransportRegistry, get_transport_registry


class TestTransportFactory:
    def test_supported_protocols(self):
        assert TransportFactory.list_supported_protocols() == ["tcp", "udp"]

    def test_connection_orientation(self):
        assert TransportFactory.is_connection_oriented("tcp")
        assert TransportFactory.is_connection_oriented("TCP")
        assert not TransportFactory.is_connection_oriented(TransportProtocol.UDP)

    def test_unknown_protocol_orientation(self):
        with pytest.raises(UnsupportedProtocolError):
            TransportFactory.is_connection_oriented("sctp")

    def test_listen_dispatches_on_scheme(self, transports, port_pair):
        tcp_port, udp_port = port_pair
        tcp = transports.track(TransportFactory.listen(f"tcp://127.0.0.1:{tcp_port}"))
        udp = transports.track(TransportFactory.listen(f"udp://127.0.0.1:{udp_port}"))
        assert isinstance(tcp, TCPListener)
        assert isinstance(udp, UDPConnection)

    def test_dial_dispatches_on_scheme(self, transports, test_port):
        listener = transports.track(
            TransportFactory.listen(f"tcp://127.0.0.1:{test_port}")
        )
        conn = transports.track(TransportFactory.dial(listener.local_addr))
        assert conn.remote_addr == listener.local_addr

    def test_dial_unsupported_scheme(self):
        with pytest.raises(UnsupportedProtocolError):
            TransportFactory.dial("ftp://127.0.0.1:21")


class TestTransportRegistry:
    def test_global_registry_has_both_protocols(self):
        registry = get_transport_registry()
        assert registry.get_entry(TransportProtocol.TCP).connection_oriented
        assert not registry.get_entry(TransportProtocol.UDP).connection_oriented

    def test_empty_registry_rejects_lookups(self):
        registry = TransportRegistry()
        assert registry.list_protocols() == []
        with pytest.raises(TransportError, match="No transport registered"):
            registry.get_entry(TransportProtocol.TCP)
