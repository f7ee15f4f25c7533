"""
Tests for endpoint parsing, resolution and address rendering.
"""

import socket

import pytest

from netdial.core.transport import (
    AddressParseError,
    AddressRenderError,
    AddressResolutionError,
    IPv4Endpoint,
    IPv6Endpoint,
    ProtocolMismatchError,
    TransportProtocol,
    UnsupportedAddressFamilyError,
    UnsupportedProtocolError,
    parse_endpoint,
    render_address,
    render_socket_address,
    resolve,
    resolve_all,
)
from netdial.core.transport.addressing import Endpoint, resolve_for, socket_endpoint


class TestParseEndpoint:
    """Descriptor parsing."""

    def test_full_descriptor(self):
        endpoint = parse_endpoint("tcp://127.0.0.1:9999")
        assert endpoint == Endpoint(TransportProtocol.TCP, "127.0.0.1", 9999)

    def test_udp_descriptor(self):
        endpoint = parse_endpoint("udp://localhost:53")
        assert endpoint.protocol is TransportProtocol.UDP
        assert endpoint.host == "localhost"
        assert endpoint.port == 53

    def test_empty_port_defaults_to_80(self):
        assert parse_endpoint("tcp://example.com:").port == 80

    def test_missing_port_defaults_to_80(self):
        endpoint = parse_endpoint("tcp://example.com")
        assert endpoint.host == "example.com"
        assert endpoint.port == 80

    def test_empty_host_is_wildcard(self):
        endpoint = parse_endpoint("udp://:5353")
        assert endpoint.host is None
        assert endpoint.is_wildcard
        assert endpoint.port == 5353

    def test_scheme_is_case_insensitive(self):
        assert parse_endpoint("TCP://127.0.0.1:1").protocol is TransportProtocol.TCP

    def test_bracketed_ipv6_host(self):
        endpoint = parse_endpoint("udp://[::1]:9000")
        assert endpoint.host == "::1"
        assert endpoint.port == 9000
        assert str(endpoint) == "udp://[::1]:9000"

    def test_rendered_ipv6_sender_needs_brackets(self):
        sender = "udp://" + render_address(IPv6Endpoint("::1", 9000))
        with pytest.raises(AddressParseError):
            parse_endpoint(sender)
        host, _, port = sender.removeprefix("udp://").rpartition(":")
        endpoint = parse_endpoint(f"udp://[{host}]:{port}")
        assert (endpoint.host, endpoint.port) == ("::1", 9000)

    def test_unsupported_protocol(self):
        with pytest.raises(UnsupportedProtocolError, match='Unsupported protocol "ftp"'):
            parse_endpoint("ftp://host:80")

    def test_missing_scheme(self):
        with pytest.raises(UnsupportedProtocolError, match="missing protocol"):
            parse_endpoint("127.0.0.1:80")

    @pytest.mark.parametrize(
        "descriptor",
        [
            "tcp://host:http",
            "tcp://host:-1",
            "tcp://host:65536",
            "tcp://host:80:81",
            "tcp://::1:80",
            "udp://[::1",
            "udp://[::1]x",
        ],
    )
    def test_malformed_descriptors_fail(self, descriptor):
        with pytest.raises(AddressParseError):
            parse_endpoint(descriptor)

    def test_parse_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            parse_endpoint("tcp://host:port")


class TestResolve:
    """System name resolution."""

    def test_resolve_tcp_loopback(self):
        resolved = resolve("tcp://127.0.0.1:9999")
        assert resolved.family == socket.AF_INET
        assert resolved.socktype == socket.SOCK_STREAM
        assert resolved.protocol is TransportProtocol.TCP
        assert resolved.sockaddr[:2] == ("127.0.0.1", 9999)

    def test_resolve_udp_uses_datagram_sockets(self):
        resolved = resolve("udp://127.0.0.1:53")
        assert resolved.socktype == socket.SOCK_DGRAM
        assert resolved.protocol is TransportProtocol.UDP

    def test_resolve_all_returns_first_candidate_first(self):
        candidates = resolve_all("tcp://127.0.0.1:8080")
        assert candidates
        assert resolve("tcp://127.0.0.1:8080") == candidates[0]

    def test_wildcard_resolves_to_any_address(self):
        resolved = resolve("tcp://:8080")
        assert resolved.sockaddr[0] in ("0.0.0.0", "::")
        assert resolved.sockaddr[1] == 8080

    def test_unknown_host_fails_with_resolution_error(self):
        with pytest.raises(AddressResolutionError) as excinfo:
            resolve("tcp://no-such-host.invalid:80")
        assert "no-such-host.invalid" in str(excinfo.value)

    def test_unsupported_protocol_fails_before_resolution(self, monkeypatch):
        def _fail(*args, **kwargs):
            raise AssertionError("getaddrinfo must not be called")

        monkeypatch.setattr(socket, "getaddrinfo", _fail)
        with pytest.raises(UnsupportedProtocolError):
            resolve("ftp://host:80")

    def test_resolve_for_rejects_protocol_mismatch(self):
        assert resolve_for("tcp://127.0.0.1:9999", TransportProtocol.TCP, "listen_tcp")
        with pytest.raises(ProtocolMismatchError, match="non-TCP"):
            resolve_for("udp://127.0.0.1:9999", TransportProtocol.TCP, "listen_tcp")


class TestRender:
    """Address rendering."""

    def test_render_ipv4_endpoint(self):
        assert render_address(IPv4Endpoint("10.0.0.1", 443)) == "10.0.0.1:443"

    def test_render_ipv6_endpoint(self):
        assert render_address(IPv6Endpoint("::1", 8080)) == "::1:8080"

    def test_render_resolved_address(self):
        assert render_address(resolve("udp://127.0.0.1:5000")) == "127.0.0.1:5000"

    def test_socket_endpoint_normalizes_ipv6(self):
        endpoint = socket_endpoint(
            socket.AF_INET6, ("0:0:0:0:0:0:0:1", 9000, 0, 0)
        )
        assert endpoint == IPv6Endpoint("::1", 9000)

    def test_socket_endpoint_rejects_other_families(self):
        with pytest.raises(UnsupportedAddressFamilyError):
            socket_endpoint(socket.AF_UNIX, ("/tmp/sock",))

    def test_socket_endpoint_rejects_non_numeric_host(self):
        with pytest.raises(AddressRenderError):
            socket_endpoint(socket.AF_INET, ("localhost", 80))

    def test_render_bound_socket(self):
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.bind(("127.0.0.1", 0))
            port = sock.getsockname()[1]
            assert render_socket_address(sock) == f"127.0.0.1:{port}"

    @pytest.mark.skipif(not hasattr(socket, "AF_UNIX"), reason="requires AF_UNIX")
    def test_render_unix_socket_is_unsupported(self):
        left, right = socket.socketpair(socket.AF_UNIX)
        with left, right:
            with pytest.raises(UnsupportedAddressFamilyError):
                render_socket_address(left)

    def test_render_closed_socket_fails(self):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.close()
        with pytest.raises(AddressRenderError):
            render_socket_address(sock)
