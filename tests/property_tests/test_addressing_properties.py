"""
Property-based tests for descriptor parsing, address rendering and the
peer address cache.

Key Test Areas:
- Parsing recovers the protocol, host and port of any well-formed descriptor
- Rendering agrees with the standard library's address formatting
- Timeout conversion never turns a positive deadline into a non-blocking poll
- The peer cache never exceeds its capacity and keeps the newest entries
"""

import ipaddress
import socket

from hypothesis import given, settings
from hypothesis import strategies as st

from netdial.core.transport import (
    AddressParseError,
    IPv4Endpoint,
    IPv6Endpoint,
    PeerAddressCache,
    ResolvedAddress,
    TransportProtocol,
    parse_endpoint,
    render_address,
)
from netdial.core.transport.polling import (
    BLOCK_INDEFINITELY,
    MAX_POLL_TIMEOUT,
    poll_timeout_ms,
)

# Test Strategies

protocols = st.sampled_from(list(TransportProtocol))
ports = st.integers(min_value=0, max_value=65535)
ipv4_hosts = st.ip_addresses(v=4).map(str)
ipv6_hosts = st.ip_addresses(v=6).map(str)


def _resolved(port: int) -> ResolvedAddress:
    return ResolvedAddress(
        family=socket.AF_INET,
        socktype=socket.SOCK_DGRAM,
        proto=socket.IPPROTO_UDP,
        sockaddr=("127.0.0.1", port),
    )


class TestDescriptorProperties:
    @given(protocol=protocols, host=ipv4_hosts, port=ports)
    def test_ipv4_descriptors_parse(self, protocol, host, port):
        endpoint = parse_endpoint(f"{protocol.value}://{host}:{port}")
        assert endpoint.protocol is protocol
        assert endpoint.host == host
        assert endpoint.port == port

    @given(protocol=protocols, host=ipv6_hosts, port=ports)
    def test_bracketed_ipv6_descriptors_parse(self, protocol, host, port):
        endpoint = parse_endpoint(f"{protocol.value}://[{host}]:{port}")
        assert endpoint.host == host
        assert endpoint.port == port

    @given(protocol=protocols, port=st.integers(min_value=65536, max_value=10**9))
    def test_out_of_range_ports_are_rejected(self, protocol, port):
        try:
            parse_endpoint(f"{protocol.value}://127.0.0.1:{port}")
        except AddressParseError:
            return
        raise AssertionError(f"port {port} was accepted")


class TestRenderProperties:
    @given(host=ipv4_hosts, port=ports)
    def test_ipv4_render(self, host, port):
        assert render_address(IPv4Endpoint(host, port)) == f"{host}:{port}"

    @given(address=st.ip_addresses(v=6), port=ports)
    def test_ipv6_render_is_compressed(self, address, port):
        rendered = render_address(IPv6Endpoint(str(address), port))
        host, _, port_text = rendered.rpartition(":")
        assert ipaddress.IPv6Address(host) == address
        assert host == address.compressed
        assert int(port_text) == port


class TestTimeoutProperties:
    @given(timeout=st.floats(min_value=1e-9, max_value=1e6, allow_nan=False))
    def test_positive_timeouts_never_become_zero(self, timeout):
        assert poll_timeout_ms(timeout) >= 1

    @given(timeout=st.floats(max_value=-1e-9, allow_nan=False, allow_infinity=False))
    def test_negative_timeouts_block(self, timeout):
        assert poll_timeout_ms(timeout) == -1

    @given(timeout=st.floats(min_value=0, allow_nan=False, allow_infinity=False))
    def test_finite_timeouts_fit_poll(self, timeout):
        assert 0 <= poll_timeout_ms(timeout) <= MAX_POLL_TIMEOUT

    @given(timeout=st.sampled_from([float("inf"), float("-inf"), float("nan")]))
    def test_non_finite_timeouts_block(self, timeout):
        assert poll_timeout_ms(timeout) == BLOCK_INDEFINITELY


class TestPeerCacheProperties:
    @settings(max_examples=50)
    @given(
        capacity=st.integers(min_value=1, max_value=16),
        keys=st.lists(st.integers(min_value=1, max_value=40), max_size=200),
    )
    def test_capacity_is_never_exceeded(self, capacity, keys):
        cache = PeerAddressCache(
            capacity=capacity,
            resolver=lambda peer: _resolved(int(peer.rsplit(":", 1)[1])),
        )
        for key in keys:
            resolved = cache.resolve(f"udp://127.0.0.1:{key}")
            assert resolved.sockaddr[1] == key
            assert len(cache) <= capacity

        recent: list[int] = []
        for key in reversed(keys):
            if key not in recent:
                recent.append(key)
            if len(recent) == capacity:
                break
        for key in recent:
            assert f"udp://127.0.0.1:{key}" in cache
