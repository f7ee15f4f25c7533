"""
Bounded peer address cache for connectionless sends.

UDP writes address every datagram explicitly. Resolving the same peer string
on every send would put a name-resolution call on the hot path, so resolved
records are kept in a least-recently-used cache keyed by the peer string.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from threading import Lock

from loguru import logger

from netdial.datastructures.type_aliases import AddressString, CacheCapacity

from .addressing import ResolvedAddress, resolve_for
from .defaults import DEFAULT_PEER_CACHE_CAPACITY
from .interfaces import TransportProtocol

type PeerResolver = Callable[[AddressString], ResolvedAddress]


def resolve_udp_peer(peer: AddressString) -> ResolvedAddress:
    """Default resolver: the peer must be a ``udp://`` descriptor."""
    return resolve_for(peer, TransportProtocol.UDP, "UDPConnection.write")


@dataclass(frozen=True, slots=True)
class PeerCacheStatistics:
    """Point-in-time counters for a peer cache."""

    size: int
    capacity: CacheCapacity
    hits: int
    misses: int
    evictions: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


@dataclass(slots=True)
class PeerAddressCache:
    """LRU mapping from peer address string to its resolved address.

    Lookups and inserts serialize on one lock which is never held across a
    resolution call. Two threads missing on the same key may both resolve it;
    the later insert simply overwrites the earlier one.
    """

    capacity: CacheCapacity = DEFAULT_PEER_CACHE_CAPACITY
    resolver: PeerResolver = resolve_udp_peer
    _entries: OrderedDict[AddressString, ResolvedAddress] = field(
        default_factory=OrderedDict
    )
    _lock: Lock = field(default_factory=Lock)
    _hits: int = 0
    _misses: int = 0
    _evictions: int = 0

    def __post_init__(self) -> None:
        if self.capacity <= 0:
            raise ValueError(f"Peer cache capacity must be positive: {self.capacity}")

    def lookup(self, peer: AddressString) -> ResolvedAddress | None:
        """Return the cached record for ``peer`` and mark it recently used."""
        with self._lock:
            resolved = self._entries.get(peer)
            if resolved is None:
                self._misses += 1
                return None
            self._entries.move_to_end(peer)
            self._hits += 1
            return resolved

    def insert(self, peer: AddressString, resolved: ResolvedAddress) -> None:
        """Store ``resolved`` under ``peer``, evicting the LRU entry when full."""
        with self._lock:
            if peer in self._entries:
                self._entries.move_to_end(peer)
            elif len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug(f"Evicted peer {evicted} from address cache")
            self._entries[peer] = resolved

    def resolve(self, peer: AddressString) -> ResolvedAddress:
        """Return the record for ``peer``, resolving and caching it on a miss."""
        cached = self.lookup(peer)
        if cached is not None:
            return cached
        resolved = self.resolver(peer)
        self.insert(peer, resolved)
        return resolved

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def statistics(self) -> PeerCacheStatistics:
        with self._lock:
            return PeerCacheStatistics(
                size=len(self._entries),
                capacity=self.capacity,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, peer: object) -> bool:
        with self._lock:
            return peer in self._entries
