"""
Centralized transport defaults for netdial.

Every transport reads its fallback values from here so listeners, dialers and
the settings layer cannot drift apart.
"""

from __future__ import annotations

# Addressing
DEFAULT_PORT = 80
UNKNOWN_ADDR = "?"  # remote_addr of a UDP connection without a fixed peer

# Listener behaviour
DEFAULT_LISTEN_BACKLOG = 512

# Timeouts (None blocks indefinitely)
DEFAULT_ACCEPT_TIMEOUT: float | None = None
DEFAULT_CONNECT_TIMEOUT: float | None = None

# UDP peer cache
DEFAULT_PEER_CACHE_CAPACITY = 1024

# TCP options
DEFAULT_NO_DELAY = False
