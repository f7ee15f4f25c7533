"""
Semantic type aliases for netdial.

These aliases keep the transport signatures self-documenting by naming what a
plain str, int or float actually carries.
"""

# Time types
type DurationSeconds = float
type PollTimeoutMilliseconds = int

# Addressing types
type EndpointDescriptor = str  # e.g. "tcp://127.0.0.1:9000"
type AddressString = str  # e.g. "tcp://127.0.0.1:9000" as rendered
type CanonicalAddress = str  # e.g. "127.0.0.1:9000", no scheme
type HostAddress = str
type PortNumber = int

# Sizes
type ByteCount = int
type CacheCapacity = int
