"""
netdial command line interface.

A netcat-style front end over the transport layer for resolving descriptors,
listening for payloads and sending messages.
"""

from .main import cli, main

__all__ = ["main", "cli"]
