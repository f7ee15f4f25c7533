"""Shared datastructures for netdial."""
