"""Auction storage, thread-safe logging and exact-length socket I/O."""

__version__ = "0.1.0"

__all__ = ["database", "logger", "netio"]