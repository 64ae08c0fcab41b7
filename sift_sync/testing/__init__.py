"""Testing utilities for Sift_Sync."""

from .fakes import FrozenClock, InMemoryConfigStore, InMemorySourceReader, InMemoryWriter

__all__ = [
    "FrozenClock",
    "InMemoryConfigStore",
    "InMemorySourceReader",
    "InMemoryWriter",
]
