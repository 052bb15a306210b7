"""Embedded index serialization."""

from artifacts.index import (
    EmbeddedIndex,
    IndexEntry,
    read_embedded_index,
    serialize_registry,
)

__all__ = [
    "EmbeddedIndex",
    "IndexEntry",
    "read_embedded_index",
    "serialize_registry",
]
