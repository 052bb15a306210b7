"""Stable packaging↔runtime contract surface for respack-core.

This module exposes the wire-format identifiers shared with the runtime
loader. Treat these exports as the authoritative format boundary.
"""

from contract.index import (
    INDEX_FILENAME,
    INDEX_FORMAT_VERSION,
    INDEX_MAGIC,
    KIND_SPECS,
    MANIFEST_JSONL,
    MAX_FIELD_LENGTH,
    KindSpec,
)

__all__ = [
    "INDEX_FILENAME",
    "INDEX_FORMAT_VERSION",
    "INDEX_MAGIC",
    "KIND_SPECS",
    "MANIFEST_JSONL",
    "MAX_FIELD_LENGTH",
    "KindSpec",
]
