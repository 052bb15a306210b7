"""Utility functions for artifact generation."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

import orjson

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from artifacts.index import IndexEntry


def manifest_record(entry: IndexEntry) -> dict[str, object]:
    """Describe one index entry for the JSONL manifest."""
    return {
        "kind": entry.kind,
        "name": entry.name,
        "aux": entry.aux,
        "is_package": entry.is_package,
        "optimization_level": entry.optimization_level,
        "size": len(entry.payload),
        "sha256": hashlib.sha256(entry.payload).hexdigest(),
        "dependencies": list(entry.dependencies),
    }


def _write_jsonl(path: Path, records: Sequence[object]) -> None:
    with path.open("wb") as f:
        for rec in records:
            f.write(orjson.dumps(rec, option=orjson.OPT_SORT_KEYS))
            f.write(b"\n")

