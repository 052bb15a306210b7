"""Reproducibility verification for built index artifacts."""

from __future__ import annotations

import filecmp
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from artifacts.index import read_embedded_index
from artifacts.write import build_embedded_resources
from resources.errors import IndexFormatError
from rules.config import load_config

if TYPE_CHECKING:
    from artifacts.index import IndexEntry


@dataclass(frozen=True)
class DeterminismResult:
    ok: bool
    mismatches: tuple[str, ...] = field(default_factory=tuple)
    missing: tuple[str, ...] = field(default_factory=tuple)
    extra: tuple[str, ...] = field(default_factory=tuple)
    changed_entries: tuple[str, ...] = field(default_factory=tuple)


def _list_relative_files(root: Path) -> set[Path]:
    return {path.relative_to(root) for path in root.rglob("*") if path.is_file()}


def _entry_label(entry: IndexEntry) -> str:
    label = f"{entry.kind}:{entry.name}"
    if entry.aux:
        label += f":{entry.aux}"
    if entry.optimization_level is not None:
        label += f"@{entry.optimization_level}"
    return label


def _diff_index_entries(original: Path, regenerated: Path) -> list[str]:
    """Label the index entries that differ between two index files."""
    try:
        before_entries = read_embedded_index(original.read_bytes()).entries
        after_entries = read_embedded_index(regenerated.read_bytes()).entries
    except IndexFormatError:
        return []

    before = {_entry_label(entry): entry for entry in before_entries}
    after = {_entry_label(entry): entry for entry in after_entries}

    changed = set(before.keys() ^ after.keys())
    changed.update(
        label for label in before.keys() & after.keys() if before[label] != after[label]
    )
    return sorted(changed)


def verify_determinism(*, root: Path, artifacts_dir: Path) -> DeterminismResult:
    """Verify that a previous build is reproducible.

    Rebuilds into a temporary directory and compares every file byte-for-byte
    against ``artifacts_dir``. When the index itself differs, the differing
    entries are labelled ``kind:name[:aux][@level]``.

    Raises:
        FileNotFoundError: If artifacts_dir does not exist.
        NotADirectoryError: If artifacts_dir is not a directory.
    """
    if not artifacts_dir.exists():
        msg = f"Artifacts directory does not exist: {artifacts_dir}"
        raise FileNotFoundError(msg)
    if not artifacts_dir.is_dir():
        msg = f"Artifacts path is not a directory: {artifacts_dir}"
        raise NotADirectoryError(msg)

    config = load_config(root)
    index_name = Path(config.index_filename)

    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)
        build_embedded_resources(root=root, out_dir=temp_path, config=config)

        original_files = _list_relative_files(artifacts_dir)
        regenerated_files = _list_relative_files(temp_path)

        missing = sorted(str(path) for path in original_files - regenerated_files)
        extra = sorted(str(path) for path in regenerated_files - original_files)

        mismatches: list[str] = []
        changed_entries: list[str] = []
        for path in sorted(original_files & regenerated_files):
            if filecmp.cmp(artifacts_dir / path, temp_path / path, shallow=False):
                continue
            mismatches.append(str(path))
            if path == index_name:
                changed_entries = _diff_index_entries(
                    artifacts_dir / path, temp_path / path
                )

    ok = not missing and not extra and not mismatches
    return DeterminismResult(
        ok=ok,
        mismatches=tuple(mismatches),
        missing=tuple(missing),
        extra=tuple(extra),
        changed_entries=tuple(changed_entries),
    )
