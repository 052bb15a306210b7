from __future__ import annotations

import glob
import logging
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING

from artifacts.index import read_embedded_index
from artifacts.utils import _write_jsonl, manifest_record
from contract.index import MANIFEST_JSONL
from executable.session import PythonExecutable
from rules.config import load_config, resolve_output_dir

if TYPE_CHECKING:
    from rules.config import RespackConfig

logger = logging.getLogger("respack.artifacts")


def _expand_wheels(root: Path, patterns: list[str]) -> list[Path]:
    matched: set[Path] = set()
    for pattern in patterns:
        hits = glob.glob(str(root / pattern), recursive=True)
        if not hits:
            logger.warning("wheel pattern %s matched no files", pattern)
        matched.update(Path(hit) for hit in hits)
    return sorted(matched)


def collect_resources(*, root: Path, config: RespackConfig) -> PythonExecutable:
    """Run every configured source and filter through one build session.

    Sources are merged in a fixed order (wheels, package roots, then
    virtualenvs), so under the overwrite policy a later source wins.
    """
    exe = PythonExecutable(
        root.name or "app",
        policy=config.policy,
        classifier=config.classifier.to_classifier_config(),
    )

    for wheel in _expand_wheels(root, config.wheels):
        exe.add_python_resources(exe.read_wheel(wheel))

    for source in config.package_roots:
        exe.add_python_resources(
            exe.read_package_root(root / source.path, source.packages)
        )

    for venv in config.virtualenvs:
        exe.add_python_resources(exe.read_virtualenv(root / venv))

    if config.filters.enabled:
        exe.filter_resources_from_files(
            files=[root / path for path in config.filters.files],
            glob_files=[str(root / pattern) for pattern in config.filters.glob_files],
        )

    return exe


def build_embedded_resources(
    *,
    root: Path,
    out_dir: Path | None = None,
    config: RespackConfig | None = None,
) -> dict[str, object]:
    """Build the embedded resource index for a project.

    Args:
        root: Project root holding ``respack.toml``; relative paths in the
            configuration resolve against it.
        out_dir: Optional output directory overriding the configured one.
        config: Optional configuration instead of loading ``respack.toml``.

    Returns:
        Dictionary with per-kind counts and the written artifact paths.
    """
    if config is None:
        config = load_config(root)

    if out_dir is None:
        out_dir = resolve_output_dir(root, config.output_dir)

    exe = collect_resources(root=root, config=config)
    index_bytes = exe.to_embedded_resources()

    out_dir.mkdir(parents=True, exist_ok=True)
    index_path = out_dir / config.index_filename
    index_path.write_bytes(index_bytes)

    entries = read_embedded_index(index_bytes).entries
    manifest_path = out_dir / MANIFEST_JSONL
    _write_jsonl(manifest_path, [manifest_record(entry) for entry in entries])

    counts = Counter(entry.kind for entry in entries)
    logger.info(
        "wrote %s (%d entries, %d bytes)", index_path, len(entries), len(index_bytes)
    )

    return {
        "entry_count": len(entries),
        "index_size": len(index_bytes),
        "kind_counts": dict(sorted(counts.items())),
        "artifacts": [str(index_path), str(manifest_path)],
    }
