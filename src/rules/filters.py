"""Resource allow-lists loaded from filter files."""

from __future__ import annotations

import glob
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from resources.errors import MissingFilterFileError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from registry.registry import ResourceRegistry
    from resources.models import ResourceKey

logger = logging.getLogger("respack.rules")


def parse_filter_lines(text: str) -> set[str]:
    """Extract resource names from filter file text.

    One name per line; blank lines and ``#`` comments are ignored.
    """
    names: set[str] = set()
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        names.add(line)
    return names


def read_filter_file(path: str | Path) -> set[str]:
    """Read one filter file.

    Raises:
        MissingFilterFileError: If the file does not exist.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise MissingFilterFileError(file_path)
    return parse_filter_lines(file_path.read_text(encoding="utf-8"))


def expand_glob_files(patterns: Iterable[str]) -> list[Path]:
    """Expand glob patterns (``*`` and recursive ``**``) into sorted file paths."""
    matched: set[Path] = set()
    for pattern in patterns:
        hits = [Path(hit) for hit in glob.glob(pattern, recursive=True)]
        if not hits:
            logger.debug("filter glob %s matched no files", pattern)
        matched.update(hit for hit in hits if hit.is_file())
    return sorted(matched)


def load_filter_set(
    files: Iterable[str | Path] | None = None,
    glob_files: Iterable[str] | None = None,
) -> frozenset[str]:
    """Union the names listed by explicit files and glob-matched files."""
    names: set[str] = set()
    for path in files or ():
        names |= read_filter_file(path)
    for path in expand_glob_files(glob_files or ()):
        logger.debug("reading filter file %s", path)
        names |= read_filter_file(path)
    return frozenset(names)


def filter_registry_from_files(
    registry: ResourceRegistry,
    files: Iterable[str | Path] | None = None,
    glob_files: Iterable[str] | None = None,
) -> list[ResourceKey]:
    """Prune ``registry`` to the names listed in the given filter files.

    Every file is read before the registry is touched, so a missing file
    leaves it unchanged.
    """
    allowed = load_filter_set(files, glob_files)
    logger.info("filtering resources against %d allowed names", len(allowed))
    return registry.filter(allowed)


__all__ = [
    "expand_glob_files",
    "filter_registry_from_files",
    "load_filter_set",
    "parse_filter_lines",
    "read_filter_file",
]
