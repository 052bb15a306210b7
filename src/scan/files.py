"""Directory scanning for package roots and virtualenvs."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from resources.errors import SourceTreeError
from scan.classify import ClassifierConfig, classify_entries

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from resources.models import ResourceRecord

logger = logging.getLogger("respack.scan")


def _is_within_root(path: Path, root: Path) -> bool:
    """Return True when the resolved path stays within the resolved root."""
    try:
        root_resolved = root.resolve()
        path_resolved = path.resolve()
    except OSError:
        return False

    try:
        path_resolved.relative_to(root_resolved)
    except ValueError:
        return False

    return True


def iter_tree_files(
    root: Path,
    *,
    include_top_level: Callable[[str, bool], bool] | None = None,
) -> Iterator[str]:
    """Walk ``root`` and yield file paths relative to it (POSIX style).

    Entries are produced in filesystem traversal order. Symlinks resolving
    outside ``root`` are skipped.

    Args:
        root: Directory to walk.
        include_top_level: Optional predicate ``(name, is_dir)`` deciding
            which top-level entries are walked at all.
    """
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        at_top = current == root

        if at_top and include_top_level is not None:
            dirnames[:] = [name for name in dirnames if include_top_level(name, True)]
            filenames = [name for name in filenames if include_top_level(name, False)]

        for filename in filenames:
            file_path = current / filename
            if not file_path.is_file():
                continue
            if file_path.is_symlink() and not _is_within_root(file_path, root):
                logger.debug("skipping %s (symlink escapes %s)", file_path, root)
                continue
            yield file_path.relative_to(root).as_posix()


def scan_directory(
    root: Path,
    *,
    config: ClassifierConfig | None = None,
    include_top_level: Callable[[str, bool], bool] | None = None,
) -> list[ResourceRecord]:
    """Classify every file below ``root``."""
    if config is None:
        config = ClassifierConfig()
    if not root.is_dir():
        raise SourceTreeError(root, "not a directory")

    records = list(
        classify_entries(
            iter_tree_files(root, include_top_level=include_top_level),
            lambda relative: (root / relative).read_bytes(),
            config=config,
        )
    )
    logger.info("scanned %s: %d resources", root, len(records))
    return records


def read_package_root(
    root: Path,
    packages: Iterable[str],
    *,
    config: ClassifierConfig | None = None,
) -> list[ResourceRecord]:
    """Collect resources for the named top-level packages under ``root``.

    Only directories named exactly after a package, ``<package>.py`` files
    and ``<package><extension suffix>`` files are considered; sibling
    directories are never picked up.
    """
    if config is None:
        config = ClassifierConfig()
    wanted = frozenset(packages)
    suffixes = (".py", *config.extension_suffixes)

    def include(name: str, is_dir: bool) -> bool:
        if is_dir:
            return name in wanted
        return any(
            name.endswith(suffix) and name[: -len(suffix)] in wanted
            for suffix in suffixes
        )

    return scan_directory(root, config=config, include_top_level=include)


def find_site_packages(venv: Path, *, python_version: str | None = None) -> Path:
    """Locate the ``site-packages`` directory of a virtualenv.

    Windows environments use ``Lib/site-packages``; POSIX ones use
    ``lib/pythonX.Y/site-packages``.

    Raises:
        SourceTreeError: If no site-packages directory exists, or several
            Python versions are present and none was chosen.
    """
    windows_layout = venv / "Lib" / "site-packages"
    if windows_layout.is_dir():
        return windows_layout

    if python_version is not None:
        candidate = venv / "lib" / f"python{python_version}" / "site-packages"
        if candidate.is_dir():
            return candidate
        msg = f"no site-packages for Python {python_version}"
        raise SourceTreeError(venv, msg)

    candidates = sorted(
        path for path in (venv / "lib").glob("python*/site-packages") if path.is_dir()
    )
    if not candidates:
        raise SourceTreeError(venv, "no site-packages directory found")
    if len(candidates) > 1:
        found = ", ".join(path.parent.name for path in candidates)
        msg = f"multiple Python versions ({found}); pass python_version"
        raise SourceTreeError(venv, msg)
    return candidates[0]


def read_virtualenv(
    venv: Path,
    *,
    config: ClassifierConfig | None = None,
    python_version: str | None = None,
) -> list[ResourceRecord]:
    """Collect every resource installed in a virtualenv's site-packages."""
    site_packages = find_site_packages(venv, python_version=python_version)
    logger.info("reading virtualenv site-packages %s", site_packages)
    return scan_directory(site_packages, config=config)


__all__ = [
    "find_site_packages",
    "iter_tree_files",
    "read_package_root",
    "read_virtualenv",
    "scan_directory",
]
