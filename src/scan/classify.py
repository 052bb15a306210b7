"""Classification of package tree entries into resource records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from importlib.machinery import EXTENSION_SUFFIXES
from typing import TYPE_CHECKING

from resources.models import (
    ExtensionModule,
    ModuleSource,
    PackageDistributionResource,
    PackageResource,
    SharedLibrary,
)
from utils import path_parts, path_to_module

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from resources.models import ResourceRecord

logger = logging.getLogger("respack.scan")

DISTRIBUTION_DIR_SUFFIXES = (".dist-info", ".egg-info")
GENERIC_EXTENSION_SUFFIXES = (".so", ".pyd")
BYTECODE_SUFFIXES = (".pyc", ".pyo")
VENDORED_LIBS_SUFFIX = ".libs"
VENDORED_DYLIBS_DIR = ".dylibs"


def default_extension_suffixes() -> tuple[str, ...]:
    """Extension suffixes of the running interpreter plus the generic ones."""
    return (*EXTENSION_SUFFIXES, *GENERIC_EXTENSION_SUFFIXES)


def _longest_first(suffixes: Iterable[str]) -> tuple[str, ...]:
    return tuple(sorted(set(suffixes), key=lambda s: (-len(s), s)))


@dataclass(frozen=True)
class ClassifierConfig:
    """Immutable classification tables.

    Extension suffixes are kept ordered longest first so ABI-tagged
    suffixes win over the generic ``.so``.
    """

    extension_suffixes: tuple[str, ...] = field(
        default_factory=default_extension_suffixes
    )
    ignored_dirs: frozenset[str] = frozenset({"__pycache__"})

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "extension_suffixes", _longest_first(self.extension_suffixes)
        )
        object.__setattr__(self, "ignored_dirs", frozenset(self.ignored_dirs))


def parse_distribution_dir_name(dirname: str) -> tuple[str, str | None] | None:
    """Split ``foo-1.0.dist-info`` into ``("foo", "1.0")``.

    Returns ``None`` when the name is not a distribution metadata directory.
    Egg platform tags (``foo-1.0-py3.8.egg-info``) are dropped from the version.
    """
    for suffix in DISTRIBUTION_DIR_SUFFIXES:
        if dirname.endswith(suffix) and len(dirname) > len(suffix):
            stem = dirname[: -len(suffix)]
            package, _, version = stem.partition("-")
            if not package:
                return None
            version = version.split("-", 1)[0]
            return package, version or None
    return None


def find_package_dirs(paths: Iterable[str]) -> frozenset[str]:
    """Return directories (POSIX relative paths) that contain ``__init__.py``."""
    package_dirs: set[str] = set()
    for path in paths:
        parts = path_parts(path)
        if len(parts) >= 2 and parts[-1] == "__init__.py":
            package_dirs.add("/".join(parts[:-1]))
    return frozenset(package_dirs)


def is_ignored(path: str, config: ClassifierConfig) -> bool:
    """Return True for entries under an ignored directory such as ``__pycache__``."""
    parts = path_parts(path)
    return any(part in config.ignored_dirs for part in parts[:-1])


def classify_path(
    path: str,
    data: bytes,
    *,
    config: ClassifierConfig,
    package_dirs: frozenset[str],
) -> ResourceRecord | None:
    """Classify one entry of a package tree.

    Args:
        path: POSIX path relative to the tree root (e.g. ``foo/bar.py``).
        data: Raw file content.
        config: Classification tables.
        package_dirs: Directories of the tree containing ``__init__.py``.

    Returns:
        A resource record, or ``None`` when the entry is not a resource.
    """
    parts = path_parts(path)
    if not parts or is_ignored(path, config):
        return None

    distribution = _classify_distribution_file(parts, data)
    if distribution is not None:
        return distribution

    library = _classify_shared_library(parts, data)
    if library is not None:
        return library

    filename = parts[-1]
    if filename.endswith(BYTECODE_SUFFIXES):
        return None

    for suffix in config.extension_suffixes:
        if filename.endswith(suffix) and len(filename) > len(suffix):
            return _classify_extension(parts, suffix, data)

    if filename.endswith(".py"):
        return _classify_source(parts, data)

    return _classify_package_resource(parts, data, package_dirs)


def _classify_distribution_file(
    parts: list[str], data: bytes
) -> PackageDistributionResource | None:
    for index, part in enumerate(parts):
        parsed = parse_distribution_dir_name(part)
        if parsed is None:
            continue
        package, version = parsed
        rest = parts[index + 1 :]
        if not rest:
            # Single-file egg-info written by ``setup.py install``.
            if part.endswith(".egg-info"):
                rest = ["PKG-INFO"]
            else:
                return None
        return PackageDistributionResource(
            package=package,
            name="/".join(rest),
            data_bytes=data,
            version=version,
        )
    return None


def _classify_shared_library(parts: list[str], data: bytes) -> SharedLibrary | None:
    if len(parts) < 2:
        return None

    # auditwheel: <pkg>.libs/libfoo-1a2b3c.so.1
    top = parts[0]
    if top.endswith(VENDORED_LIBS_SUFFIX) and len(parts) == 2:
        owner = top[: -len(VENDORED_LIBS_SUFFIX)]
        return SharedLibrary(
            name=parts[1],
            data_bytes=data,
            package=owner if owner.isidentifier() else None,
        )

    # delocate: <pkg>/.dylibs/libfoo.dylib
    if VENDORED_DYLIBS_DIR in parts[:-1]:
        index = parts.index(VENDORED_DYLIBS_DIR)
        owner = ".".join(parts[:index])
        return SharedLibrary(
            name=parts[-1],
            data_bytes=data,
            package=owner or None,
        )

    return None


def _classify_extension(
    parts: list[str], suffix: str, data: bytes
) -> ExtensionModule | None:
    stem = parts[-1][: -len(suffix)]
    name_parts = [*parts[:-1], stem]
    if not all(part.isidentifier() for part in name_parts):
        return None
    return ExtensionModule(
        name=".".join(name_parts),
        library_bytes=data,
        extension_file_suffix=suffix,
    )


def _classify_source(parts: list[str], data: bytes) -> ModuleSource | None:
    is_package = parts[-1] == "__init__.py"
    if is_package and len(parts) == 1:
        return None

    name = path_to_module("/".join(parts))
    if not name or not all(part.isidentifier() for part in name.split(".")):
        return None

    return ModuleSource(name=name, source_bytes=data, is_package=is_package)


def _classify_package_resource(
    parts: list[str], data: bytes, package_dirs: frozenset[str]
) -> PackageResource | None:
    # Nearest enclosing directory with an __init__.py owns the file.
    for depth in range(len(parts) - 1, 0, -1):
        package_dir = "/".join(parts[:depth])
        if package_dir not in package_dirs:
            continue
        package_parts = parts[:depth]
        if not all(part.isidentifier() for part in package_parts):
            return None
        return PackageResource(
            package=".".join(package_parts),
            resource_name="/".join(parts[depth:]),
            data_bytes=data,
        )
    return None


def classify_entries(
    paths: Iterable[str],
    read: Callable[[str], bytes],
    *,
    config: ClassifierConfig,
) -> Iterator[ResourceRecord]:
    """Classify every entry of a tree, in the given order.

    Package directories are computed from the complete path list first, so
    ``paths`` is materialized. ``read`` is only called for entries that are
    not under an ignored directory.
    """
    all_paths = list(paths)
    package_dirs = find_package_dirs(all_paths)

    for path in all_paths:
        if is_ignored(path, config):
            logger.debug("skipping %s (ignored directory)", path)
            continue
        try:
            data = read(path)
        except OSError as exc:
            logger.debug("skipping %s (unreadable: %s)", path, exc)
            continue
        record = classify_path(path, data, config=config, package_dirs=package_dirs)
        if record is None:
            logger.debug("skipping %s (not a resource)", path)
            continue
        yield record


__all__ = [
    "ClassifierConfig",
    "classify_entries",
    "classify_path",
    "default_extension_suffixes",
    "find_package_dirs",
    "is_ignored",
    "parse_distribution_dir_name",
]
