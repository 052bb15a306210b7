"""Resource registry.

One registry collects every resource of a build session, keyed by
``(qualified name, kind)``. It is not synchronized; callers confine it to a
single build thread.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from resources.errors import DuplicateResourceError
from resources.models import ResourceKey, owning_name, resource_key

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from resources.models import ResourceRecord

logger = logging.getLogger("respack.registry")


class AddPolicy(str, Enum):
    """What to do when a key is already present."""

    OVERWRITE = "overwrite"
    ERROR = "error"


def _expand(record: ResourceRecord) -> list[ResourceRecord]:
    """Return the record followed by any shared libraries it carries."""
    if record.kind == "extension_module":
        return [record, *record.shared_libraries]
    return [record]


def name_matches(name: str, allowed_names: frozenset[str] | set[str]) -> bool:
    """Return True if ``name`` or one of its parent packages is allowed."""
    parts = name.split(".")
    return any(
        ".".join(parts[:end]) in allowed_names for end in range(1, len(parts) + 1)
    )


class ResourceRegistry:
    """Insertion-ordered collection of resource records."""

    def __init__(self) -> None:
        self._entries: dict[ResourceKey, ResourceRecord] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[ResourceRecord]:
        return iter(list(self._entries.values()))

    def iter(self) -> Iterator[ResourceRecord]:
        """Iterate records in insertion order; each call starts a new pass."""
        return iter(self)

    def keys(self) -> list[ResourceKey]:
        return list(self._entries)

    def get(self, name: str, kind: str) -> ResourceRecord | None:
        """Look up a record by qualified name and kind key."""
        return self._entries.get(ResourceKey(name, kind))

    def remove(self, key: ResourceKey) -> ResourceRecord:
        return self._entries.pop(key)

    def add(
        self, record: ResourceRecord, policy: AddPolicy = AddPolicy.OVERWRITE
    ) -> None:
        """Insert a record.

        Extension modules bring their shared libraries along; the whole group
        is inserted or, under :attr:`AddPolicy.ERROR`, rejected as one.

        Raises:
            DuplicateResourceError: Under the error policy when a key exists.
        """
        self.add_many([record], policy)

    def add_many(
        self,
        records: Iterable[ResourceRecord],
        policy: AddPolicy = AddPolicy.OVERWRITE,
    ) -> None:
        """Insert records in order, so later records win under overwrite.

        Under :attr:`AddPolicy.ERROR` the whole batch is checked first and
        nothing is inserted if any key collides.
        """
        expanded = [item for record in records for item in _expand(record)]

        if AddPolicy(policy) is AddPolicy.ERROR:
            self._check_duplicates(expanded)

        for record in expanded:
            key = resource_key(record)
            if key in self._entries:
                logger.debug("replacing %s (%s)", key.name, key.kind)
            else:
                logger.debug("adding %s (%s)", key.name, key.kind)
            self._entries[key] = record

    def _check_duplicates(self, records: list[ResourceRecord]) -> None:
        pending: dict[ResourceKey, ResourceRecord] = {}
        for record in records:
            key = resource_key(record)
            existing = pending.get(key, self._entries.get(key))
            if existing is not None and not _is_identical_library(existing, record):
                raise DuplicateResourceError(key.name, key.kind)
            pending[key] = record

    def filter(self, allowed_names: Iterable[str]) -> list[ResourceKey]:
        """Remove entries whose name is not covered by ``allowed_names``.

        A name is covered when it, or one of its parent packages, is listed.
        Data and distribution files match through their owning package.
        Shared libraries stay when their package matches or a retained
        extension module depends on them.

        Returns:
            Keys of the removed entries, in registry order.
        """
        allowed = frozenset(allowed_names)

        kept_libraries: set[str] = set()
        for record in self._entries.values():
            if record.kind == "extension_module" and name_matches(record.name, allowed):
                kept_libraries.update(record.shared_library_dependency_names)
                kept_libraries.update(lib.name for lib in record.shared_libraries)

        removed: list[ResourceKey] = []
        for key, record in list(self._entries.items()):
            if record.kind == "shared_library" and record.name in kept_libraries:
                continue
            owner = owning_name(record)
            if owner is not None and name_matches(owner, allowed):
                continue
            del self._entries[key]
            removed.append(key)
            logger.info("removing %s (%s): not in filter", key.name, key.kind)

        return removed


def _is_identical_library(existing: ResourceRecord, new: ResourceRecord) -> bool:
    # The same shared library vendored by two extension modules is not a conflict.
    return (
        existing.kind == "shared_library"
        and new.kind == "shared_library"
        and existing.data_bytes == new.data_bytes
    )


__all__ = ["AddPolicy", "ResourceRegistry", "name_matches"]
