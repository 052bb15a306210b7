"""Serialization of a registry into the embedded resource index.

Output depends only on registry content: entries are sorted by kind tag and
name, and identical byte strings share one slot in the blob pool.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from contract.index import (
    DEPENDENCY_SEPARATOR,
    ENTRY,
    FLAG_HAS_OPTIMIZATION_LEVEL,
    FLAG_IS_PACKAGE,
    HEADER,
    INDEX_FORMAT_VERSION,
    INDEX_MAGIC,
    KIND_SPECS,
    KINDS_BY_TAG,
    MAX_FIELD_LENGTH,
    NO_OPTIMIZATION_LEVEL,
)
from resources.errors import IndexFormatError, ResourceTooLargeError

if TYPE_CHECKING:
    from registry.registry import ResourceRegistry
    from resources.models import ResourceRecord

logger = logging.getLogger("respack.artifacts")


@dataclass(frozen=True)
class IndexEntry:
    """One decoded row of the entry table."""

    kind: str
    name: str
    aux: str | None
    is_package: bool
    optimization_level: int | None
    payload: bytes
    dependencies: tuple[str, ...] = ()


@dataclass(frozen=True)
class EmbeddedIndex:
    version: int
    entries: tuple[IndexEntry, ...]


@dataclass(frozen=True)
class _Row:
    tag: int
    name: str
    aux: str | None
    is_package: bool
    optimization_level: int | None
    payload: bytes
    dependencies: tuple[str, ...]

    def sort_key(self) -> tuple[int, str, str, int]:
        level = -1 if self.optimization_level is None else self.optimization_level
        return (self.tag, self.name, self.aux or "", level)


class _BlobPool:
    def __init__(self, max_field_length: int) -> None:
        self._data = bytearray()
        self._offsets: dict[bytes, int] = {}
        self._max = max_field_length

    def add(self, blob: bytes, owner: str) -> tuple[int, int]:
        if not blob:
            return 0, 0
        if len(blob) > self._max:
            raise ResourceTooLargeError(owner, len(blob))
        offset = self._offsets.get(blob)
        if offset is None:
            offset = len(self._data)
            if offset + len(blob) > self._max:
                raise ResourceTooLargeError(owner, offset + len(blob))
            self._data += blob
            self._offsets[blob] = offset
        return offset, len(blob)

    def to_bytes(self) -> bytes:
        return bytes(self._data)


def _row_for(record: ResourceRecord) -> _Row:
    spec = KIND_SPECS[record.kind]
    payload: bytes = getattr(record, spec.payload_field)
    aux: str | None = getattr(record, spec.aux_field) if spec.aux_field else None

    is_package = False
    level: int | None = None
    dependencies: tuple[str, ...] = ()
    if record.kind in {"package_resource", "package_distribution_resource"}:
        name = record.package
    else:
        name = record.name

    if record.kind == "module_source":
        is_package = record.is_package
    elif record.kind == "module_bytecode":
        is_package = record.is_package
        level = record.optimization_level
    elif record.kind == "extension_module":
        dependencies = tuple(
            sorted(
                {
                    *record.shared_library_dependency_names,
                    *(lib.name for lib in record.shared_libraries),
                }
            )
        )

    return _Row(
        tag=spec.tag,
        name=name,
        aux=aux,
        is_package=is_package,
        optimization_level=level,
        payload=payload,
        dependencies=dependencies,
    )


def serialize_registry(
    registry: ResourceRegistry,
    *,
    max_field_length: int = MAX_FIELD_LENGTH,
) -> bytes:
    """Flatten a registry into index bytes.

    Args:
        registry: Registry to serialize. It is not modified.
        max_field_length: Largest value a length/offset field may hold.

    Returns:
        A new buffer holding header, entry table and blob pool.

    Raises:
        ResourceTooLargeError: If a payload or the pool outgrows the fields.
    """
    rows = sorted((_row_for(record) for record in registry), key=_Row.sort_key)
    pool = _BlobPool(max_field_length)

    table = bytearray()
    for row in rows:
        flags = 0
        if row.is_package:
            flags |= FLAG_IS_PACKAGE
        if row.optimization_level is not None:
            flags |= FLAG_HAS_OPTIMIZATION_LEVEL
        level = (
            NO_OPTIMIZATION_LEVEL
            if row.optimization_level is None
            else row.optimization_level
        )

        name_ref = pool.add(row.name.encode("utf-8"), row.name)
        aux_ref = pool.add((row.aux or "").encode("utf-8"), row.name)
        payload_ref = pool.add(row.payload, row.name)
        deps_ref = pool.add(
            DEPENDENCY_SEPARATOR.join(dep.encode("utf-8") for dep in row.dependencies),
            row.name,
        )

        table += ENTRY.pack(
            row.tag,
            flags,
            level,
            0,
            *name_ref,
            *aux_ref,
            *payload_ref,
            *deps_ref,
        )

    blob = pool.to_bytes()
    header = HEADER.pack(INDEX_MAGIC, INDEX_FORMAT_VERSION, 0, len(rows), len(blob))
    logger.debug(
        "serialized %d entries (%d pool bytes, %d raw payload bytes)",
        len(rows),
        len(blob),
        sum(len(row.payload) for row in rows),
    )
    return header + bytes(table) + blob


def _slice(pool: bytes, offset: int, length: int, what: str) -> bytes:
    if length == 0:
        return b""
    if offset + length > len(pool):
        msg = f"{what} reference {offset}+{length} exceeds pool of {len(pool)} bytes"
        raise IndexFormatError(msg)
    return pool[offset : offset + length]


def _decode(raw: bytes, what: str) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        msg = f"{what} is not valid UTF-8"
        raise IndexFormatError(msg) from exc


def read_embedded_index(data: bytes) -> EmbeddedIndex:
    """Decode index bytes for inspection and validation.

    Raises:
        IndexFormatError: If the data is truncated or malformed.
    """
    if len(data) < HEADER.size:
        msg = f"index is {len(data)} bytes, shorter than its {HEADER.size}-byte header"
        raise IndexFormatError(msg)

    magic, version, _reserved, count, pool_length = HEADER.unpack_from(data, 0)
    if magic != INDEX_MAGIC:
        msg = f"bad magic {magic!r}"
        raise IndexFormatError(msg)
    if version != INDEX_FORMAT_VERSION:
        msg = f"unsupported format version {version}"
        raise IndexFormatError(msg)

    table_end = HEADER.size + count * ENTRY.size
    if len(data) != table_end + pool_length:
        msg = (
            f"expected {table_end + pool_length} bytes for {count} entries "
            f"and a {pool_length}-byte pool, got {len(data)}"
        )
        raise IndexFormatError(msg)
    pool = data[table_end:]

    entries: list[IndexEntry] = []
    for row_index in range(count):
        (
            tag,
            flags,
            level,
            _row_reserved,
            name_off,
            name_len,
            aux_off,
            aux_len,
            payload_off,
            payload_len,
            deps_off,
            deps_len,
        ) = ENTRY.unpack_from(data, HEADER.size + row_index * ENTRY.size)

        kind = KINDS_BY_TAG.get(tag)
        if kind is None:
            msg = f"entry {row_index} has unknown kind tag {tag}"
            raise IndexFormatError(msg)

        name = _decode(_slice(pool, name_off, name_len, "name"), "name")
        aux_raw = _slice(pool, aux_off, aux_len, "aux")
        deps_raw = _slice(pool, deps_off, deps_len, "dependencies")

        entries.append(
            IndexEntry(
                kind=kind,
                name=name,
                aux=_decode(aux_raw, "aux") if aux_raw else None,
                is_package=bool(flags & FLAG_IS_PACKAGE),
                optimization_level=(
                    level if flags & FLAG_HAS_OPTIMIZATION_LEVEL else None
                ),
                payload=_slice(pool, payload_off, payload_len, "payload"),
                dependencies=tuple(
                    _decode(dep, "dependency")
                    for dep in deps_raw.split(DEPENDENCY_SEPARATOR)
                )
                if deps_raw
                else (),
            )
        )

    return EmbeddedIndex(version=version, entries=tuple(entries))


__all__ = ["EmbeddedIndex", "IndexEntry", "read_embedded_index", "serialize_registry"]
