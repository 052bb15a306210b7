"""Embedded resource index wire format.

This module is the stable boundary between the packaging side, which
writes the index, and the runtime loader that reads it at process start.

Layout (all integers little-endian):

- header: magic, format version, reserved, entry count, pool length
- entry table: one fixed-size row per resource
- blob pool: de-duplicated byte strings referenced by ``(offset, length)``

An absent reference is encoded as ``(0, 0)``.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

INDEX_MAGIC = b"respack\x00"
INDEX_FORMAT_VERSION = 1

HEADER = struct.Struct("<8sHHII")
ENTRY = struct.Struct("<BBBB8I")

# Every length and offset is stored in an unsigned 32-bit field.
MAX_FIELD_LENGTH = 0xFFFFFFFF

FLAG_IS_PACKAGE = 0x01
FLAG_HAS_OPTIMIZATION_LEVEL = 0x02

NO_OPTIMIZATION_LEVEL = 0xFF

DEPENDENCY_SEPARATOR = b"\x00"

# Default artifact filenames written by a build.
INDEX_FILENAME = "packed-resources"
MANIFEST_JSONL = "resources.jsonl"


@dataclass(frozen=True)
class KindSpec:
    """Wire representation of one resource kind.

    ``aux_field`` names the record attribute stored in the entry's aux slot.
    """

    kind: str
    tag: int
    payload_field: str
    aux_field: str | None = None


KIND_SPECS: dict[str, KindSpec] = {
    "module_source": KindSpec(
        kind="module_source",
        tag=1,
        payload_field="source_bytes",
    ),
    "module_bytecode": KindSpec(
        kind="module_bytecode",
        tag=2,
        payload_field="bytecode_bytes",
    ),
    "package_resource": KindSpec(
        kind="package_resource",
        tag=3,
        payload_field="data_bytes",
        aux_field="resource_name",
    ),
    "package_distribution_resource": KindSpec(
        kind="package_distribution_resource",
        tag=4,
        payload_field="data_bytes",
        aux_field="name",
    ),
    "extension_module": KindSpec(
        kind="extension_module",
        tag=5,
        payload_field="library_bytes",
        aux_field="extension_file_suffix",
    ),
    "shared_library": KindSpec(
        kind="shared_library",
        tag=6,
        payload_field="data_bytes",
        aux_field="package",
    ),
}

KINDS_BY_TAG: dict[int, str] = {spec.tag: kind for kind, spec in KIND_SPECS.items()}


__all__ = [
    "DEPENDENCY_SEPARATOR",
    "ENTRY",
    "FLAG_HAS_OPTIMIZATION_LEVEL",
    "FLAG_IS_PACKAGE",
    "HEADER",
    "INDEX_FILENAME",
    "INDEX_FORMAT_VERSION",
    "INDEX_MAGIC",
    "KINDS_BY_TAG",
    "KIND_SPECS",
    "KindSpec",
    "MANIFEST_JSONL",
    "MAX_FIELD_LENGTH",
    "NO_OPTIMIZATION_LEVEL",
]
