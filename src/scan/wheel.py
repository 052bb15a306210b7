"""Wheel archive scanning.

A wheel is validated completely before any entry is classified, so a
malformed archive never yields a partial record list.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import zipfile
from dataclasses import dataclass
from typing import TYPE_CHECKING

from metadata.decoder import (
    PackageMetadata,
    decode_metadata,
    normalize_distribution_name,
    parse_record,
)
from resources.errors import ValidationError
from scan.classify import (
    ClassifierConfig,
    classify_entries,
    parse_distribution_dir_name,
)

if TYPE_CHECKING:
    from pathlib import Path

    from metadata.decoder import RecordEntry
    from resources.models import ResourceRecord

logger = logging.getLogger("respack.scan")

DIST_INFO_SUFFIX = ".dist-info"
RELOCATED_DATA_DIRS = ("purelib", "platlib")


@dataclass(frozen=True)
class WheelLayout:
    """Validated structure of a wheel archive."""

    dist_info_dir: str
    metadata: PackageMetadata | None
    record: tuple[RecordEntry, ...]


def scan_wheel(
    path: str | Path,
    *,
    config: ClassifierConfig | None = None,
    verify_hashes: bool = False,
) -> list[ResourceRecord]:
    """Validate a wheel and classify its members.

    Args:
        path: Path to the ``.whl`` file.
        config: Classification tables (defaults to the running interpreter's).
        verify_hashes: Also check ``RECORD`` digests and sizes.

    Returns:
        Records in archive member order.

    Raises:
        ValidationError: If the archive is not a valid wheel.
    """
    if config is None:
        config = ClassifierConfig()

    try:
        with zipfile.ZipFile(path) as archive:
            names = [info.filename for info in archive.infolist() if not info.is_dir()]
            layout = validate_wheel(path, archive, names, verify_hashes=verify_hashes)
            members = _relocate_data_members(names, layout.dist_info_dir)
            records = list(
                classify_entries(
                    members,
                    lambda member: archive.read(members[member]),
                    config=config,
                )
            )
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
        raise ValidationError(path, [f"unreadable archive: {exc}"]) from exc

    if layout.metadata is not None:
        logger.info(
            "scanned wheel %s (%s %s): %d resources",
            path,
            layout.metadata.name,
            layout.metadata.version,
            len(records),
        )
    else:
        logger.info("scanned wheel %s: %d resources", path, len(records))
    return records


def validate_wheel(
    path: str | Path,
    archive: zipfile.ZipFile,
    names: list[str],
    *,
    verify_hashes: bool = False,
) -> WheelLayout:
    """Check the ``.dist-info`` directory and ``RECORD`` of an open wheel.

    Raises:
        ValidationError: Listing every problem found at the failing step.
    """
    present = set(names)

    dist_info_dirs = sorted(
        {
            name.split("/", 1)[0]
            for name in names
            if "/" in name and name.split("/", 1)[0].endswith(DIST_INFO_SUFFIX)
        }
    )
    if len(dist_info_dirs) != 1:
        msg = (
            "expected exactly one .dist-info directory, "
            f"found {len(dist_info_dirs)}: {', '.join(dist_info_dirs) or 'none'}"
        )
        raise ValidationError(path, [msg])
    dist_info_dir = dist_info_dirs[0]

    record_path = f"{dist_info_dir}/RECORD"
    if record_path not in present:
        raise ValidationError(path, [f"missing {record_path}"])

    record = parse_record(archive.read(record_path))

    missing = [entry.path for entry in record if entry.path not in present]
    if missing:
        raise ValidationError(
            path, [f"RECORD references missing file {name}" for name in missing]
        )

    if verify_hashes:
        mismatches = _check_record_hashes(archive, record)
        if mismatches:
            raise ValidationError(path, mismatches)

    metadata: PackageMetadata | None = None
    metadata_path = f"{dist_info_dir}/METADATA"
    if metadata_path in present:
        metadata = decode_metadata(archive.read(metadata_path))
        _check_distribution_name(path, dist_info_dir, metadata)
    else:
        logger.warning("wheel %s has no %s", path, metadata_path)

    return WheelLayout(
        dist_info_dir=dist_info_dir,
        metadata=metadata,
        record=tuple(record),
    )


def _check_distribution_name(
    path: str | Path, dist_info_dir: str, metadata: PackageMetadata
) -> None:
    parsed = parse_distribution_dir_name(dist_info_dir)
    declared = metadata.name
    if parsed is None or declared is None:
        return
    if normalize_distribution_name(parsed[0]) != normalize_distribution_name(declared):
        msg = (
            f"METADATA name {declared!r} does not match "
            f"distribution directory {dist_info_dir!r}"
        )
        raise ValidationError(path, [msg])


def _check_record_hashes(
    archive: zipfile.ZipFile, record: list[RecordEntry]
) -> list[str]:
    problems: list[str] = []
    for entry in record:
        if entry.hash_algorithm is None and entry.size is None:
            continue
        data = archive.read(entry.path)
        if entry.size is not None and entry.size != len(data):
            problems.append(
                f"size mismatch for {entry.path}: RECORD says {entry.size}, "
                f"archive has {len(data)}"
            )
        if entry.hash_algorithm is None:
            continue
        if entry.hash_algorithm not in hashlib.algorithms_guaranteed:
            problems.append(
                f"unsupported hash algorithm {entry.hash_algorithm!r} for {entry.path}"
            )
            continue
        digest = hashlib.new(entry.hash_algorithm, data).digest()
        encoded = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
        if encoded != entry.hash_digest:
            problems.append(f"hash mismatch for {entry.path}")
    return problems


def _relocate_data_members(names: list[str], dist_info_dir: str) -> dict[str, str]:
    """Map logical install paths to archive member names.

    ``<dist>.data/purelib`` and ``<dist>.data/platlib`` content is moved to
    the root the way installers do. Other ``.data`` content is dropped.
    """
    data_dir = dist_info_dir[: -len(DIST_INFO_SUFFIX)] + ".data"
    members: dict[str, str] = {}
    for name in names:
        top, _, rest = name.partition("/")
        if top != data_dir:
            members.setdefault(name, name)
            continue
        scheme, _, relative = rest.partition("/")
        if scheme in RELOCATED_DATA_DIRS and relative:
            members[relative] = name
        else:
            logger.debug("skipping %s (wheel data outside purelib/platlib)", name)
    return members


__all__ = ["WheelLayout", "scan_wheel", "validate_wheel"]
