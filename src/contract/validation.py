"""Validation helpers for built index artifacts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import orjson

from artifacts.index import read_embedded_index
from artifacts.utils import manifest_record
from contract.index import INDEX_FILENAME, KIND_SPECS, MANIFEST_JSONL
from resources.errors import IndexFormatError

if TYPE_CHECKING:
    from pathlib import Path

    from artifacts.index import IndexEntry


@dataclass(frozen=True)
class ValidationMessage:
    artifact: str
    path: Path
    message: str
    line: int | None = None

    def location(self) -> str:
        if self.line is None:
            return str(self.path)
        return f"{self.path}:{self.line}"

    def to_dict(self) -> dict[str, object]:
        return {
            "artifact": self.artifact,
            "path": str(self.path),
            "line": self.line,
            "message": self.message,
        }


@dataclass
class ValidationResult:
    errors: list[ValidationMessage] = field(default_factory=list)
    warnings: list[ValidationMessage] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def validate_artifacts(
    artifacts_dir: Path, *, index_filename: str = INDEX_FILENAME
) -> ValidationResult:
    """Check the index and manifest written by a build."""
    result = ValidationResult()

    if not artifacts_dir.exists():
        result.errors.append(
            ValidationMessage(
                artifact="artifacts_dir",
                path=artifacts_dir,
                message="Artifacts directory does not exist.",
            )
        )
        return result

    if not artifacts_dir.is_dir():
        result.errors.append(
            ValidationMessage(
                artifact="artifacts_dir",
                path=artifacts_dir,
                message="Artifacts path is not a directory.",
            )
        )
        return result

    entries = _validate_index(artifacts_dir / index_filename, result)
    if entries is not None:
        _validate_manifest(artifacts_dir / MANIFEST_JSONL, entries, result)

    return result


def _validate_index(
    path: Path, result: ValidationResult
) -> tuple[IndexEntry, ...] | None:
    if not path.exists():
        result.errors.append(
            ValidationMessage(
                artifact="index",
                path=path,
                message="Required artifact file is missing.",
            )
        )
        return None

    try:
        index = read_embedded_index(path.read_bytes())
    except OSError as exc:
        result.errors.append(
            ValidationMessage(
                artifact="index",
                path=path,
                message=f"Failed to read file: {exc}.",
            )
        )
        return None
    except IndexFormatError as exc:
        result.errors.append(
            ValidationMessage(
                artifact="index",
                path=path,
                message=f"Malformed index: {exc}.",
            )
        )
        return None

    previous: tuple[int, str, str, int] | None = None
    for position, entry in enumerate(index.entries):
        level = -1 if entry.optimization_level is None else entry.optimization_level
        current = (KIND_SPECS[entry.kind].tag, entry.name, entry.aux or "", level)
        if previous is not None and current <= previous:
            result.errors.append(
                ValidationMessage(
                    artifact="index",
                    path=path,
                    message=(
                        f"Entry {position} ({entry.kind} {entry.name}) is out of "
                        "order or duplicated."
                    ),
                )
            )
        previous = current

    return index.entries


def _validate_manifest(
    path: Path, entries: tuple[IndexEntry, ...], result: ValidationResult
) -> None:
    if not path.exists():
        result.warnings.append(
            ValidationMessage(
                artifact="manifest",
                path=path,
                message="Manifest is missing; index was not cross-checked.",
            )
        )
        return

    records: list[object] = []
    with path.open("rb") as handle:
        for line_number, raw_line in enumerate(handle, 1):
            line = raw_line.strip()
            if not line:
                continue
            try:
                records.append(orjson.loads(line))
            except orjson.JSONDecodeError as exc:
                result.errors.append(
                    ValidationMessage(
                        artifact="manifest",
                        path=path,
                        line=line_number,
                        message=f"Invalid JSON: {exc}.",
                    )
                )
                return

    if len(records) != len(entries):
        result.errors.append(
            ValidationMessage(
                artifact="manifest",
                path=path,
                message=(
                    f"Manifest lists {len(records)} entries, index has {len(entries)}."
                ),
            )
        )
        return

    for line_number, (record, entry) in enumerate(zip(records, entries), 1):
        if record != manifest_record(entry):
            result.errors.append(
                ValidationMessage(
                    artifact="manifest",
                    path=path,
                    line=line_number,
                    message=f"Manifest does not match index entry {entry.name}.",
                )
            )


__all__ = [
    "ValidationMessage",
    "ValidationResult",
    "validate_artifacts",
]
