from __future__ import annotations

import base64
import hashlib
import zipfile
from pathlib import Path
from typing import Callable

import pytest


def record_line(name: str, data: bytes) -> str:
    digest = base64.urlsafe_b64encode(hashlib.sha256(data).digest()).rstrip(b"=")
    return f"{name},sha256={digest.decode('ascii')},{len(data)}"


def write_wheel(
    path: Path,
    files: dict[str, bytes],
    *,
    dist: str = "pkg",
    version: str = "1.0",
    metadata_name: str | None = None,
    include_record: bool = True,
    include_metadata: bool = True,
    extra_record: tuple[str, ...] = (),
    tamper: dict[str, bytes] | None = None,
) -> Path:
    """Write a wheel whose RECORD covers every member.

    ``tamper`` replaces member content after RECORD hashes were computed.
    """
    dist_info = f"{dist}-{version}.dist-info"
    members = dict(files)
    if include_metadata:
        name = metadata_name if metadata_name is not None else dist
        members[f"{dist_info}/METADATA"] = (
            f"Metadata-Version: 2.1\nName: {name}\nVersion: {version}\n\n".encode()
        )

    record_lines = [record_line(name, data) for name, data in members.items()]
    record_lines.extend(extra_record)
    record_lines.append(f"{dist_info}/RECORD,,")

    actual = {**members, **(tamper or {})}
    with zipfile.ZipFile(path, "w") as archive:
        for name, data in actual.items():
            archive.writestr(name, data)
        if include_record:
            archive.writestr(f"{dist_info}/RECORD", "\n".join(record_lines) + "\n")
    return path


@pytest.fixture
def make_wheel(tmp_path: Path) -> Callable[..., Path]:
    def _make(
        files: dict[str, bytes],
        *,
        directory: Path | None = None,
        filename: str = "pkg-1.0-py3-none-any.whl",
        **kwargs: object,
    ) -> Path:
        target_dir = directory if directory is not None else tmp_path
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / filename
        return write_wheel(target, files, **kwargs)  # type: ignore[arg-type]

    return _make
