from __future__ import annotations

import zipfile
from typing import TYPE_CHECKING, Callable

import pytest

from registry.registry import ResourceRegistry
from resources.errors import ValidationError
from resources.models import ModuleSource, ResourceKey, resource_key
from scan.classify import ClassifierConfig
from scan.wheel import scan_wheel

if TYPE_CHECKING:
    from pathlib import Path

PKG_FILES = {
    "pkg/__init__.py": b"",
    "pkg/mod.py": b"x = 1\n",
    "pkg/data.txt": b"hello",
}


def test_scan_wheel_classifies_members(make_wheel: Callable[..., Path]) -> None:
    wheel = make_wheel(PKG_FILES)

    registry = ResourceRegistry()
    registry.add_many(scan_wheel(wheel, config=ClassifierConfig()))

    assert set(registry.keys()) == {
        ResourceKey("pkg", "module_source"),
        ResourceKey("pkg.mod", "module_source"),
        ResourceKey("pkg:data.txt", "package_resource"),
        ResourceKey("pkg:METADATA", "package_distribution_resource"),
        ResourceKey("pkg:RECORD", "package_distribution_resource"),
    }
    package = registry.get("pkg", "module_source")
    assert isinstance(package, ModuleSource)
    assert package.is_package is True


def test_records_follow_archive_order(make_wheel: Callable[..., Path]) -> None:
    wheel = make_wheel(PKG_FILES)

    records = scan_wheel(wheel)

    assert [resource_key(record).name for record in records[:3]] == [
        "pkg",
        "pkg.mod",
        "pkg:data.txt",
    ]


def test_record_referencing_missing_file_fails_without_records(
    make_wheel: Callable[..., Path],
) -> None:
    wheel = make_wheel(PKG_FILES, extra_record=("pkg/missing.py,sha256=xyz,3",))
    registry = ResourceRegistry()

    with pytest.raises(ValidationError) as exc_info:
        registry.add_many(scan_wheel(wheel))

    assert len(registry) == 0
    assert exc_info.value.path == str(wheel)
    assert any("pkg/missing.py" in problem for problem in exc_info.value.problems)


def test_missing_dist_info_is_invalid(tmp_path: Path) -> None:
    wheel = tmp_path / "bare-1.0-py3-none-any.whl"
    with zipfile.ZipFile(wheel, "w") as archive:
        archive.writestr("bare/__init__.py", b"")

    with pytest.raises(ValidationError, match="exactly one .dist-info"):
        scan_wheel(wheel)


def test_two_dist_info_directories_are_invalid(
    make_wheel: Callable[..., Path],
) -> None:
    wheel = make_wheel({**PKG_FILES, "other-2.0.dist-info/METADATA": b"Name: other\n"})

    with pytest.raises(ValidationError, match="found 2"):
        scan_wheel(wheel)


def test_missing_record_is_invalid(make_wheel: Callable[..., Path]) -> None:
    wheel = make_wheel(PKG_FILES, include_record=False)

    with pytest.raises(ValidationError, match="missing pkg-1.0.dist-info/RECORD"):
        scan_wheel(wheel)


def test_metadata_name_must_match_dist_info(make_wheel: Callable[..., Path]) -> None:
    wheel = make_wheel(PKG_FILES, metadata_name="something-else")

    with pytest.raises(ValidationError, match="does not match"):
        scan_wheel(wheel)


def test_metadata_name_is_compared_normalized(make_wheel: Callable[..., Path]) -> None:
    wheel = make_wheel(
        {"my_pkg/__init__.py": b""},
        dist="my_pkg",
        metadata_name="My.Pkg",
        filename="my_pkg-1.0-py3-none-any.whl",
    )

    records = scan_wheel(wheel)

    assert ResourceKey("my_pkg", "module_source") in {
        resource_key(record) for record in records
    }


def test_missing_metadata_is_tolerated(make_wheel: Callable[..., Path]) -> None:
    wheel = make_wheel(PKG_FILES, include_metadata=False)

    records = scan_wheel(wheel)

    assert {resource_key(record).name for record in records} >= {"pkg", "pkg.mod"}


def test_hash_mismatch_only_checked_on_request(
    make_wheel: Callable[..., Path],
) -> None:
    wheel = make_wheel(PKG_FILES, tamper={"pkg/mod.py": b"x = 2\n"})

    assert scan_wheel(wheel, verify_hashes=False)

    with pytest.raises(ValidationError, match="hash mismatch for pkg/mod.py"):
        scan_wheel(wheel, verify_hashes=True)


def test_size_mismatch_reported(make_wheel: Callable[..., Path]) -> None:
    wheel = make_wheel(PKG_FILES, tamper={"pkg/data.txt": b"hello world"})

    with pytest.raises(ValidationError) as exc_info:
        scan_wheel(wheel, verify_hashes=True)

    assert any("size mismatch" in problem for problem in exc_info.value.problems)


def test_intact_wheel_passes_hash_verification(
    make_wheel: Callable[..., Path],
) -> None:
    wheel = make_wheel(PKG_FILES)

    assert len(scan_wheel(wheel, verify_hashes=True)) == 5


def test_purelib_data_is_relocated(make_wheel: Callable[..., Path]) -> None:
    wheel = make_wheel(
        {
            **PKG_FILES,
            "pkg-1.0.data/purelib/extra/__init__.py": b"",
            "pkg-1.0.data/scripts/tool": b"#!/bin/sh\n",
        }
    )

    names = {resource_key(record).name for record in scan_wheel(wheel)}

    assert "extra" in names
    assert not any("tool" in name for name in names)


def test_unreadable_archive_is_invalid(tmp_path: Path) -> None:
    wheel = tmp_path / "broken-1.0-py3-none-any.whl"
    wheel.write_bytes(b"not a zip file")

    with pytest.raises(ValidationError, match="unreadable archive"):
        scan_wheel(wheel)
