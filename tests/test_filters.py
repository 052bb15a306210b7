from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from registry.registry import ResourceRegistry
from resources.errors import MissingFilterFileError
from resources.models import ModuleSource
from rules.filters import (
    expand_glob_files,
    filter_registry_from_files,
    load_filter_set,
    parse_filter_lines,
)

if TYPE_CHECKING:
    from pathlib import Path


def _registry(*names: str) -> ResourceRegistry:
    registry = ResourceRegistry()
    registry.add_many([ModuleSource(name=name, source_bytes=b"") for name in names])
    return registry


def test_parse_filter_lines_skips_comments_and_blanks() -> None:
    text = "foo\n# a comment\n\n  bar  \n\t\n"

    assert parse_filter_lines(text) == {"foo", "bar"}


def test_files_and_glob_files_are_unioned(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_text("foo\n#comment\n\nbar\n", encoding="utf-8")
    (tmp_path / "extra").mkdir()
    (tmp_path / "extra" / "b.list").write_text("baz\n", encoding="utf-8")

    allowed = load_filter_set(
        files=[tmp_path / "a.txt"],
        glob_files=[str(tmp_path / "**" / "*.list")],
    )

    assert allowed == frozenset({"foo", "bar", "baz"})


def test_missing_explicit_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(MissingFilterFileError) as exc_info:
        load_filter_set(files=[tmp_path / "nope.txt"])

    assert exc_info.value.path == str(tmp_path / "nope.txt")


def test_glob_matching_nothing_is_not_an_error(tmp_path: Path) -> None:
    assert load_filter_set(glob_files=[str(tmp_path / "*.filter")]) == frozenset()


def test_expand_glob_files_is_sorted_and_skips_directories(tmp_path: Path) -> None:
    (tmp_path / "b.txt").write_text("", encoding="utf-8")
    (tmp_path / "a.txt").write_text("", encoding="utf-8")
    (tmp_path / "c.txt").mkdir()

    assert expand_glob_files([str(tmp_path / "*.txt")]) == [
        tmp_path / "a.txt",
        tmp_path / "b.txt",
    ]


def test_filter_registry_from_files(tmp_path: Path) -> None:
    filter_file = tmp_path / "keep.txt"
    filter_file.write_text("foo\n", encoding="utf-8")
    registry = _registry("foo", "foo.bar", "baz")

    removed = filter_registry_from_files(registry, files=[filter_file])

    assert [record.name for record in registry] == ["foo", "foo.bar"]
    assert [key.name for key in removed] == ["baz"]


def test_missing_file_leaves_registry_unchanged(tmp_path: Path) -> None:
    present = tmp_path / "keep.txt"
    present.write_text("foo\n", encoding="utf-8")
    registry = _registry("foo", "baz")

    with pytest.raises(MissingFilterFileError):
        filter_registry_from_files(registry, files=[present, tmp_path / "gone.txt"])

    assert len(registry) == 2
