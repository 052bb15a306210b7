"""Shared path helpers."""

from __future__ import annotations

from pathlib import Path, PurePosixPath


def path_parts(file_path: str | Path) -> list[str]:
    """Split a relative path into normalized POSIX components.

    Backslashes are treated as separators and empty or ``.`` components are
    dropped, so ``./foo\\bar.py`` yields ``["foo", "bar.py"]``.
    """
    path_str = file_path.as_posix() if isinstance(file_path, Path) else str(file_path)
    return [
        part
        for part in PurePosixPath(path_str.replace("\\", "/")).parts
        if part not in {"", ".", "/"}
    ]


def path_to_module(file_path: str | Path) -> str:
    """Convert a relative source file path to a dotted module name.

    Examples:
        >>> path_to_module("foo/bar.py")
        'foo.bar'
        >>> path_to_module("foo/__init__.py")
        'foo'
        >>> path_to_module(Path("foo/bar/baz.py"))
        'foo.bar.baz'
    """
    module_parts = path_parts(file_path)

    if module_parts and module_parts[-1].endswith(".py"):
        module_parts[-1] = module_parts[-1][:-3]

    if module_parts and module_parts[-1] == "__init__":
        module_parts = module_parts[:-1]

    return ".".join(module_parts)
