"""Error taxonomy for resource collection, filtering and serialization."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


class ResourceError(Exception):
    """Base class for all resource packaging errors."""


class ValidationError(ResourceError):
    """Raised when a wheel archive is malformed.

    The scan that raised it produced no records.
    """

    def __init__(self, path: str | Path, problems: Sequence[str]) -> None:
        self.path = str(path)
        self.problems = tuple(problems)
        details = "; ".join(self.problems)
        super().__init__(f"Invalid wheel {self.path}: {details}")


class DuplicateResourceError(ResourceError):
    """Raised when adding a resource that is already present under the error policy."""

    def __init__(self, name: str, kind: str) -> None:
        self.name = name
        self.kind = kind
        super().__init__(f"Resource {name!r} of kind {kind!r} is already present")


class MissingFilterFileError(ResourceError):
    """Raised when an explicitly named filter file does not exist."""

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        super().__init__(f"Filter file does not exist: {self.path}")


class SourceTreeError(ResourceError):
    """Raised when a package root or virtualenv cannot be scanned."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot scan {self.path}: {reason}")


class ResourceTooLargeError(ResourceError):
    """Raised when a payload does not fit the index length fields."""

    def __init__(self, name: str, size: int) -> None:
        self.name = name
        self.size = size
        super().__init__(
            f"Resource {name!r} is too large for the embedded index ({size} bytes)"
        )


class IndexFormatError(ResourceError):
    """Raised when bytes do not decode as an embedded resource index."""


class CompileError(ResourceError):
    """Raised when module source cannot be compiled to bytecode."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Failed to compile {name!r}: {reason}")


__all__ = [
    "CompileError",
    "DuplicateResourceError",
    "IndexFormatError",
    "MissingFilterFileError",
    "ResourceError",
    "ResourceTooLargeError",
    "SourceTreeError",
    "ValidationError",
]
