"""Decoding of wheel ``METADATA`` and ``RECORD`` files.

``METADATA`` is an RFC 822 style header block followed by an optional
free-text body. Encodings in the wild are inconsistent, so text is decoded
as UTF-8 and falls back to replacing invalid sequences rather than failing.
Only structure is checked here; header values are not validated.
"""

from __future__ import annotations

import csv
import io
from email.parser import HeaderParser
from email.policy import compat32

from packaging.utils import NormalizedName, canonicalize_name
from pydantic import BaseModel, Field


class PackageMetadata(BaseModel):
    """Parsed ``METADATA`` headers and body.

    Header names are stored lower-cased; repeated headers keep file order.
    """

    headers: dict[str, list[str]] = Field(default_factory=dict)
    body: str = ""

    def get_all(self, name: str) -> list[str]:
        return list(self.headers.get(name.lower(), []))

    def get(self, name: str, default: str | None = None) -> str | None:
        values = self.headers.get(name.lower())
        if not values:
            return default
        return values[0]

    @property
    def name(self) -> str | None:
        return self.get("Name")

    @property
    def version(self) -> str | None:
        return self.get("Version")


class RecordEntry(BaseModel):
    """One row of a wheel ``RECORD`` file."""

    path: str
    hash_algorithm: str | None = None
    hash_digest: str | None = None
    size: int | None = None


def decode_text(data: bytes) -> str:
    """Decode bytes as UTF-8, replacing invalid sequences if strict decoding fails."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("utf-8", errors="replace")


def decode_metadata(data: bytes) -> PackageMetadata:
    """Decode a ``METADATA``/``PKG-INFO`` file into headers and body.

    Folded continuation lines are joined the way the email parser does.
    """
    text = decode_text(data)
    if text.startswith("\ufeff"):
        text = text[1:]

    message = HeaderParser(policy=compat32).parsestr(text)

    headers: dict[str, list[str]] = {}
    for key, value in message.items():
        headers.setdefault(key.lower(), []).append(str(value).strip())

    payload = message.get_payload()
    body = payload if isinstance(payload, str) else ""

    return PackageMetadata(headers=headers, body=body)


def parse_record(data: bytes) -> list[RecordEntry]:
    """Parse a wheel ``RECORD`` file (CSV rows of ``path,algo=digest,size``).

    Blank rows are skipped. The hash and size columns may be empty, as they
    are for ``RECORD`` itself.
    """
    entries: list[RecordEntry] = []
    reader = csv.reader(io.StringIO(decode_text(data)))
    for row in reader:
        if not row or not row[0].strip():
            continue

        path = row[0].strip()
        hash_field = row[1].strip() if len(row) > 1 else ""
        size_field = row[2].strip() if len(row) > 2 else ""

        algorithm: str | None = None
        digest: str | None = None
        if hash_field:
            algorithm, sep, digest = hash_field.partition("=")
            if not sep:
                algorithm, digest = None, None

        size: int | None = None
        if size_field:
            try:
                size = int(size_field)
            except ValueError:
                size = None

        entries.append(
            RecordEntry(
                path=path,
                hash_algorithm=algorithm,
                hash_digest=digest,
                size=size,
            )
        )

    return entries


def normalize_distribution_name(name: str) -> NormalizedName:
    """Normalize a distribution name (PEP 503)."""
    return canonicalize_name(name)


__all__ = [
    "PackageMetadata",
    "RecordEntry",
    "decode_metadata",
    "decode_text",
    "normalize_distribution_name",
    "parse_record",
]
