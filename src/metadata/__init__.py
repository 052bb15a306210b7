"""Package metadata decoding."""

from metadata.decoder import (
    PackageMetadata,
    RecordEntry,
    decode_metadata,
    normalize_distribution_name,
    parse_record,
)

__all__ = [
    "PackageMetadata",
    "RecordEntry",
    "decode_metadata",
    "normalize_distribution_name",
    "parse_record",
]
