"""Configuration, packaging policy and filter rules."""

from rules.config import (
    ConfigError,
    PackagingPolicy,
    RespackConfig,
    load_config,
)
from rules.filters import filter_registry_from_files, load_filter_set

__all__ = [
    "ConfigError",
    "PackagingPolicy",
    "RespackConfig",
    "filter_registry_from_files",
    "load_config",
    "load_filter_set",
]
