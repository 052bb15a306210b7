from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scan.classify import ClassifierConfig, default_extension_suffixes

CONFIG_FILENAME = "respack.toml"

DuplicatePolicy = Literal["overwrite", "error"]


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PackagingPolicy(_StrictModel):
    """Which forms of each resource end up in the executable."""

    include_sources: bool = Field(
        default=True,
        description="Embed module source next to its bytecode",
    )
    bytecode_optimization_levels: list[int] = Field(
        default_factory=lambda: [0],
        description="Optimization levels to compile module source at",
    )
    include_distribution_resources: bool = Field(
        default=True,
        description="Embed .dist-info/.egg-info files",
    )
    include_test: bool = Field(
        default=False,
        description="Embed modules living in test/tests packages",
    )
    duplicate_policy: DuplicatePolicy = Field(
        default="overwrite",
        description="Behavior when a resource is added twice",
    )
    verify_wheel_hashes: bool = Field(
        default=False,
        description="Check RECORD digests and sizes when scanning wheels",
    )

    @field_validator("bytecode_optimization_levels")
    @classmethod
    def validate_levels(cls, v: list[int]) -> list[int]:
        """Reject levels other than 0, 1 and 2 and drop repeats."""
        invalid = [level for level in v if level not in (0, 1, 2)]
        if invalid:
            msg = f"Invalid bytecode optimization levels: {invalid}. Valid: 0, 1, 2"
            raise ValueError(msg)
        return sorted(set(v))


class ClassifierSettings(_StrictModel):
    """Classification tables for the target platform."""

    extension_suffixes: list[str] = Field(
        default_factory=lambda: list(default_extension_suffixes()),
        description="Extension module file suffixes (tried longest first)",
    )
    ignored_dirs: list[str] = Field(
        default_factory=lambda: ["__pycache__"],
        description="Directory names whose content is never a resource",
    )

    def to_classifier_config(self) -> ClassifierConfig:
        return ClassifierConfig(
            extension_suffixes=tuple(self.extension_suffixes),
            ignored_dirs=frozenset(self.ignored_dirs),
        )


class PackageRootSource(_StrictModel):
    path: str = Field(description="Directory holding the top-level packages")
    packages: list[str] = Field(
        min_length=1,
        description="Top-level package names to collect",
    )


class FiltersConfig(_StrictModel):
    files: list[str] = Field(
        default_factory=list,
        description="Filter files listing resource names to keep",
    )
    glob_files: list[str] = Field(
        default_factory=list,
        description="Glob patterns matching filter files",
    )

    @property
    def enabled(self) -> bool:
        return bool(self.files or self.glob_files)


class RespackConfig(_StrictModel):
    """Configuration for building an embedded resource index."""

    output_dir: str = Field(
        default="build/respack",
        description="Output directory for the index and manifest",
    )
    index_filename: str = Field(
        default="packed-resources",
        description="File name of the embedded index inside output_dir",
    )
    wheels: list[str] = Field(
        default_factory=list,
        description="Glob patterns of wheel files to collect",
    )
    package_roots: list[PackageRootSource] = Field(
        default_factory=list,
        description="Local source trees to collect named packages from",
    )
    virtualenvs: list[str] = Field(
        default_factory=list,
        description="Virtualenvs whose site-packages are collected entirely",
    )
    policy: PackagingPolicy = Field(default_factory=PackagingPolicy)
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)
    filters: FiltersConfig = Field(default_factory=FiltersConfig)

    @field_validator("index_filename")
    @classmethod
    def validate_index_filename(cls, v: Any) -> Any:
        if not isinstance(v, str) or not v or "/" in v or "\\" in v:
            msg = "index_filename must be a plain file name"
            raise ValueError(msg)
        return v


class ConfigError(Exception):
    """Raised when config file exists but cannot be parsed."""


def resolve_output_dir(root: Path, output_dir: str) -> Path:
    """Resolve a config-provided output_dir safely within the project root.

    The config output_dir must be a non-empty relative path that remains
    within the project root after resolution. Absolute paths and paths
    that escape the root are rejected.
    """
    if not output_dir:
        msg = "output_dir must be a non-empty relative path"
        raise ConfigError(msg)

    if output_dir.startswith("~"):
        msg = "output_dir must be a relative path within the project root"
        raise ConfigError(msg)

    output_path = Path(output_dir)
    if output_path.is_absolute():
        msg = "output_dir must be a relative path within the project root"
        raise ConfigError(msg)

    try:
        resolved_root = root.resolve()
        resolved_output = (resolved_root / output_path).resolve()
    except OSError as exc:
        msg = f"Failed to resolve output_dir '{output_dir}': {exc}"
        raise ConfigError(msg) from exc

    try:
        resolved_output.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"output_dir '{output_dir}' escapes the project root"
        raise ConfigError(msg) from exc

    return resolved_output


def load_config(root: Path) -> RespackConfig:
    """Load configuration from respack.toml if it exists."""
    config_path = Path(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return RespackConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return RespackConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e
