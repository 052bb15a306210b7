"""Typed resource records.

A resource is anything that can be embedded into a packaged Python
executable. Each variant is a separate immutable model tagged with a
``kind`` literal; :data:`ResourceRecord` is the closed union over them.
Code that needs per-kind behavior dispatches on ``record.kind``.
"""

from __future__ import annotations

from typing import Annotated, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

ResourceKind = Literal[
    "module_source",
    "module_bytecode",
    "package_resource",
    "package_distribution_resource",
    "extension_module",
    "shared_library",
]

OptimizationLevel = Literal[0, 1, 2]

TEST_PACKAGE_NAMES = frozenset({"test", "tests"})


def is_module_name(name: str) -> bool:
    """Return True when ``name`` is a dotted sequence of Python identifiers."""
    return bool(name) and all(part.isidentifier() for part in name.split("."))


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class _NamedModule(_Record):
    name: str

    @field_validator("name")
    @classmethod
    def validate_module_name(cls, value: str) -> str:
        if not is_module_name(value):
            msg = f"Invalid module name: {value!r}"
            raise ValueError(msg)
        return value


class ModuleSource(_NamedModule):
    """Uncompiled Python source for a module or package."""

    kind: Literal["module_source"] = "module_source"
    source_bytes: bytes
    is_package: bool = False


class ModuleBytecode(_NamedModule):
    """Compiled code object bytes for one optimization level."""

    kind: Literal["module_bytecode"] = "module_bytecode"
    bytecode_bytes: bytes
    optimization_level: OptimizationLevel = 0
    is_package: bool = False


class PackageResource(_Record):
    """A non-code data file owned by a package."""

    kind: Literal["package_resource"] = "package_resource"
    package: str
    resource_name: str = Field(min_length=1)
    data_bytes: bytes

    @field_validator("package")
    @classmethod
    def validate_package(cls, value: str) -> str:
        if not is_module_name(value):
            msg = f"Invalid package name: {value!r}"
            raise ValueError(msg)
        return value


class PackageDistributionResource(_Record):
    """A file from a ``.dist-info`` or ``.egg-info`` directory."""

    kind: Literal["package_distribution_resource"] = "package_distribution_resource"
    package: str = Field(min_length=1)
    name: str = Field(min_length=1)
    data_bytes: bytes
    version: str | None = None


class SharedLibrary(_Record):
    """A shared library that extension modules link against."""

    kind: Literal["shared_library"] = "shared_library"
    name: str = Field(min_length=1)
    data_bytes: bytes
    package: str | None = None


class ExtensionModule(_NamedModule):
    """A compiled extension module plus the shared libraries it needs."""

    kind: Literal["extension_module"] = "extension_module"
    library_bytes: bytes
    extension_file_suffix: str
    shared_library_dependency_names: tuple[str, ...] = ()
    shared_libraries: tuple[SharedLibrary, ...] = ()


ResourceRecord = Annotated[
    ModuleSource
    | ModuleBytecode
    | PackageResource
    | PackageDistributionResource
    | ExtensionModule
    | SharedLibrary,
    Field(discriminator="kind"),
]


class ResourceKey(NamedTuple):
    """Registry key: qualified name plus kind (bytecode keys carry the level)."""

    name: str
    kind: str


def resource_key(record: ResourceRecord) -> ResourceKey:
    """Compute the registry key for a record."""
    if record.kind == "module_bytecode":
        return ResourceKey(record.name, f"module_bytecode@{record.optimization_level}")
    if record.kind == "package_resource":
        return ResourceKey(f"{record.package}:{record.resource_name}", record.kind)
    if record.kind == "package_distribution_resource":
        return ResourceKey(f"{record.package}:{record.name}", record.kind)
    return ResourceKey(record.name, record.kind)


def owning_name(record: ResourceRecord) -> str | None:
    """Return the dotted name used when matching a record against allow-lists.

    Data and distribution files match through their package. Shared
    libraries without an owning package return ``None``.
    """
    if record.kind in {"package_resource", "package_distribution_resource"}:
        return record.package
    if record.kind == "shared_library":
        return record.package
    return record.name


def is_test_module(name: str) -> bool:
    """Return True for modules living in a ``test``/``tests`` package."""
    return any(part in TEST_PACKAGE_NAMES for part in name.split("."))


__all__ = [
    "ExtensionModule",
    "ModuleBytecode",
    "ModuleSource",
    "OptimizationLevel",
    "PackageDistributionResource",
    "PackageResource",
    "ResourceKey",
    "ResourceKind",
    "ResourceRecord",
    "SharedLibrary",
    "is_module_name",
    "is_test_module",
    "owning_name",
    "resource_key",
]
