"""Build session collecting the resources of one Python executable."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from artifacts.index import serialize_registry
from registry.registry import AddPolicy, ResourceRegistry
from resources.bytecode import compile_bytecode
from resources.models import ModuleBytecode, ModuleSource, is_test_module
from rules.config import PackagingPolicy
from rules.filters import filter_registry_from_files
from scan.classify import ClassifierConfig
from scan.files import read_package_root, read_virtualenv
from scan.wheel import scan_wheel

if TYPE_CHECKING:
    from collections.abc import Iterable

    from resources.bytecode import Compiler
    from resources.models import ResourceKey, ResourceRecord

logger = logging.getLogger("respack.executable")


class PythonExecutable:
    """Resources destined for one packaged executable.

    The session owns a single :class:`ResourceRegistry`. Scanner front-ends
    return records without merging them; ``add_python_resource(s)`` applies
    the packaging policy and merges.
    """

    def __init__(
        self,
        name: str,
        *,
        policy: PackagingPolicy | None = None,
        classifier: ClassifierConfig | None = None,
        compiler: Compiler = compile_bytecode,
    ) -> None:
        self.name = name
        self.policy = policy if policy is not None else PackagingPolicy()
        self.classifier = classifier if classifier is not None else ClassifierConfig()
        self.compiler = compiler
        self.registry = ResourceRegistry()

    @property
    def add_policy(self) -> AddPolicy:
        return AddPolicy(self.policy.duplicate_policy)

    def make_python_module_source(
        self, name: str, source: str | bytes, is_package: bool = False
    ) -> ModuleSource:
        """Create a module source record from in-memory source."""
        source_bytes = source.encode("utf-8") if isinstance(source, str) else source
        return ModuleSource(name=name, source_bytes=source_bytes, is_package=is_package)

    def read_wheel(self, path: str | Path) -> list[ResourceRecord]:
        return scan_wheel(
            path,
            config=self.classifier,
            verify_hashes=self.policy.verify_wheel_hashes,
        )

    def read_package_root(
        self, path: str | Path, packages: Iterable[str]
    ) -> list[ResourceRecord]:
        return read_package_root(Path(path), packages, config=self.classifier)

    def read_virtualenv(
        self, path: str | Path, python_version: str | None = None
    ) -> list[ResourceRecord]:
        return read_virtualenv(
            Path(path), config=self.classifier, python_version=python_version
        )

    def _apply_policy(self, record: ResourceRecord) -> list[ResourceRecord]:
        """Expand one record into what the policy says to embed."""
        if record.kind in {"module_source", "module_bytecode", "extension_module"}:
            if not self.policy.include_test and is_test_module(record.name):
                logger.debug("skipping test module %s", record.name)
                return []
        if record.kind == "package_resource":
            if not self.policy.include_test and is_test_module(record.package):
                logger.debug(
                    "skipping test resource %s:%s", record.package, record.resource_name
                )
                return []

        if record.kind == "package_distribution_resource":
            if not self.policy.include_distribution_resources:
                return []
            return [record]

        if record.kind != "module_source":
            return [record]

        expanded: list[ResourceRecord] = []
        if self.policy.include_sources:
            expanded.append(record)
        for level in self.policy.bytecode_optimization_levels:
            expanded.append(
                ModuleBytecode(
                    name=record.name,
                    bytecode_bytes=self.compiler(
                        record.source_bytes, record.name, level
                    ),
                    optimization_level=level,
                    is_package=record.is_package,
                )
            )
        return expanded

    def add_python_resource(self, record: ResourceRecord) -> None:
        """Apply the packaging policy to ``record`` and merge the result."""
        self.add_python_resources([record])

    def add_python_resources(self, records: Iterable[ResourceRecord]) -> None:
        """Apply the packaging policy to every record, then merge them in order.

        Compilation happens before anything is merged, so a
        :class:`~resources.errors.CompileError` leaves the registry unchanged.
        """
        expanded = [item for record in records for item in self._apply_policy(record)]
        self.registry.add_many(expanded, self.add_policy)
        logger.info("%s: added %d resources", self.name, len(expanded))

    def filter_resources_from_files(
        self,
        files: Iterable[str | Path] | None = None,
        glob_files: Iterable[str] | None = None,
    ) -> list[ResourceKey]:
        return filter_registry_from_files(self.registry, files, glob_files)

    def to_embedded_resources(self) -> bytes:
        """Serialize the session's registry into the embedded index format."""
        return serialize_registry(self.registry)


__all__ = ["PythonExecutable"]
