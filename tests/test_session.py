from __future__ import annotations

import marshal
from typing import TYPE_CHECKING, Callable

import pytest

from artifacts.index import read_embedded_index
from executable.session import PythonExecutable
from resources.bytecode import compile_bytecode
from resources.errors import CompileError, DuplicateResourceError
from resources.models import (
    ModuleBytecode,
    ModuleSource,
    PackageDistributionResource,
    PackageResource,
    ResourceKey,
)
from rules.config import PackagingPolicy

if TYPE_CHECKING:
    from pathlib import Path


def _fake_compiler(source: bytes, name: str, optimization_level: int) -> bytes:
    return f"{name}@{optimization_level}:".encode() + source


def test_sources_expand_into_source_and_bytecode() -> None:
    exe = PythonExecutable(
        "app",
        policy=PackagingPolicy(bytecode_optimization_levels=[0, 2]),
        compiler=_fake_compiler,
    )

    exe.add_python_resource(exe.make_python_module_source("app", "x = 1\n", True))

    assert exe.registry.keys() == [
        ResourceKey("app", "module_source"),
        ResourceKey("app", "module_bytecode@0"),
        ResourceKey("app", "module_bytecode@2"),
    ]
    bytecode = exe.registry.get("app", "module_bytecode@2")
    assert isinstance(bytecode, ModuleBytecode)
    assert bytecode.bytecode_bytes == b"app@2:x = 1\n"
    assert bytecode.is_package is True


def test_bytecode_only_policy_drops_sources() -> None:
    exe = PythonExecutable(
        "app",
        policy=PackagingPolicy(include_sources=False),
        compiler=_fake_compiler,
    )

    exe.add_python_resource(exe.make_python_module_source("mod", b"pass\n"))

    assert exe.registry.keys() == [ResourceKey("mod", "module_bytecode@0")]


def test_test_modules_are_skipped_by_default() -> None:
    exe = PythonExecutable("app", compiler=_fake_compiler)

    exe.add_python_resources(
        [
            ModuleSource(name="pkg.tests.test_mod", source_bytes=b""),
            ModuleSource(name="pkg.core", source_bytes=b""),
        ]
    )

    assert {key.name for key in exe.registry.keys()} == {"pkg.core"}


def test_test_package_resources_are_skipped_by_default() -> None:
    exe = PythonExecutable("app", compiler=_fake_compiler)

    exe.add_python_resources(
        [
            PackageResource(
                package="pkg.tests", resource_name="fixture.json", data_bytes=b"{}"
            ),
            PackageResource(package="pkg", resource_name="data.json", data_bytes=b"{}"),
        ]
    )

    assert exe.registry.keys() == [ResourceKey("pkg:data.json", "package_resource")]


def test_test_package_resources_kept_when_requested() -> None:
    exe = PythonExecutable("app", policy=PackagingPolicy(include_test=True))

    exe.add_python_resource(
        PackageResource(
            package="pkg.tests", resource_name="fixture.json", data_bytes=b""
        )
    )

    assert ResourceKey("pkg.tests:fixture.json", "package_resource") in exe.registry


def test_test_modules_kept_when_requested() -> None:
    exe = PythonExecutable(
        "app",
        policy=PackagingPolicy(include_test=True, bytecode_optimization_levels=[]),
    )

    exe.add_python_resource(ModuleSource(name="test.support", source_bytes=b""))

    assert ResourceKey("test.support", "module_source") in exe.registry


def test_distribution_resources_can_be_excluded() -> None:
    exe = PythonExecutable(
        "app", policy=PackagingPolicy(include_distribution_resources=False)
    )

    exe.add_python_resource(
        PackageDistributionResource(package="pkg", name="METADATA", data_bytes=b"")
    )

    assert len(exe.registry) == 0


def test_compile_error_leaves_registry_unchanged() -> None:
    exe = PythonExecutable("app")
    exe.add_python_resource(exe.make_python_module_source("good", "x = 1\n"))

    with pytest.raises(CompileError) as exc_info:
        exe.add_python_resources(
            [
                exe.make_python_module_source("fine", "y = 2\n"),
                exe.make_python_module_source("broken", "def (:\n"),
            ]
        )

    assert exc_info.value.name == "broken"
    assert {key.name for key in exe.registry.keys()} == {"good"}


def test_default_compiler_produces_marshalled_code() -> None:
    data = compile_bytecode(b"value = 40 + 2\n", "answer", 0)

    namespace: dict[str, object] = {}
    exec(marshal.loads(data), namespace)

    assert namespace["value"] == 42


def test_optimization_level_two_strips_docstrings() -> None:
    source = b'"""Module docs."""\n'

    plain = marshal.loads(compile_bytecode(source, "docs", 0))
    stripped = marshal.loads(compile_bytecode(source, "docs", 2))

    assert "Module docs." in plain.co_consts
    assert "Module docs." not in stripped.co_consts


def test_default_compiler_rejects_invalid_level() -> None:
    with pytest.raises(CompileError, match="invalid optimization level"):
        compile_bytecode(b"", "mod", 3)


def test_error_duplicate_policy_from_config() -> None:
    exe = PythonExecutable(
        "app",
        policy=PackagingPolicy(duplicate_policy="error"),
        compiler=_fake_compiler,
    )
    exe.add_python_resource(exe.make_python_module_source("mod", "a = 1\n"))

    with pytest.raises(DuplicateResourceError):
        exe.add_python_resource(exe.make_python_module_source("mod", "a = 2\n"))


def test_wheel_to_embedded_resources(make_wheel: Callable[..., Path]) -> None:
    wheel = make_wheel({"pkg/__init__.py": b"", "pkg/mod.py": b"x = 1\n"})
    exe = PythonExecutable("app", compiler=_fake_compiler)

    exe.add_python_resources(exe.read_wheel(wheel))
    index = read_embedded_index(exe.to_embedded_resources())

    assert [(entry.kind, entry.name) for entry in index.entries] == [
        ("module_source", "pkg"),
        ("module_source", "pkg.mod"),
        ("module_bytecode", "pkg"),
        ("module_bytecode", "pkg.mod"),
        ("package_distribution_resource", "pkg"),
        ("package_distribution_resource", "pkg"),
    ]


def test_filter_resources_from_files(tmp_path: Path) -> None:
    exe = PythonExecutable(
        "app", policy=PackagingPolicy(bytecode_optimization_levels=[])
    )
    exe.add_python_resources(
        [
            exe.make_python_module_source("foo", ""),
            exe.make_python_module_source("foo.bar", ""),
            exe.make_python_module_source("baz", ""),
        ]
    )
    filter_file = tmp_path / "keep.txt"
    filter_file.write_text("foo\n", encoding="utf-8")

    removed = exe.filter_resources_from_files(files=[filter_file])

    assert removed == [ResourceKey("baz", "module_source")]
    assert len(exe.registry) == 2


def test_read_package_root_through_session(tmp_path: Path) -> None:
    (tmp_path / "app").mkdir()
    (tmp_path / "app" / "__init__.py").write_text("", encoding="utf-8")
    (tmp_path / "other.py").write_text("", encoding="utf-8")
    exe = PythonExecutable("app")

    records = exe.read_package_root(tmp_path, ["app"])

    assert [record.name for record in records] == ["app"]
    assert len(exe.registry) == 0
