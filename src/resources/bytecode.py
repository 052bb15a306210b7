"""Bytecode compilation boundary.

The packaging core treats compilation as a black box: anything matching
:class:`Compiler` can be injected. The default compiles with the running
interpreter, which is only correct when it matches the target Python.
"""

from __future__ import annotations

import marshal
from typing import Protocol

from resources.errors import CompileError


class Compiler(Protocol):
    def __call__(
        self, source: bytes, name: str, optimization_level: int
    ) -> bytes: ...


def compile_bytecode(source: bytes, name: str, optimization_level: int) -> bytes:
    """Compile module source into marshalled code object bytes.

    Args:
        source: Raw module source.
        name: Dotted module name, used as the code object filename.
        optimization_level: 0, 1 or 2 (``-O``/``-OO`` equivalents).

    Returns:
        ``marshal`` serialization of the compiled code object.

    Raises:
        CompileError: If the source does not compile.
    """
    if optimization_level not in (0, 1, 2):
        msg = f"invalid optimization level {optimization_level}"
        raise CompileError(name, msg)

    try:
        code = compile(
            source,
            f"<{name}>",
            "exec",
            dont_inherit=True,
            optimize=optimization_level,
        )
    except (SyntaxError, ValueError) as exc:
        raise CompileError(name, str(exc)) from exc

    return marshal.dumps(code)


__all__ = ["Compiler", "compile_bytecode"]
