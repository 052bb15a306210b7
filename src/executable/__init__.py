"""Packaging sessions."""

from executable.session import PythonExecutable

__all__ = ["PythonExecutable"]
