"""Scanning of wheels and directory trees into resource records."""

from scan.classify import ClassifierConfig, classify_path
from scan.files import read_package_root, read_virtualenv, scan_directory
from scan.wheel import scan_wheel

__all__ = [
    "ClassifierConfig",
    "classify_path",
    "read_package_root",
    "read_virtualenv",
    "scan_directory",
    "scan_wheel",
]
