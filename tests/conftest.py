"""Pytest fixtures for package validation tests."""

import gzip
from pathlib import Path

import pytest

from helpers import VALID_ENTRIES, build_tar


@pytest.fixture
def make_package(tmp_path: Path):
    """Write a .tar.gz holding the given (name, bytes) entries."""
    def _make(entries, filename: str = "package.tar.gz") -> Path:
        path = tmp_path / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(gzip.compress(build_tar(entries)))
        return path
    return _make


@pytest.fixture
def valid_package(make_package) -> Path:
    """Package with both required entries and a README."""
    return make_package([*VALID_ENTRIES, ("README.md", b"# demo\n")])
