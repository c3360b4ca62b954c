"""
Pytest configuration and fixtures for Pinwatch tests.
"""

import json
import tempfile
from pathlib import Path

import pytest


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir).resolve()


@pytest.fixture
def write_json():
    """Write a dict as JSON to a path and return the path."""
    def _write(path: Path, data) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2))
        return path
    return _write


@pytest.fixture
def read_json():
    """Read a JSON file back into Python."""
    def _read(path: Path):
        return json.loads(path.read_text())
    return _read
