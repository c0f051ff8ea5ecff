"""Pytest configuration helpers for test collection.

Ensure the project root is on sys.path so tests can import the package
without requiring PYTHONPATH to be set externally.
"""
import sys
from pathlib import Path

import pytest


def pytest_configure(config):
    # Insert repo root (one level up from tests/) to sys.path
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))


@pytest.fixture
def store_dir(tmp_path):
    d = tmp_path / "store"
    d.mkdir()
    return d


@pytest.fixture
def fs_storage(store_dir):
    from persistent_state.storage import FilesystemStorage
    # No safety margin so tests do not depend on the free space of the test volume
    return FilesystemStorage(store_dir, safety_margin=0)


@pytest.fixture
def memory_storage():
    from persistent_state.storage import MemoryStorage
    return MemoryStorage()
