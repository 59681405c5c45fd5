"""
Pytest configuration and fixtures for stash tests.

This module provides shared fixtures used across unit, integration,
and security tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from stash.config import CONFIG_PATH_ENV, DATA_DIR_ENV
from stash.resolver import IndexResolver
from stash.store import BlobStore


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's own stash settings out of every test."""
    monkeypatch.delenv(DATA_DIR_ENV, raising=False)
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store_dir(temp_dir: Path) -> Path:
    """Storage directory inside the temp dir (not yet created)."""
    return temp_dir / "entries"


@pytest.fixture
def store(store_dir: Path) -> BlobStore:
    """An empty blob store."""
    return BlobStore(store_dir)


@pytest.fixture
def resolver(store: BlobStore) -> IndexResolver:
    """Index resolver over the empty store."""
    return IndexResolver(store)
