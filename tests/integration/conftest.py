"""Pytest configuration and fixtures for integration tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from zenith.core.kv_store import SQLiteKeyValueStore


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Per-test SQLite file."""
    return str(tmp_path / "zenith" / "zenith.db")


@pytest.fixture
async def sqlite_store(db_path: str) -> AsyncGenerator[SQLiteKeyValueStore, None]:
    """Connected SQLite store, closed after the test."""
    store = SQLiteKeyValueStore(db_path)
    await store.connect()
    yield store
    await store.close()
