"""Integration tests for the SQLite key-value store and a full session on disk."""

from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from zenith.app import ZenithApp
from zenith.core.config import Constants
from zenith.core.kv_store import SQLiteKeyValueStore, StorageError
from zenith.domain.task import Task, TaskPriority
from zenith.services.persistence_store import PersistenceStore


NOW = datetime(2025, 9, 10, 12, 0, tzinfo=UTC)


def fixed_clock() -> datetime:
    return NOW


@pytest.mark.integration
class TestSQLiteKeyValueStore:
    """Tests for raw key-value operations against a real database file."""

    async def test_creates_parent_directory(self, db_path: str, sqlite_store: SQLiteKeyValueStore) -> None:
        assert Path(db_path).exists()

    async def test_set_get_overwrite(self, sqlite_store: SQLiteKeyValueStore) -> None:
        assert await sqlite_store.get("missing") is None

        await sqlite_store.set("greeting", '"hello"')
        await sqlite_store.set("greeting", '"hi"')

        assert await sqlite_store.get("greeting") == '"hi"'
        assert await sqlite_store.exists("greeting")
        assert await sqlite_store.keys() == ["greeting"]

    async def test_delete(self, sqlite_store: SQLiteKeyValueStore) -> None:
        await sqlite_store.set("temp", "1")

        await sqlite_store.delete("temp")
        await sqlite_store.delete("never-existed")

        assert await sqlite_store.get("temp") is None

    async def test_values_survive_reopen(self, db_path: str) -> None:
        first = SQLiteKeyValueStore(db_path)
        await first.set(Constants.TASKS_KEY, "[]")
        await first.close()

        second = SQLiteKeyValueStore(db_path)
        try:
            assert await second.get(Constants.TASKS_KEY) == "[]"
        finally:
            await second.close()

    async def test_unopened_connection_raises_storage_error(self, db_path: str) -> None:
        """Test that a connect that leaves no connection surfaces as StorageError."""
        store = SQLiteKeyValueStore(db_path)

        with patch.object(store, "connect", new_callable=AsyncMock), pytest.raises(StorageError):
            await store.get(Constants.TASKS_KEY)


@pytest.mark.integration
class TestPersistenceOnDisk:
    """Tests for the recovery chain against SQLite."""

    async def test_corrupt_tasks_restored_from_backup(self, sqlite_store: SQLiteKeyValueStore) -> None:
        persistence = PersistenceStore(sqlite_store, clock=fixed_clock)
        task = Task(title="Backed up", created_date=NOW, priority=TaskPriority.HIGH)
        await persistence.save(Constants.TASKS_KEY, [task])
        assert await persistence.create_backup()

        await sqlite_store.set(Constants.TASKS_KEY, "\x00garbage")

        tasks = await persistence.load_tasks_with_validation()
        assert [t.id for t in tasks] == [task.id]


@pytest.mark.integration
class TestSessionOnDisk:
    """Tests for a full session persisted to SQLite."""

    async def test_progress_persists_across_sessions(self, db_path: str) -> None:
        llm = AsyncMock()
        app = await ZenithApp.create(db_path=db_path, clock=fixed_clock, llm=llm)
        try:
            task = await app.task_store.add_task(Task(title="Ship", created_date=NOW, priority=TaskPriority.CRITICAL))
            result = await app.workflow.complete_task(task.id)
            assert result.award.level_up
            report = await app.workflow.run_health_check()
            assert report.is_healthy
        finally:
            await app.close()

        reopened = await ZenithApp.create(db_path=db_path, clock=fixed_clock, llm=llm)
        try:
            assert reopened.points_engine.total_points == 100
            assert reopened.points_engine.level == 2
            assert reopened.streak_engine.current_streak == 1
            assert (await reopened.persistence.backup_info()).exists
            summary = await reopened.persistence.export_data_summary()
            assert "Tasks: 1/1 completed" in summary
        finally:
            await reopened.close()
