"""Persistence store: typed, validated access to the key-value store.

Values are JSON documents, one per key. Loads distinguish absent from corrupt
from valid data so the recovery chain (validate and repair, then restore from
the backup snapshot, then fall back to defaults) is explicit. Writes never
raise: a failed encode or write is logged and reported as a SaveResult warning,
and the caller's in-memory state stays authoritative.
"""

import json
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from zenith.core.clock import Clock, utc_now
from zenith.core.config import Constants
from zenith.core.kv_store import KeyValueStore, StorageError
from zenith.core.logging import span
from zenith.domain.backup import AppDataBackup
from zenith.domain.points import UserPoints
from zenith.domain.preferences import UserPreferences
from zenith.domain.streak import Streak
from zenith.domain.task import Task
from zenith.models.service_models import BackupInfo, LoadResult, LoadStatus, SaveResult, ValidationReport
from zenith.services import validator
from zenith.services.validator import ValidationOutcome


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Keys whose writes bump last_save_date
_TRACKED_KEYS = frozenset(
    {
        Constants.TASKS_KEY,
        Constants.ARCHIVED_TASKS_KEY,
        Constants.STREAK_KEY,
        Constants.POINTS_KEY,
        Constants.PREFERENCES_KEY,
        Constants.BACKUP_KEY,
    }
)

_DATA_KEYS = (
    Constants.TASKS_KEY,
    Constants.ARCHIVED_TASKS_KEY,
    Constants.STREAK_KEY,
    Constants.POINTS_KEY,
)


def _to_jsonable(value: Any) -> Any:  # noqa: ANN401
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list | tuple):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def encode_value(value: Any) -> str:  # noqa: ANN401
    """Encode a model, list of models, or plain JSON value as a JSON string."""
    return json.dumps(_to_jsonable(value))


class PersistenceStore:
    """Typed persistence over an async key-value store."""

    def __init__(self, kv_store: KeyValueStore, *, clock: Clock = utc_now) -> None:
        self.kv_store = kv_store
        self.clock = clock

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------

    async def save(self, key: str, value: Any) -> SaveResult:  # noqa: ANN401
        """Encode and write a value.

        Args:
            key: Storage key
            value: Pydantic model, list of models, or JSON-compatible value

        Returns:
            SaveResult; failures carry a warning instead of raising
        """
        with span("persistence_store.save"):
            try:
                payload = encode_value(value)
            except (TypeError, ValueError) as e:
                logger.error("Failed to encode value", extra={"key": key, "error": str(e)})
                return SaveResult(key=key, success=False, warning=f"Failed to encode {key}: {e}")

            try:
                await self.kv_store.set(key, payload)
                if key in _TRACKED_KEYS:
                    await self.kv_store.set(Constants.LAST_SAVE_KEY, json.dumps(self.clock().isoformat()))
            except StorageError as e:
                logger.error("Failed to write value", extra={"key": key, "error": str(e)})
                return SaveResult(key=key, success=False, warning=str(e))

            logger.debug("Saved value", extra={"key": key})
            return SaveResult(key=key, success=True)

    async def load_raw(self, key: str, value_type: Any) -> LoadResult:  # noqa: ANN401
        """Decode a stored value without validating it.

        Args:
            key: Storage key
            value_type: Type to decode into (model class or typing expression)

        Returns:
            LoadResult with status absent, corrupt, or valid
        """
        try:
            raw = await self.kv_store.get(key)
        except StorageError as e:
            logger.error("Failed to read value", extra={"key": key, "error": str(e)})
            return LoadResult(status=LoadStatus.CORRUPT, error=str(e))

        if raw is None:
            return LoadResult(status=LoadStatus.ABSENT)

        try:
            value = TypeAdapter(value_type).validate_json(raw)
        except ValidationError as e:
            logger.warning("Stored value is corrupt", extra={"key": key, "error_count": e.error_count()})
            return LoadResult(status=LoadStatus.CORRUPT, error=str(e))

        return LoadResult(status=LoadStatus.VALID, value=value)

    async def delete(self, key: str) -> None:
        try:
            await self.kv_store.delete(key)
        except StorageError as e:
            logger.error("Failed to delete key", extra={"key": key, "error": str(e)})

    # ------------------------------------------------------------------
    # Validated loaders
    # ------------------------------------------------------------------

    async def _load_validated(
        self,
        *,
        key: str,
        value_type: Any,  # noqa: ANN401
        validate: Callable[[T, datetime], ValidationOutcome[T]],
        from_backup: Callable[[AppDataBackup], T] | None,
        default: Callable[[], T],
        save_default: bool,
    ) -> T:
        now = self.clock()
        result = await self.load_raw(key, value_type)

        if result.status == LoadStatus.VALID:
            outcome = validate(result.value, now)
            if outcome.changed:
                logger.info("Validation repaired stored data", extra={"key": key, "issues": len(outcome.issues)})
                await self.save(key, outcome.value)
            return outcome.value

        if result.status == LoadStatus.CORRUPT:
            logger.error("Failed to decode stored data", extra={"key": key, "error": result.error})
            if from_backup is not None:
                backup = await self.load_backup()
                if backup is not None:
                    outcome = validate(from_backup(backup), now)
                    logger.info("Restored data from backup", extra={"key": key})
                    await self.save(key, outcome.value)
                    return outcome.value
            logger.warning("Falling back to default value", extra={"key": key})
        else:
            logger.info("No stored data found", extra={"key": key})
            if not save_default:
                return default()

        value = default()
        await self.save(key, value)
        return value

    async def load_tasks_with_validation(self) -> list[Task]:
        with span("persistence_store.load_tasks"):
            return await self._load_validated(
                key=Constants.TASKS_KEY,
                value_type=list[Task],
                validate=validator.validate_tasks,
                from_backup=lambda backup: backup.tasks,
                default=list,
                save_default=False,
            )

    async def load_archived_tasks_with_validation(self) -> list[Task]:
        """Archived tasks are not part of the backup snapshot; corruption falls back to an empty list."""
        with span("persistence_store.load_archived_tasks"):
            return await self._load_validated(
                key=Constants.ARCHIVED_TASKS_KEY,
                value_type=list[Task],
                validate=validator.validate_tasks,
                from_backup=None,
                default=list,
                save_default=False,
            )

    async def load_streak_with_validation(self) -> Streak:
        with span("persistence_store.load_streak"):
            return await self._load_validated(
                key=Constants.STREAK_KEY,
                value_type=Streak,
                validate=validator.validate_streak,
                from_backup=lambda backup: backup.streak,
                default=Streak,
                save_default=True,
            )

    async def load_points_with_validation(self) -> UserPoints:
        with span("persistence_store.load_points"):
            return await self._load_validated(
                key=Constants.POINTS_KEY,
                value_type=UserPoints,
                validate=validator.validate_points,
                from_backup=lambda backup: backup.points,
                default=lambda: UserPoints(last_reset_date=self.clock()),
                save_default=True,
            )

    async def load_with_validation(self, key: str) -> Any:  # noqa: ANN401
        """Dispatch to the validated loader for a storage key.

        Raises:
            KeyError: If the key has no validated loader
        """
        loaders = {
            Constants.TASKS_KEY: self.load_tasks_with_validation,
            Constants.ARCHIVED_TASKS_KEY: self.load_archived_tasks_with_validation,
            Constants.STREAK_KEY: self.load_streak_with_validation,
            Constants.POINTS_KEY: self.load_points_with_validation,
        }
        if key not in loaders:
            msg = f"No validated loader for key: {key}"
            raise KeyError(msg)
        return await loaders[key]()

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    async def load_backup(self) -> AppDataBackup | None:
        result = await self.load_raw(Constants.BACKUP_KEY, AppDataBackup)
        return result.value if result.is_valid else None

    async def create_backup(self) -> bool:
        """Snapshot active tasks, streak, and points under the backup key.

        A corrupt source key aborts the backup so a good snapshot is never
        replaced by defaults.

        Returns:
            True if the snapshot was written
        """
        with span("persistence_store.create_backup"):
            tasks = await self.load_raw(Constants.TASKS_KEY, list[Task])
            streak = await self.load_raw(Constants.STREAK_KEY, Streak)
            points = await self.load_raw(Constants.POINTS_KEY, UserPoints)

            corrupt = [r for r in (tasks, streak, points) if r.status == LoadStatus.CORRUPT]
            if corrupt:
                logger.error("Refusing to back up corrupt data", extra={"corrupt_keys": len(corrupt)})
                return False

            backup = AppDataBackup(
                tasks=tasks.value if tasks.is_valid else [],
                streak=streak.value if streak.is_valid else Streak(),
                points=points.value if points.is_valid else UserPoints(last_reset_date=self.clock()),
                backup_date=self.clock(),
            )
            result = await self.save(Constants.BACKUP_KEY, backup)
            if result.success:
                logger.info("Backup created", extra={"task_count": len(backup.tasks)})
            return result.success

    async def restore_from_backup(self) -> bool:
        """Overwrite tasks, streak, and points with the backup snapshot.

        Returns:
            False if there is no readable backup or any write failed
        """
        with span("persistence_store.restore_from_backup"):
            backup = await self.load_backup()
            if backup is None:
                logger.warning("No backup found or backup corrupted")
                return False

            results = [
                await self.save(Constants.TASKS_KEY, backup.tasks),
                await self.save(Constants.STREAK_KEY, backup.streak),
                await self.save(Constants.POINTS_KEY, backup.points),
            ]
            success = all(result.success for result in results)
            logger.info(
                "Data restored from backup",
                extra={"backup_date": backup.backup_date.isoformat(), "success": success},
            )
            return success

    async def backup_info(self) -> BackupInfo:
        backup = await self.load_backup()
        if backup is None:
            return BackupInfo(exists=False)
        return BackupInfo(exists=True, backup_date=backup.backup_date)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def clear_preferences(self) -> None:
        await self.delete(Constants.PREFERENCES_KEY)
        logger.info("User preferences cleared")

    async def clear_all(self) -> None:
        """Remove all user data. The backup snapshot and API key are kept."""
        with span("persistence_store.clear_all"):
            for key in (*_DATA_KEYS, Constants.LAST_SAVE_KEY):
                await self.delete(key)
            await self.clear_preferences()
            logger.info("All data cleared")

    async def has_existing_data(self) -> bool:
        for key in _DATA_KEYS:
            try:
                if await self.kv_store.exists(key):
                    return True
            except StorageError as e:
                logger.error("Failed to check key", extra={"key": key, "error": str(e)})
        return False

    async def last_save_date(self) -> datetime | None:
        result = await self.load_raw(Constants.LAST_SAVE_KEY, datetime)
        return result.value if result.is_valid else None

    async def validate_and_repair(self) -> ValidationReport:
        """Run the data health check over every validated key.

        Corrupt keys go through the normal recovery chain; valid keys are
        repaired in place. Returns per-kind issue counts.
        """
        with span("persistence_store.validate_and_repair"):
            now = self.clock()
            report = ValidationReport()

            checks: list[tuple[str, Any, Callable[[Any, datetime], ValidationOutcome[Any]], str]] = [
                (Constants.TASKS_KEY, list[Task], validator.validate_tasks, "task_issues"),
                (Constants.ARCHIVED_TASKS_KEY, list[Task], validator.validate_tasks, "archived_task_issues"),
                (Constants.STREAK_KEY, Streak, validator.validate_streak, "streak_issues"),
                (Constants.POINTS_KEY, UserPoints, validator.validate_points, "points_issues"),
            ]
            for key, value_type, validate, counter in checks:
                result = await self.load_raw(key, value_type)
                if result.status == LoadStatus.ABSENT:
                    continue
                if result.status == LoadStatus.CORRUPT:
                    setattr(report, counter, getattr(report, counter) + 1)
                    report.issues.append(f"{key}: stored data could not be decoded")
                    await self.load_with_validation(key)
                    continue

                outcome = validate(result.value, now)
                if outcome.changed:
                    setattr(report, counter, getattr(report, counter) + len(outcome.issues))
                    report.issues.extend(outcome.issues)
                    await self.save(key, outcome.value)

            if report.is_healthy:
                logger.info("Data validation passed")
            else:
                logger.warning("Data validation repaired issues", extra={"total_issues": report.total_issues})
            return report

    async def export_data_summary(self) -> str:
        """Plain-text summary of the stored data."""
        tasks = await self.load_raw(Constants.TASKS_KEY, list[Task])
        archived = await self.load_raw(Constants.ARCHIVED_TASKS_KEY, list[Task])
        streak_result = await self.load_raw(Constants.STREAK_KEY, Streak)
        points_result = await self.load_raw(Constants.POINTS_KEY, UserPoints)

        all_tasks = (tasks.value or []) + (archived.value or [])
        streak = streak_result.value if streak_result.is_valid else Streak()
        points = points_result.value if points_result.is_valid else UserPoints(last_reset_date=self.clock())
        completed = sum(1 for task in all_tasks if task.is_completed)
        last_save = await self.last_save_date()

        return "\n".join(
            [
                "Zenith Data Summary",
                "",
                f"Tasks: {completed}/{len(all_tasks)} completed",
                f"Streak: {streak.current_streak} days (best: {streak.best_streak})",
                f"Points: {points.total_points} total (Level {points.level})",
                f"Total days active: {streak.total_days_completed}",
                "",
                f"Last updated: {last_save.isoformat() if last_save else 'Never'}",
            ]
        )

    # ------------------------------------------------------------------
    # Preferences and credentials
    # ------------------------------------------------------------------

    async def load_preferences(self) -> UserPreferences:
        """Load preferences; absent or corrupt data yields defaults."""
        result = await self.load_raw(Constants.PREFERENCES_KEY, UserPreferences)
        if result.is_valid:
            return result.value
        if result.status == LoadStatus.CORRUPT:
            logger.warning("Stored preferences are corrupt, using defaults")
        return UserPreferences()

    async def save_preferences(self, preferences: UserPreferences) -> SaveResult:
        return await self.save(Constants.PREFERENCES_KEY, preferences)

    async def get_api_key(self) -> str | None:
        result = await self.load_raw(Constants.API_KEY_KEY, str)
        if not result.is_valid or not result.value:
            return None
        return result.value

    async def set_api_key(self, api_key: str | None) -> SaveResult:
        """Store the LLM API key. An empty key removes it."""
        if not api_key:
            await self.delete(Constants.API_KEY_KEY)
            return SaveResult(key=Constants.API_KEY_KEY, success=True)
        return await self.save(Constants.API_KEY_KEY, api_key)
