"""Task store: owns the active and archived task lists.

Completing a task moves it to the archived list; unarchiving reverses the
completion and moves it back. Points and streak side effects are sequenced by
the caller (see workflow_service), never triggered from here.
"""

import logging
from datetime import datetime
from uuid import UUID

from zenith.core.clock import Clock, is_same_day, utc_now
from zenith.core.config import Constants
from zenith.core.errors import TaskNotFoundError
from zenith.core.events import EngineEvent, EventHub
from zenith.core.logging import span
from zenith.domain.task import Task
from zenith.models.service_models import SaveResult
from zenith.services.persistence_store import PersistenceStore


logger = logging.getLogger(__name__)


def _find_index(tasks: list[Task], task_id: UUID) -> int | None:
    for index, task in enumerate(tasks):
        if task.id == task_id:
            return index
    return None


class TaskStore:
    """Active/archived task lists with write-through persistence."""

    def __init__(
        self,
        persistence: PersistenceStore,
        *,
        events: EventHub | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.persistence = persistence
        self.events = events or EventHub()
        self.clock = clock
        self._tasks: list[Task] = []
        self._archived: list[Task] = []
        self.last_save_result: SaveResult | None = None

    async def load(self) -> None:
        """Populate both lists from validated storage."""
        with span("task_store.load"):
            self._tasks = await self.persistence.load_tasks_with_validation()
            self._archived = await self.persistence.load_archived_tasks_with_validation()
            logger.info(
                "Loaded tasks",
                extra={"active_count": len(self._tasks), "archived_count": len(self._archived)},
            )

    @property
    def tasks(self) -> list[Task]:
        """Snapshot of the active list."""
        return [task.model_copy() for task in self._tasks]

    @property
    def archived_tasks(self) -> list[Task]:
        """Snapshot of the archived list."""
        return [task.model_copy() for task in self._archived]

    def all_tasks(self) -> list[Task]:
        """Active followed by archived tasks."""
        return self.tasks + self.archived_tasks

    def get_task(self, task_id: UUID) -> Task | None:
        for task in (*self._tasks, *self._archived):
            if task.id == task_id:
                return task.model_copy()
        return None

    async def _save_active(self) -> SaveResult:
        result = await self.persistence.save(Constants.TASKS_KEY, self._tasks)
        return self._record(result)

    async def _save_archived(self) -> SaveResult:
        result = await self.persistence.save(Constants.ARCHIVED_TASKS_KEY, self._archived)
        return self._record(result)

    def _record(self, result: SaveResult) -> SaveResult:
        # Keep the first failure of an operation visible to the caller
        if not result.success:
            logger.warning("Task save failed, keeping in-memory state", extra={"key": result.key})
        if self.last_save_result is None or not result.success:
            self.last_save_result = result
        return result

    def _notify(self, operation: str, task_id: UUID) -> None:
        self.events.emit(EngineEvent.TASKS_UPDATED, operation=operation, task_id=str(task_id))

    async def add_task(self, task: Task) -> Task:
        """Append a task to the active list and persist it."""
        with span("task_store.add_task"):
            self.last_save_result = None
            stored = task.model_copy()
            self._tasks.append(stored)
            await self._save_active()
            logger.info("Added task", extra={"task_id": str(stored.id), "title": stored.title})
            self._notify("add", stored.id)
            return stored.model_copy()

    async def add_tasks(self, tasks: list[Task]) -> list[Task]:
        """Append several tasks with a single write."""
        with span("task_store.add_tasks"):
            self.last_save_result = None
            stored = [task.model_copy() for task in tasks]
            self._tasks.extend(stored)
            await self._save_active()
            for task in stored:
                self._notify("add", task.id)
            return [task.model_copy() for task in stored]

    async def update_task(self, task: Task) -> Task:
        """Replace an active task's fields, keeping its position.

        Raises:
            TaskNotFoundError: If the task is not in the active list
        """
        with span("task_store.update_task"):
            index = _find_index(self._tasks, task.id)
            if index is None:
                raise TaskNotFoundError(str(task.id))
            self.last_save_result = None
            self._tasks[index] = task.model_copy()
            await self._save_active()
            self._notify("update", task.id)
            return task.model_copy()

    async def complete_task(self, task_id: UUID) -> Task:
        """Mark an active task completed and move it to the archived list.

        Raises:
            TaskNotFoundError: If the task is not in the active list
        """
        with span("task_store.complete_task"):
            index = _find_index(self._tasks, task_id)
            if index is None:
                raise TaskNotFoundError(str(task_id))

            self.last_save_result = None
            task = self._tasks.pop(index)
            task.mark_completed(self.clock())
            self._archived.append(task)

            await self._save_active()
            await self._save_archived()

            logger.info(
                "Completed task",
                extra={"task_id": str(task_id), "priority": task.priority.value, "points": task.points_earned},
            )
            self._notify("complete", task_id)
            return task.model_copy()

    async def unarchive_task(self, task_id: UUID) -> Task:
        """Reverse a completion and move the task back to the active list.

        Raises:
            TaskNotFoundError: If the task is not in the archived list
        """
        with span("task_store.unarchive_task"):
            index = _find_index(self._archived, task_id)
            if index is None:
                raise TaskNotFoundError(str(task_id))

            self.last_save_result = None
            task = self._archived.pop(index)
            task.mark_incomplete()
            self._tasks.append(task)

            await self._save_archived()
            await self._save_active()

            logger.info("Unarchived task", extra={"task_id": str(task_id)})
            self._notify("unarchive", task_id)
            return task.model_copy()

    async def delete_task(self, task_id: UUID) -> bool:
        """Remove a task from the active list. Returns False if it was not there."""
        with span("task_store.delete_task"):
            index = _find_index(self._tasks, task_id)
            if index is None:
                logger.info("Delete ignored, task not active", extra={"task_id": str(task_id)})
                return False

            self.last_save_result = None
            self._tasks.pop(index)
            await self._save_active()
            self._notify("delete", task_id)
            return True

    def count_completed_on(self, day: datetime) -> int:
        """Completed tasks (active and archived) whose completion falls on day's calendar day."""
        return sum(
            1
            for task in (*self._tasks, *self._archived)
            if task.is_completed and task.completed_date is not None and is_same_day(task.completed_date, day)
        )

    def latest_completion_before(self, moment: datetime) -> datetime | None:
        """Latest completion date strictly before a moment, across both lists."""
        dates = [
            task.completed_date
            for task in (*self._tasks, *self._archived)
            if task.is_completed and task.completed_date is not None and task.completed_date < moment
        ]
        return max(dates, default=None)
