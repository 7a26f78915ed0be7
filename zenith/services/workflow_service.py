"""Workflow service for multi-engine task progress operations.

Each engine owns its own state. This service sequences the cross-engine side
effects of completing and un-completing tasks. The steps are not atomic: a
crash between them leaves an inconsistency that the validator repairs on the
next load.
"""

import logging
from uuid import UUID

from zenith.core.errors import TaskNotFoundError
from zenith.core.events import EngineEvent, EventHub
from zenith.core.logging import log_with_context, span
from zenith.domain.task import Task
from zenith.models.service_models import CompletionResult, ValidationReport
from zenith.services.persistence_store import PersistenceStore
from zenith.services.points_engine import PointsEngine
from zenith.services.streak_engine import StreakEngine
from zenith.services.task_store import TaskStore


logger = logging.getLogger(__name__)


class ProgressWorkflow:
    """Complete, un-complete, and delete tasks across the engines."""

    def __init__(
        self,
        *,
        persistence: PersistenceStore,
        task_store: TaskStore,
        points_engine: PointsEngine,
        streak_engine: StreakEngine,
        events: EventHub | None = None,
    ) -> None:
        self.persistence = persistence
        self.task_store = task_store
        self.points_engine = points_engine
        self.streak_engine = streak_engine
        self.events = events or EventHub()

    async def complete_task(self, task_id: UUID) -> CompletionResult:
        """Complete a task, award its points, and count the day for the streak.

        Raises:
            TaskNotFoundError: If the task is not active
        """
        with span("workflow.complete_task"):
            task = await self.task_store.complete_task(task_id)
            award = await self.points_engine.award_points_for_task(task)
            streak = await self.streak_engine.mark_today_completed(task.completed_date)

            logger.info(
                "Task completion workflow finished",
                extra={"task_id": str(task_id), "points": award.points, "level_up": award.level_up},
            )
            return CompletionResult(task=task, award=award, streak=streak, points=self.points_engine.points)

    async def unarchive_task(self, task_id: UUID) -> Task:
        """Reverse a completion: revoke points, undo the streak day, then move the task back.

        Points and streak are reversed first because both look at the still
        archived record.

        Raises:
            TaskNotFoundError: If the task is not archived
        """
        with span("workflow.unarchive_task"):
            archived = next((task for task in self.task_store.archived_tasks if task.id == task_id), None)
            if archived is None:
                raise TaskNotFoundError(str(task_id))

            await self.points_engine.revoke(task_id)
            if archived.completed_date is not None:
                await self.streak_engine.remove_completion(archived.completed_date)

            task = await self.task_store.unarchive_task(task_id)
            log_with_context(logger, "info", "Task unarchive workflow finished", task_id=str(task_id))
            return task

    async def delete_task(self, task_id: UUID) -> bool:
        """Delete an active task. Incomplete tasks carry no points or streak effects."""
        with span("workflow.delete_task"):
            return await self.task_store.delete_task(task_id)

    async def run_health_check(self) -> ValidationReport:
        """Validate and repair stored data, reload the engines, and refresh the backup."""
        with span("workflow.run_health_check"):
            report = await self.persistence.validate_and_repair()

            await self.task_store.load()
            await self.points_engine.load()
            await self.streak_engine.load()

            backed_up = await self.persistence.create_backup()
            if not report.is_healthy:
                self.events.emit(EngineEvent.DATA_REPAIRED, total_issues=report.total_issues)
            logger.info(
                "Health check finished",
                extra={"total_issues": report.total_issues, "backup_created": backed_up},
            )
            return report
