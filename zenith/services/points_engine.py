"""Points engine: owns point totals, the daily counter, level, and history.

Level is always derived from total points (one level per 100 points, starting
at 1) and is recomputed after every award or revocation.
"""

import logging
from uuid import UUID

from zenith.core.clock import Clock, is_same_day, utc_now
from zenith.core.config import Constants
from zenith.core.events import EngineEvent, EventHub
from zenith.core.logging import span
from zenith.domain.points import PointTransaction, UserPoints
from zenith.domain.task import Task
from zenith.models.service_models import AwardResult, SaveResult
from zenith.services.persistence_store import PersistenceStore


logger = logging.getLogger(__name__)


class PointsEngine:
    """Award and revoke points with write-through persistence."""

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
        self._points = UserPoints(last_reset_date=clock())
        self.last_save_result: SaveResult | None = None

    async def load(self) -> UserPoints:
        """Load validated points and apply the daily reset."""
        with span("points_engine.load"):
            self._points = await self.persistence.load_points_with_validation()
            await self.reset_daily_if_new_day()
            logger.info(
                "Loaded points",
                extra={"total_points": self._points.total_points, "level": self._points.level},
            )
            return self.points

    @property
    def points(self) -> UserPoints:
        """Snapshot of the current points record."""
        return self._points.model_copy(deep=True)

    @property
    def total_points(self) -> int:
        return self._points.total_points

    @property
    def daily_points(self) -> int:
        return self._points.daily_points

    @property
    def level(self) -> int:
        return self._points.level

    @property
    def level_progress(self) -> float:
        return self._points.level_progress

    @property
    def points_for_next_level(self) -> int:
        return self._points.points_for_next_level

    async def _save(self) -> SaveResult:
        self.last_save_result = await self.persistence.save(Constants.POINTS_KEY, self._points)
        if not self.last_save_result.success:
            logger.warning("Points save failed, keeping in-memory state")
        return self.last_save_result

    async def award(self, points: int, reason: str, task_id: UUID | None = None) -> AwardResult:
        """Add points, record the transaction, and recompute the level.

        Args:
            points: Points to award (negative values are treated as 0)
            reason: Human-readable reason stored with the transaction
            task_id: Task that produced the award, if any

        Returns:
            AwardResult describing the award and any level change
        """
        with span("points_engine.award"):
            amount = max(points, 0)
            old_level = self._points.level

            self._points.total_points += amount
            self._points.daily_points += amount
            self._points.point_history.append(
                PointTransaction(points=amount, reason=reason, date=self.clock(), task_id=task_id)
            )
            new_level = self._points.recompute_level()
            await self._save()

            result = AwardResult(points=amount, old_level=old_level, new_level=new_level)
            logger.info(
                "Awarded points",
                extra={"points": amount, "total_points": self._points.total_points, "level": new_level},
            )
            self.events.emit(
                EngineEvent.POINTS_AWARDED,
                points=amount,
                reason=reason,
                task_id=str(task_id) if task_id else None,
                total_points=self._points.total_points,
            )
            if result.level_up:
                self.events.emit(EngineEvent.LEVEL_UP, old_level=old_level, new_level=new_level)
            return result

    async def award_points_for_task(self, task: Task) -> AwardResult:
        return await self.award(task.potential_points, f"Completed: {task.title}", task.id)

    async def award_bonus_points(self, points: int, reason: str) -> AwardResult:
        return await self.award(points, reason)

    async def revoke(self, task_id: UUID) -> bool:
        """Reverse the first transaction recorded for a task.

        Daily points are only reduced when the transaction happened today.
        Totals never drop below zero and the level can go down.

        Returns:
            False (and logs) when no transaction exists for the task
        """
        with span("points_engine.revoke"):
            transaction = next((tx for tx in self._points.point_history if tx.task_id == task_id), None)
            if transaction is None:
                logger.warning("No point transaction found for task", extra={"task_id": str(task_id)})
                return False

            self._points.total_points = max(0, self._points.total_points - transaction.points)
            if is_same_day(transaction.date, self.clock()):
                self._points.daily_points = max(0, self._points.daily_points - transaction.points)

            self._points.point_history = [tx for tx in self._points.point_history if tx.id != transaction.id]
            self._points.recompute_level()
            await self._save()

            logger.info(
                "Revoked points",
                extra={"task_id": str(task_id), "points": transaction.points, "level": self._points.level},
            )
            self.events.emit(
                EngineEvent.POINTS_REVOKED,
                points=transaction.points,
                task_id=str(task_id),
                total_points=self._points.total_points,
            )
            return True

    async def revoke_points_for_task(self, task: Task) -> bool:
        return await self.revoke(task.id)

    async def reset_daily_if_new_day(self) -> bool:
        """Zero the daily counter the first time a new calendar day is seen.

        Returns:
            True if a reset happened
        """
        now = self.clock()
        if is_same_day(self._points.last_reset_date, now):
            return False

        self._points.daily_points = 0
        self._points.last_reset_date = now
        await self._save()
        logger.info("Reset daily points")
        return True

    async def reset(self) -> None:
        """Discard all points and history."""
        logger.info("Resetting points data")
        self._points = UserPoints(last_reset_date=self.clock())
        await self._save()
