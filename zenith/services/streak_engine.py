"""Streak engine: consecutive calendar days with at least one completion.

State machine over (current_streak, last_completion_date):

- no_streak: current_streak is 0
- active: current_streak >= 1 and the last completion was today or yesterday
- lapsed_pending_reset: current_streak >= 1 but more than one day has passed

The lapsed state only exists between sessions. load() reconciles it once,
before anything reads the streak.
"""

import logging
from datetime import datetime
from enum import StrEnum

from zenith.core.clock import Clock, days_between, is_same_day, utc_now
from zenith.core.config import Constants
from zenith.core.events import EngineEvent, EventHub
from zenith.core.logging import span
from zenith.domain.streak import Streak
from zenith.models.service_models import SaveResult
from zenith.services.persistence_store import PersistenceStore
from zenith.services.task_store import TaskStore


logger = logging.getLogger(__name__)


class StreakState(StrEnum):
    NO_STREAK = "no_streak"
    ACTIVE = "active"
    LAPSED_PENDING_RESET = "lapsed_pending_reset"


class StreakEngine:
    """Increment, decrement, and reset the streak with write-through persistence."""

    def __init__(
        self,
        persistence: PersistenceStore,
        task_store: TaskStore,
        *,
        events: EventHub | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.persistence = persistence
        self.task_store = task_store
        self.events = events or EventHub()
        self.clock = clock
        self._streak = Streak()
        self._reconciled = False
        self.last_save_result: SaveResult | None = None

    async def load(self) -> Streak:
        """Load the validated streak and reconcile a lapsed streak once per session."""
        with span("streak_engine.load"):
            self._streak = await self.persistence.load_streak_with_validation()
            if not self._reconciled:
                await self.check_and_reset_if_needed()
                self._reconciled = True
            logger.info(
                "Loaded streak",
                extra={"current_streak": self._streak.current_streak, "best_streak": self._streak.best_streak},
            )
            return self.streak

    @property
    def streak(self) -> Streak:
        """Snapshot of the current streak."""
        return self._streak.model_copy()

    async def _save(self) -> SaveResult:
        self.last_save_result = await self.persistence.save(Constants.STREAK_KEY, self._streak)
        if not self.last_save_result.success:
            logger.warning("Streak save failed, keeping in-memory state")
        self.events.emit(
            EngineEvent.STREAK_UPDATED,
            current_streak=self._streak.current_streak,
            best_streak=self._streak.best_streak,
        )
        return self.last_save_result

    async def mark_today_completed(self, date: datetime | None = None) -> Streak:
        """Count a completion day. At most one increment per calendar day.

        Completions dated before the last counted day are ignored.

        Args:
            date: Completion moment, defaults to now

        Returns:
            Snapshot of the updated streak
        """
        with span("streak_engine.mark_today_completed"):
            moment = date or self.clock()
            streak = self._streak

            if streak.last_completion_date is not None and is_same_day(streak.last_completion_date, moment):
                logger.debug("Day already counted for streak")
                return self.streak

            if streak.last_completion_date is None:
                streak.current_streak = 1
                streak.streak_start_date = moment
            else:
                gap = days_between(streak.last_completion_date, moment)
                if gap < 0:
                    logger.debug("Ignoring completion earlier than the last counted day")
                    return self.streak
                if gap == 1:
                    streak.current_streak += 1
                else:
                    streak.current_streak = 1
                    streak.streak_start_date = moment

            streak.last_completion_date = moment
            streak.total_days_completed += 1
            streak.best_streak = max(streak.best_streak, streak.current_streak)

            await self._save()
            logger.info("Streak updated", extra={"current_streak": streak.current_streak})
            return self.streak

    async def remove_completion(self, date: datetime) -> Streak:
        """Undo a completion day when the removed task was its only completion.

        Must run while the un-completed task is still archived, so the count
        for the day still includes it.

        Args:
            date: Completion moment of the task being un-completed

        Returns:
            Snapshot of the updated streak
        """
        with span("streak_engine.remove_completion"):
            completed_that_day = self.task_store.count_completed_on(date)
            if completed_that_day > 1:
                logger.debug(
                    "Day still covered by another completion",
                    extra={"completed_that_day": completed_that_day},
                )
                return self.streak

            streak = self._streak
            streak.current_streak = max(0, streak.current_streak - 1)
            streak.total_days_completed = max(0, streak.total_days_completed - 1)

            if streak.current_streak == 0:
                streak.last_completion_date = None
                streak.streak_start_date = None
            else:
                streak.last_completion_date = self.task_store.latest_completion_before(date)

            await self._save()
            logger.info("Streak decremented", extra={"current_streak": streak.current_streak})
            return self.streak

    async def check_and_reset_if_needed(self) -> bool:
        """Reset a streak whose last completion is more than one calendar day old.

        Returns:
            True if the streak was reset
        """
        now = self.clock()
        if self._streak.is_active(now) or self._streak.current_streak == 0:
            return False

        logger.info(
            "Streak lapsed, resetting",
            extra={"days_since": self._streak.days_since_last_completion(now)},
        )
        self._streak.current_streak = 0
        self._streak.streak_start_date = None
        await self._save()
        return True

    @property
    def current_streak(self) -> int:
        return self._streak.current_streak

    @property
    def best_streak(self) -> int:
        return self._streak.best_streak

    @property
    def has_active_streak(self) -> bool:
        return self._streak.current_streak > 0 and self._streak.is_active(self.clock())

    @property
    def is_today_completed(self) -> bool:
        return self._streak.is_today_completed(self.clock())

    @property
    def days_since_last_completion(self) -> int:
        return self._streak.days_since_last_completion(self.clock())

    @property
    def status_message(self) -> str:
        return self._streak.status_message

    @property
    def state(self) -> StreakState:
        if self._streak.current_streak == 0:
            return StreakState.NO_STREAK
        if self._streak.is_active(self.clock()):
            return StreakState.ACTIVE
        return StreakState.LAPSED_PENDING_RESET

    async def reset(self) -> None:
        logger.info("Resetting streak data")
        self._streak = Streak()
        await self._save()
