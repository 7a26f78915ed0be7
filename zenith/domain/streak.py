"""Streak domain model."""

from datetime import datetime

from pydantic import Field

from zenith.core.clock import days_between, is_same_day
from zenith.domain.base import StoredModel


class Streak(StoredModel):
    """Consecutive calendar days with at least one completed task."""

    current_streak: int = Field(default=0, description="Current run of consecutive days")
    best_streak: int = Field(default=0, description="Longest run ever recorded")
    last_completion_date: datetime | None = Field(default=None, description="Most recent counted completion")
    total_days_completed: int = Field(default=0, description="Days with at least one completion")
    streak_start_date: datetime | None = Field(default=None, description="First day of the current run")

    def is_active(self, now: datetime) -> bool:
        """True when the last completion was today or yesterday."""
        if self.last_completion_date is None:
            return False
        return days_between(self.last_completion_date, now) <= 1

    def is_today_completed(self, now: datetime) -> bool:
        if self.last_completion_date is None:
            return False
        return is_same_day(self.last_completion_date, now)

    def days_since_last_completion(self, now: datetime) -> int:
        """Calendar days since the last completion, or -1 if there has never been one."""
        if self.last_completion_date is None:
            return -1
        return days_between(self.last_completion_date, now)

    @property
    def status_message(self) -> str:
        if self.current_streak == 0:
            return "Start your streak today!"
        if self.current_streak == 1:
            return "Great start! Keep it going tomorrow."
        if self.current_streak >= 7:  # noqa: PLR2004
            return "Incredible! You're on a week-long streak!"
        if self.current_streak >= 3:  # noqa: PLR2004
            return "Amazing momentum! You're building a solid habit!"
        return "Great progress! Keep the momentum going!"
