"""User preferences governing AI task generation."""

from datetime import datetime
from enum import StrEnum

from pydantic import Field

from zenith.core.clock import is_same_day
from zenith.core.config import Constants
from zenith.domain.base import StoredModel
from zenith.domain.task import TaskCategory


class TaskDifficulty(StrEnum):
    """How demanding generated tasks should be."""

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"
    EXPERT = "Expert"

    @property
    def description(self) -> str:
        return {
            TaskDifficulty.EASY: "Simple tasks that take 10-20 minutes",
            TaskDifficulty.MEDIUM: "Moderate tasks that take 30-45 minutes",
            TaskDifficulty.HARD: "Challenging tasks that take 1-2 hours",
            TaskDifficulty.EXPERT: "Complex tasks that may take several hours",
        }[self]


class TimeAvailability(StrEnum):
    """Daily time budget for generated tasks."""

    LIMITED = "Limited"
    MODERATE = "Moderate"
    FLEXIBLE = "Flexible"

    @property
    def description(self) -> str:
        return {
            TimeAvailability.LIMITED: "30 minutes or less per day",
            TimeAvailability.MODERATE: "1-2 hours per day",
            TimeAvailability.FLEXIBLE: "3+ hours per day",
        }[self]


class UserPreferences(StoredModel):
    """Generation settings plus the rolling prompt history."""

    preferred_categories: list[TaskCategory] = Field(
        default_factory=lambda: [TaskCategory.WORK, TaskCategory.HEALTH, TaskCategory.PERSONAL]
    )
    preferred_difficulty: TaskDifficulty = TaskDifficulty.MEDIUM
    daily_task_count: int = 3
    time_availability: TimeAvailability = TimeAvailability.MODERATE
    focus_areas: list[str] = Field(default_factory=lambda: ["Productivity", "Health", "Learning"])
    avoid_categories: list[TaskCategory] = Field(default_factory=list)
    last_generation_date: datetime | None = None
    generation_history: list[str] = Field(default_factory=list)

    include_routine_tasks: bool = True
    include_challenges: bool = False
    prefer_morning_tasks: bool = True
    max_task_duration: int = Field(default=60, description="Minutes")

    def should_generate_today(self, now: datetime) -> bool:
        """One generation per calendar day."""
        if self.last_generation_date is None:
            return True
        return not is_same_day(self.last_generation_date, now)

    def update_last_generation(self, now: datetime) -> None:
        self.last_generation_date = now

    def add_to_history(self, prompt: str) -> None:
        """Append a prompt, evicting the oldest beyond the history limit."""
        self.generation_history.append(prompt)
        overflow = len(self.generation_history) - Constants.GENERATION_HISTORY_LIMIT
        if overflow > 0:
            del self.generation_history[:overflow]

    @property
    def preferred_categories_string(self) -> str:
        return ", ".join(category.value for category in self.preferred_categories)
