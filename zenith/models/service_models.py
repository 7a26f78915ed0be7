"""Pydantic models for service layer return types.

These models give the engines typed results at their boundaries instead of
bare tuples or silently swallowed failures.
"""

from datetime import date, datetime
from enum import StrEnum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from zenith.domain.points import UserPoints
from zenith.domain.streak import Streak
from zenith.domain.task import Task, TaskCategory


T = TypeVar("T")


class StatTimeframe(StrEnum):
    """Rolling window used to filter tasks for statistics."""

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"

    @property
    def days(self) -> int:
        return {StatTimeframe.WEEK: 7, StatTimeframe.MONTH: 30, StatTimeframe.QUARTER: 90}[self]


class CategoryStat(BaseModel):
    """Completion figures for one category within a timeframe."""

    category: TaskCategory
    completed_tasks: int
    total_tasks: int
    percentage: float

    @property
    def display_percentage(self) -> int:
        return int(self.percentage * 100)


class RadarDataPoint(BaseModel):
    """One axis of the radar chart."""

    category: TaskCategory
    value: float
    label: str


class CategoryTrend(BaseModel):
    """Change in completion rate between the current and previous window."""

    category: TaskCategory
    current_rate: float
    previous_rate: float
    change: float
    is_improving: bool


class WeeklyProgress(BaseModel):
    """Completion rate for one category during one week."""

    week_start: datetime
    total_tasks: int
    completed_tasks: int
    completion_rate: float


class ProductivityTrend(StrEnum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class DetailedCategoryAnalysis(BaseModel):
    """Deep dive into a single category."""

    category: TaskCategory
    total_tasks: int
    completed_tasks: int
    completion_rate: float
    average_completion_seconds: float
    current_streak: int
    productivity_trend: ProductivityTrend
    last_activity: datetime | None
    best_day: date | None


class LoadStatus(StrEnum):
    """What a raw load found under a key."""

    ABSENT = "absent"
    CORRUPT = "corrupt"
    VALID = "valid"


class LoadResult(BaseModel, Generic[T]):
    """Outcome of decoding a stored value without validation."""

    status: LoadStatus
    value: T | None = None
    error: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.status == LoadStatus.VALID


class SaveResult(BaseModel):
    """Outcome of a write. Failures are warnings, never exceptions."""

    key: str
    success: bool
    warning: str | None = None


class AwardResult(BaseModel):
    """Result of awarding points."""

    points: int
    old_level: int
    new_level: int

    @property
    def level_up(self) -> bool:
        return self.new_level > self.old_level


class ValidationReport(BaseModel):
    """Issue counts found by a data health check."""

    task_issues: int = 0
    archived_task_issues: int = 0
    streak_issues: int = 0
    points_issues: int = 0
    issues: list[str] = Field(default_factory=list)

    @property
    def total_issues(self) -> int:
        return self.task_issues + self.archived_task_issues + self.streak_issues + self.points_issues

    @property
    def is_healthy(self) -> bool:
        return self.total_issues == 0


class BackupInfo(BaseModel):
    exists: bool
    backup_date: datetime | None = None


class CompletionResult(BaseModel):
    """Everything that changed when a task was completed."""

    task: Task
    award: AwardResult
    streak: Streak
    points: UserPoints


class GenerationStatus(BaseModel):
    """Whether generation is possible right now, and when it last ran."""

    is_generating: bool
    can_generate_today: bool
    last_generation_date: datetime | None
    completion_rate: float
