"""Task domain models and enums."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from pydantic import Field

from zenith.core.clock import utc_now
from zenith.domain.base import StoredModel


class TaskPriority(StrEnum):
    """Task priority; drives the points awarded on completion."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def point_value(self) -> int:
        return _PRIORITY_POINTS[self]


_PRIORITY_POINTS = {
    TaskPriority.LOW: 10,
    TaskPriority.MEDIUM: 25,
    TaskPriority.HIGH: 50,
    TaskPriority.CRITICAL: 100,
}


class TaskCategory(StrEnum):
    """Life area a task belongs to."""

    WORK = "Work"
    HEALTH = "Health"
    PERSONAL = "Personal"
    LEARNING = "Learning"
    SOCIAL = "Social"
    FINANCE = "Finance"
    OTHER = "Other"


class Task(StoredModel):
    """A single to-do item.

    Completed tasks live in the archived list; active tasks are incomplete.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique task ID")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    is_completed: bool = Field(default=False, description="Whether the task has been completed")
    created_date: datetime = Field(default_factory=utc_now, description="When the task was created")
    completed_date: datetime | None = Field(default=None, description="When the task was completed")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Priority level")
    category: TaskCategory = Field(default=TaskCategory.OTHER, description="Life area")
    points_earned: int = Field(default=0, description="Points earned on completion")
    experience_value: int = Field(default=0, description="Experience earned on completion")

    @property
    def potential_points(self) -> int:
        """Points this task is worth when completed."""
        return self.priority.point_value

    def mark_completed(self, now: datetime) -> None:
        self.is_completed = True
        self.completed_date = now
        self.points_earned = self.priority.point_value
        self.experience_value = self.priority.point_value // 2

    def mark_incomplete(self) -> None:
        self.is_completed = False
        self.completed_date = None
        self.points_earned = 0
        self.experience_value = 0
