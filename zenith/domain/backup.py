"""Full-state backup snapshot."""

from datetime import datetime

from pydantic import Field

from zenith.core.clock import utc_now
from zenith.domain.base import StoredModel
from zenith.domain.points import UserPoints
from zenith.domain.streak import Streak
from zenith.domain.task import Task


class AppDataBackup(StoredModel):
    """Snapshot of active tasks, streak, and points stored under one key."""

    tasks: list[Task] = Field(default_factory=list)
    streak: Streak = Field(default_factory=Streak)
    points: UserPoints = Field(default_factory=UserPoints)
    backup_date: datetime = Field(default_factory=utc_now)
