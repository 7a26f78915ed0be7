"""Domain models and enums."""

from zenith.domain.backup import AppDataBackup
from zenith.domain.points import PointTransaction, UserPoints, level_for_points
from zenith.domain.preferences import TaskDifficulty, TimeAvailability, UserPreferences
from zenith.domain.streak import Streak
from zenith.domain.task import Task, TaskCategory, TaskPriority


__all__ = [
    "AppDataBackup",
    "PointTransaction",
    "Streak",
    "Task",
    "TaskCategory",
    "TaskDifficulty",
    "TaskPriority",
    "TimeAvailability",
    "UserPoints",
    "UserPreferences",
    "level_for_points",
]
