"""Self-healing validation for persisted gamification records.

Every function here is a pure transform: it takes a record and the current
time, and returns a ValidationOutcome holding either the untouched record or a
repaired copy plus a description of each repair. Nothing is raised for bad
data and nothing is persisted; the persistence store decides whether to write
the repaired value back.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from zenith.core.config import Constants
from zenith.domain.points import UserPoints, level_for_points
from zenith.domain.streak import Streak
from zenith.domain.task import Task


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ValidationOutcome(Generic[T]):
    """A validated value and the repairs applied to reach it."""

    value: T
    issues: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.issues)


def _log_issues(kind: str, issues: list[str]) -> None:
    for issue in issues:
        logger.warning("Repaired invalid %s data: %s", kind, issue, extra={"kind": kind})


def validate_task(task: Task, now: datetime) -> ValidationOutcome[Task]:
    """Check a task against its invariants and repair any violations.

    Args:
        task: Task to validate (not modified)
        now: Current time used to clamp future dates

    Returns:
        ValidationOutcome with the original task or a repaired copy
    """
    repaired = task.model_copy(deep=True)
    issues: list[str] = []
    label = str(task.id)

    if not repaired.title.strip():
        repaired.title = Constants.UNTITLED_TASK_TITLE
        issues.append(f"Task {label}: empty title replaced")

    if repaired.created_date > now:
        repaired.created_date = now
        issues.append(f"Task {label}: future creation date clamped")

    if repaired.is_completed and repaired.completed_date is None:
        repaired.completed_date = repaired.created_date
        issues.append(f"Task {label}: completed without a completion date")
    elif not repaired.is_completed and repaired.completed_date is not None:
        repaired.completed_date = None
        repaired.points_earned = 0
        issues.append(f"Task {label}: completion date on an incomplete task cleared")

    if repaired.completed_date is not None:
        if repaired.completed_date > now:
            repaired.completed_date = now
            issues.append(f"Task {label}: future completion date clamped")
        if repaired.completed_date < repaired.created_date:
            repaired.completed_date = repaired.created_date
            issues.append(f"Task {label}: completion date before creation date")

    if repaired.points_earned < 0:
        repaired.points_earned = 0
        issues.append(f"Task {label}: negative points earned")

    if repaired.experience_value < 0:
        repaired.experience_value = 0
        issues.append(f"Task {label}: negative experience value")

    if not issues:
        return ValidationOutcome(value=task)

    _log_issues("task", issues)
    return ValidationOutcome(value=repaired, issues=issues)


def validate_tasks(tasks: list[Task], now: datetime) -> ValidationOutcome[list[Task]]:
    """Validate every task in a list. Tasks are never dropped."""
    validated: list[Task] = []
    issues: list[str] = []
    for task in tasks:
        outcome = validate_task(task, now)
        validated.append(outcome.value)
        issues.extend(outcome.issues)

    if not issues:
        return ValidationOutcome(value=tasks)
    return ValidationOutcome(value=validated, issues=issues)


def validate_streak(streak: Streak, now: datetime) -> ValidationOutcome[Streak]:
    """Check a streak against its invariants and repair any violations."""
    repaired = streak.model_copy(deep=True)
    issues: list[str] = []

    if repaired.current_streak < 0:
        repaired.current_streak = 0
        issues.append("Streak: negative current streak")

    if repaired.total_days_completed < 0:
        repaired.total_days_completed = 0
        issues.append("Streak: negative total days completed")

    if repaired.last_completion_date is not None and repaired.last_completion_date > now:
        repaired.last_completion_date = None
        repaired.current_streak = 0
        issues.append("Streak: future last completion date cleared with current streak")

    if repaired.streak_start_date is not None and repaired.streak_start_date > now:
        repaired.streak_start_date = None
        issues.append("Streak: future start date cleared")

    if repaired.best_streak < repaired.current_streak:
        repaired.best_streak = repaired.current_streak
        issues.append("Streak: best streak raised to current streak")

    if not issues:
        return ValidationOutcome(value=streak)

    _log_issues("streak", issues)
    return ValidationOutcome(value=repaired, issues=issues)


def validate_points(points: UserPoints, now: datetime) -> ValidationOutcome[UserPoints]:
    """Check user points against their invariants and repair any violations."""
    repaired = points.model_copy(deep=True)
    issues: list[str] = []

    if repaired.total_points < 0:
        repaired.total_points = 0
        issues.append("Points: negative total points")

    if repaired.daily_points < 0:
        repaired.daily_points = 0
        issues.append("Points: negative daily points")

    if repaired.last_reset_date > now:
        repaired.last_reset_date = now
        issues.append("Points: future reset date clamped")

    kept = [tx for tx in repaired.point_history if tx.points >= 0 and tx.date <= now]
    dropped = len(repaired.point_history) - len(kept)
    if dropped:
        repaired.point_history = kept
        issues.append(f"Points: dropped {dropped} invalid transaction(s)")

    expected_level = level_for_points(repaired.total_points)
    if repaired.level != expected_level:
        repaired.level = expected_level
        issues.append(f"Points: level recomputed to {expected_level}")

    if not issues:
        return ValidationOutcome(value=points)

    _log_issues("points", issues)
    return ValidationOutcome(value=repaired, issues=issues)
