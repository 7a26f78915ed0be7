"""Unit tests for the record validator."""

from datetime import UTC, datetime, timedelta

import pytest

from zenith.domain.points import PointTransaction, UserPoints
from zenith.domain.streak import Streak
from zenith.domain.task import Task, TaskPriority
from zenith.services.validator import validate_points, validate_streak, validate_task, validate_tasks


NOW = datetime(2025, 9, 10, 12, 0, tzinfo=UTC)


@pytest.mark.unit
class TestValidateTask:
    """Tests for validate_task."""

    def test_valid_task_passes_unchanged(self):
        """Test that a valid task is returned as the same object."""
        task = Task(title="Write report", created_date=NOW - timedelta(hours=2))

        outcome = validate_task(task, NOW)

        assert outcome.value is task
        assert outcome.changed is False
        assert outcome.issues == []

    def test_completed_without_date_gets_created_date(self):
        """Test that a completed task missing completed_date takes its created_date."""
        created = NOW - timedelta(days=1)
        task = Task(title="Run", is_completed=True, created_date=created)

        outcome = validate_task(task, NOW)

        assert outcome.changed is True
        assert outcome.value.completed_date == created
        assert outcome.value.is_completed is True

    def test_does_not_modify_input(self):
        """Test that repairs happen on a copy."""
        task = Task(title="", created_date=NOW - timedelta(hours=1))

        outcome = validate_task(task, NOW)

        assert outcome.value.title == "Untitled Task"
        assert task.title == ""

    def test_whitespace_title_replaced(self):
        task = Task(title="   ", created_date=NOW)

        assert validate_task(task, NOW).value.title == "Untitled Task"

    def test_future_created_date_clamped(self):
        task = Task(title="Later", created_date=NOW + timedelta(days=3))

        outcome = validate_task(task, NOW)

        assert outcome.value.created_date == NOW

    def test_future_completed_date_clamped(self):
        task = Task(
            title="Done",
            is_completed=True,
            created_date=NOW - timedelta(days=1),
            completed_date=NOW + timedelta(hours=5),
        )

        outcome = validate_task(task, NOW)

        assert outcome.value.completed_date == NOW

    def test_completed_before_created_is_raised_to_created(self):
        created = NOW - timedelta(hours=2)
        task = Task(
            title="Backwards",
            is_completed=True,
            created_date=created,
            completed_date=created - timedelta(hours=3),
        )

        outcome = validate_task(task, NOW)

        assert outcome.value.completed_date == created

    def test_incomplete_with_date_is_cleared(self):
        """Test that an incomplete task loses its completion date and points."""
        task = Task(
            title="Half",
            created_date=NOW - timedelta(days=1),
            completed_date=NOW - timedelta(hours=1),
            points_earned=25,
        )

        outcome = validate_task(task, NOW)

        assert outcome.value.completed_date is None
        assert outcome.value.points_earned == 0

    def test_negative_numbers_clamped(self):
        task = Task(title="Neg", created_date=NOW, points_earned=-5, experience_value=-2)

        outcome = validate_task(task, NOW)

        assert outcome.value.points_earned == 0
        assert outcome.value.experience_value == 0
        assert len(outcome.issues) == 2

    def test_validate_tasks_never_drops(self):
        """Test that list validation repairs but keeps every task."""
        tasks = [
            Task(title="", created_date=NOW),
            Task(title="Fine", created_date=NOW, priority=TaskPriority.HIGH),
        ]

        outcome = validate_tasks(tasks, NOW)

        assert len(outcome.value) == 2
        assert outcome.value[0].title == "Untitled Task"
        assert outcome.value[1] is tasks[1]
        assert outcome.changed is True


@pytest.mark.unit
class TestValidateStreak:
    """Tests for validate_streak."""

    def test_best_raised_to_current(self):
        streak = Streak(current_streak=6, best_streak=4, last_completion_date=NOW)

        outcome = validate_streak(streak, NOW)

        assert outcome.value.best_streak == 6

    def test_future_last_completion_clears_current(self):
        """Test that a future last completion date is cleared along with the current streak."""
        streak = Streak(current_streak=3, best_streak=5, last_completion_date=NOW + timedelta(days=2))

        outcome = validate_streak(streak, NOW)

        assert outcome.value.last_completion_date is None
        assert outcome.value.current_streak == 0
        assert outcome.value.best_streak == 5

    def test_future_start_date_cleared(self):
        streak = Streak(current_streak=1, best_streak=1, last_completion_date=NOW, streak_start_date=NOW + timedelta(1))

        outcome = validate_streak(streak, NOW)

        assert outcome.value.streak_start_date is None
        assert outcome.value.current_streak == 1

    def test_negative_counters_clamped(self):
        streak = Streak(current_streak=-2, best_streak=0, total_days_completed=-1)

        outcome = validate_streak(streak, NOW)

        assert outcome.value.current_streak == 0
        assert outcome.value.total_days_completed == 0

    def test_valid_streak_unchanged(self):
        streak = Streak(current_streak=2, best_streak=5, last_completion_date=NOW - timedelta(days=1))

        outcome = validate_streak(streak, NOW)

        assert outcome.value is streak
        assert not outcome.changed


@pytest.mark.unit
class TestValidatePoints:
    """Tests for validate_points."""

    def test_level_recomputed_from_total(self):
        points = UserPoints(total_points=250, level=1, last_reset_date=NOW)

        outcome = validate_points(points, NOW)

        assert outcome.value.level == 3

    def test_negative_totals_clamped_and_level_reset(self):
        points = UserPoints(total_points=-40, daily_points=-3, level=4, last_reset_date=NOW)

        outcome = validate_points(points, NOW)

        assert outcome.value.total_points == 0
        assert outcome.value.daily_points == 0
        assert outcome.value.level == 1

    def test_future_reset_date_clamped(self):
        points = UserPoints(last_reset_date=NOW + timedelta(days=1))

        outcome = validate_points(points, NOW)

        assert outcome.value.last_reset_date == NOW

    def test_invalid_transactions_dropped(self):
        """Test that negative or future transactions are removed from history."""
        good = PointTransaction(points=10, reason="ok", date=NOW - timedelta(hours=1))
        negative = PointTransaction(points=-10, reason="bad", date=NOW - timedelta(hours=1))
        future = PointTransaction(points=10, reason="later", date=NOW + timedelta(days=1))
        points = UserPoints(total_points=10, last_reset_date=NOW, point_history=[good, negative, future])

        outcome = validate_points(points, NOW)

        assert [tx.id for tx in outcome.value.point_history] == [good.id]

    def test_valid_points_unchanged(self):
        points = UserPoints(total_points=150, level=2, last_reset_date=NOW)

        outcome = validate_points(points, NOW)

        assert outcome.value is points
        assert not outcome.changed
