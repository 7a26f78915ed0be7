"""Unit tests for PointsEngine."""

from datetime import timedelta
from uuid import uuid4

import pytest

from tests.unit.conftest import NOW
from zenith.core.config import Constants
from zenith.core.events import EngineEvent
from zenith.domain.points import UserPoints
from zenith.domain.task import Task, TaskPriority


@pytest.mark.unit
class TestAward:
    """Tests for awarding points."""

    async def test_two_awards_reach_level_two(self, points_engine, events):
        """Test that 50 + 50 points crosses the first level boundary."""
        level_ups = []
        events.subscribe(EngineEvent.LEVEL_UP, lambda event, payload: level_ups.append(payload))

        first = await points_engine.award(50, "first")
        second = await points_engine.award(50, "second")

        assert first.level_up is False
        assert second.level_up is True
        assert points_engine.total_points == 100
        assert points_engine.daily_points == 100
        assert points_engine.level == 2
        assert level_ups == [{"old_level": 1, "new_level": 2}]

    async def test_two_high_priority_tasks_reach_level_two(self, points_engine):
        first = Task(title="First", created_date=NOW, priority=TaskPriority.HIGH)
        second = Task(title="Second", created_date=NOW, priority=TaskPriority.HIGH)

        await points_engine.award_points_for_task(first)
        assert (points_engine.total_points, points_engine.level) == (50, 1)

        result = await points_engine.award_points_for_task(second)
        assert (points_engine.total_points, points_engine.level) == (100, 2)
        assert result.level_up

    async def test_negative_award_clamped(self, points_engine):
        result = await points_engine.award(-20, "oops")

        assert result.points == 0
        assert points_engine.total_points == 0

    async def test_award_for_task_uses_priority(self, points_engine):
        task = Task(title="Ship release", created_date=NOW, priority=TaskPriority.CRITICAL)

        result = await points_engine.award_points_for_task(task)

        assert result.points == 100
        transaction = points_engine.points.point_history[-1]
        assert transaction.reason == "Completed: Ship release"
        assert transaction.task_id == task.id

    async def test_bonus_points_have_no_task(self, points_engine):
        await points_engine.award_bonus_points(15, "Streak bonus")

        assert points_engine.points.point_history[-1].task_id is None

    async def test_award_is_persisted(self, points_engine, persistence):
        await points_engine.award(30, "saved")

        stored = await persistence.load_points_with_validation()
        assert stored.total_points == 30

    async def test_level_progress(self, points_engine):
        await points_engine.award(150, "big")

        assert points_engine.level == 2
        assert points_engine.level_progress == 0.5
        assert points_engine.points_for_next_level == 200


@pytest.mark.unit
class TestRevoke:
    """Tests for revoking points."""

    async def test_revoke_restores_totals_and_level(self, points_engine):
        task_id = uuid4()
        await points_engine.award(60, "other")
        await points_engine.award(50, "task", task_id)
        assert points_engine.level == 2

        assert await points_engine.revoke(task_id) is True

        assert points_engine.total_points == 60
        assert points_engine.daily_points == 60
        assert points_engine.level == 1
        assert all(tx.task_id != task_id for tx in points_engine.points.point_history)

    async def test_revoke_unknown_task(self, points_engine):
        assert await points_engine.revoke(uuid4()) is False

    async def test_revoke_only_first_transaction(self, points_engine):
        task_id = uuid4()
        await points_engine.award(10, "a", task_id)
        await points_engine.award(10, "b", task_id)

        await points_engine.revoke(task_id)

        history = points_engine.points.point_history
        assert [tx.reason for tx in history] == ["b"]
        assert points_engine.total_points == 10

    async def test_revoke_older_award_keeps_daily(self, points_engine, clock):
        """Test that revoking yesterday's award leaves today's daily points alone."""
        task_id = uuid4()
        await points_engine.award(25, "yesterday", task_id)
        clock.advance(days=1)
        await points_engine.reset_daily_if_new_day()
        await points_engine.award(10, "today")

        await points_engine.revoke(task_id)

        assert points_engine.daily_points == 10
        assert points_engine.total_points == 10

    async def test_revoke_never_goes_negative(self, points_engine):
        task_id = uuid4()
        await points_engine.award(40, "task", task_id)
        points_engine._points.total_points = 10

        await points_engine.revoke(task_id)

        assert points_engine.total_points == 0
        assert points_engine.level == 1


@pytest.mark.unit
class TestDailyReset:
    """Tests for the daily reset."""

    async def test_no_reset_same_day(self, points_engine, clock):
        await points_engine.award(20, "morning")
        clock.advance(hours=6)

        assert await points_engine.reset_daily_if_new_day() is False
        assert points_engine.daily_points == 20

    async def test_reset_on_new_day(self, points_engine, clock):
        await points_engine.award(20, "yesterday")
        clock.advance(days=1)

        assert await points_engine.reset_daily_if_new_day() is True
        assert points_engine.daily_points == 0
        assert points_engine.total_points == 20

    async def test_load_applies_reset(self, points_engine, persistence):
        await persistence.save(
            Constants.POINTS_KEY,
            UserPoints(total_points=80, daily_points=30, last_reset_date=NOW - timedelta(days=2)),
        )

        points = await points_engine.load()

        assert points.total_points == 80
        assert points.daily_points == 0
        assert points.last_reset_date == NOW

    async def test_reset_clears_everything(self, points_engine):
        await points_engine.award(250, "lots")

        await points_engine.reset()

        assert points_engine.total_points == 0
        assert points_engine.level == 1
        assert points_engine.points.point_history == []
