"""Unit tests for the analytics service."""

from datetime import timedelta

import pytest

from tests.unit.conftest import NOW
from zenith.domain.task import Task, TaskCategory
from zenith.models.service_models import ProductivityTrend, StatTimeframe
from zenith.services.analytics_service import (
    StatsAggregator,
    calculate_category_stats,
    calculate_overall_score,
    calculate_radar_data,
    calculate_trends,
    detailed_category_analysis,
    generate_insights,
    summary_text,
    tasks_in_timeframe,
    weekly_progress,
)


def make_task(category, *, days_ago=0.0, completed=False, hours_to_complete=1.0, title="Task"):
    """Build a task created `days_ago` days before NOW, optionally completed."""
    created = NOW - timedelta(days=days_ago)
    task = Task(title=title, category=category, created_date=created)
    if completed:
        task.mark_completed(created + timedelta(hours=hours_to_complete))
    return task


@pytest.fixture
def sample_tasks():
    """Three work (2 done), two health (0 done), one learning (done) in the last week."""
    return [
        make_task(TaskCategory.WORK, days_ago=1, completed=True),
        make_task(TaskCategory.WORK, days_ago=2, completed=True),
        make_task(TaskCategory.WORK, days_ago=3),
        make_task(TaskCategory.HEALTH, days_ago=1),
        make_task(TaskCategory.HEALTH, days_ago=2),
        make_task(TaskCategory.LEARNING, days_ago=4, completed=True),
    ]


@pytest.mark.unit
class TestCategoryStats:
    """Tests for per-category statistics."""

    def test_stats_sorted_by_percentage(self, sample_tasks):
        stats = calculate_category_stats(sample_tasks, now=NOW)

        assert [stat.category for stat in stats] == [TaskCategory.LEARNING, TaskCategory.WORK, TaskCategory.HEALTH]
        work = stats[1]
        assert work.completed_tasks == 2
        assert work.total_tasks == 3
        assert work.display_percentage == 66

    def test_empty_categories_omitted(self, sample_tasks):
        stats = calculate_category_stats(sample_tasks, now=NOW)

        assert TaskCategory.FINANCE not in {stat.category for stat in stats}

    def test_timeframe_filters_by_created_date(self):
        tasks = [
            make_task(TaskCategory.WORK, days_ago=2),
            make_task(TaskCategory.WORK, days_ago=20),
            make_task(TaskCategory.WORK, days_ago=60),
        ]

        assert len(tasks_in_timeframe(tasks, timeframe=StatTimeframe.WEEK, now=NOW)) == 1
        assert len(tasks_in_timeframe(tasks, timeframe=StatTimeframe.MONTH, now=NOW)) == 2
        assert len(tasks_in_timeframe(tasks, timeframe=StatTimeframe.QUARTER, now=NOW)) == 3

    def test_equal_percentages_keep_category_order(self):
        tasks = [
            make_task(TaskCategory.SOCIAL, days_ago=1, completed=True),
            make_task(TaskCategory.WORK, days_ago=1, completed=True),
        ]

        stats = calculate_category_stats(tasks, now=NOW)

        assert [stat.category for stat in stats] == [TaskCategory.WORK, TaskCategory.SOCIAL]

    def test_radar_data_labels(self, sample_tasks):
        radar = calculate_radar_data(sample_tasks, now=NOW)

        assert radar[0].label == "Learning"
        assert radar[0].value == 1.0

    def test_overall_score_is_mean_of_categories(self, sample_tasks):
        score = calculate_overall_score(sample_tasks, now=NOW)

        assert score == pytest.approx((1.0 + 2 / 3 + 0.0) / 3)

    def test_overall_score_empty(self):
        assert calculate_overall_score([], now=NOW) == 0.0


@pytest.mark.unit
class TestTrendsAndInsights:
    """Tests for trends, insights, and summaries."""

    def test_trend_improving_over_threshold(self):
        tasks = [
            make_task(TaskCategory.HEALTH, days_ago=1, completed=True),
            make_task(TaskCategory.HEALTH, days_ago=2, completed=True),
            make_task(TaskCategory.HEALTH, days_ago=9, completed=True),
            make_task(TaskCategory.HEALTH, days_ago=10),
        ]

        trends = calculate_trends(tasks, now=NOW)

        assert len(trends) == 1
        assert trends[0].current_rate == 1.0
        assert trends[0].previous_rate == 0.5
        assert trends[0].is_improving

    def test_trend_small_change_not_improving(self):
        tasks = [
            make_task(TaskCategory.WORK, days_ago=1, completed=True),
            make_task(TaskCategory.WORK, days_ago=9, completed=True),
        ]

        trends = calculate_trends(tasks, now=NOW)

        assert trends[0].change == 0.0
        assert not trends[0].is_improving

    def test_insights_empty_state(self):
        assert generate_insights([], now=NOW) == ["Start completing tasks to see your growth patterns"]

    def test_insights_strongest_and_focus(self, sample_tasks):
        insights = generate_insights(sample_tasks, now=NOW)

        assert insights[0] == "Learning is your strongest area at 100% completion"
        assert "Focus on Health - you have room to grow in this area" in insights
        assert "Great balance! You're performing well across multiple areas" not in insights
        assert insights[-1] == "Every completed task is progress - keep building momentum"

    def test_insights_good_progress(self):
        tasks = [
            make_task(TaskCategory.WORK, days_ago=1, completed=True),
            make_task(TaskCategory.WORK, days_ago=2, completed=True),
            make_task(TaskCategory.WORK, days_ago=3, completed=True),
            make_task(TaskCategory.HEALTH, days_ago=1, completed=True),
            make_task(TaskCategory.HEALTH, days_ago=2),
        ]

        insights = generate_insights(tasks, now=NOW)

        assert insights[-1] == "Good progress! Small improvements will make a big difference"

    def test_insights_balance_and_excellent(self):
        tasks = [
            make_task(category, days_ago=1, completed=True)
            for category in (TaskCategory.WORK, TaskCategory.HEALTH, TaskCategory.PERSONAL)
        ]

        insights = generate_insights(tasks, now=NOW)

        assert "Great balance! You're performing well across multiple areas" in insights
        assert insights[-1] == "Excellent consistency! Keep up the amazing work"

    @pytest.mark.parametrize(
        ("score", "expected"),
        [
            (1.0, "Excellent performance at 100%"),
            (0.65, "Good progress at 65%"),
            (0.5, "Building momentum at 50%"),
            (0.2, "Getting started at 20%"),
            (0.0, "Ready to begin your journey"),
        ],
    )
    def test_summary_text(self, score, expected):
        assert summary_text(score) == expected


@pytest.mark.unit
class TestCategoryAnalysis:
    """Tests for weekly progress and the detailed analysis."""

    def test_weekly_progress_windows_are_past_weeks(self):
        tasks = [
            make_task(TaskCategory.WORK, days_ago=1, completed=True),
            make_task(TaskCategory.WORK, days_ago=2),
            make_task(TaskCategory.WORK, days_ago=10, completed=True),
            make_task(TaskCategory.HEALTH, days_ago=1, completed=True),
        ]

        progress = weekly_progress(TaskCategory.WORK, tasks, now=NOW)

        assert len(progress) == 8
        latest = progress[-1]
        assert latest.week_start == NOW - timedelta(days=7)
        assert latest.total_tasks == 2
        assert latest.completion_rate == 0.5
        assert progress[-2].completed_tasks == 1
        assert progress[0].week_start == NOW - timedelta(days=56)
        assert progress[0].total_tasks == 0

    def test_detailed_analysis(self):
        tasks = [
            make_task(TaskCategory.WORK, days_ago=0, completed=True, hours_to_complete=2, title="today"),
            make_task(TaskCategory.WORK, days_ago=1, completed=True, hours_to_complete=4),
            make_task(TaskCategory.WORK, days_ago=1, completed=True, hours_to_complete=6),
            make_task(TaskCategory.WORK, days_ago=3),
            make_task(TaskCategory.HEALTH, days_ago=0, completed=True),
        ]

        analysis = detailed_category_analysis(TaskCategory.WORK, tasks, now=NOW)

        assert analysis.total_tasks == 4
        assert analysis.completed_tasks == 3
        assert analysis.completion_rate == 0.75
        assert analysis.average_completion_seconds == pytest.approx(4 * 3600)
        # Today and yesterday completed, two days ago empty, three days ago open
        assert analysis.current_streak == 2
        assert analysis.last_activity == NOW
        assert analysis.best_day == (NOW - timedelta(days=1)).date()
        assert analysis.productivity_trend == ProductivityTrend.IMPROVING

    def test_detailed_analysis_empty_category(self):
        analysis = detailed_category_analysis(TaskCategory.FINANCE, [], now=NOW)

        assert analysis.total_tasks == 0
        assert analysis.completion_rate == 0.0
        assert analysis.current_streak == 0
        assert analysis.last_activity is None
        assert analysis.best_day is None
        assert analysis.productivity_trend == ProductivityTrend.STABLE

    def test_declining_trend(self):
        tasks = [
            make_task(TaskCategory.SOCIAL, days_ago=2),
            make_task(TaskCategory.SOCIAL, days_ago=9, completed=True),
        ]

        analysis = detailed_category_analysis(TaskCategory.SOCIAL, tasks, now=NOW)

        assert analysis.productivity_trend == ProductivityTrend.DECLINING


@pytest.mark.unit
class TestStatsAggregator:
    """Tests for the task-store backed aggregator."""

    async def test_reads_active_and_archived_tasks(self, task_store, clock):
        stats = StatsAggregator(task_store, clock=clock)
        done = await task_store.add_task(make_task(TaskCategory.WORK, days_ago=1))
        await task_store.add_task(make_task(TaskCategory.HEALTH, days_ago=1))
        await task_store.complete_task(done.id)

        assert stats.top_category() == TaskCategory.WORK
        assert stats.needs_improvement_category() == TaskCategory.HEALTH
        assert stats.overall_score() == 0.5
        assert stats.summary_text() == "Building momentum at 50%"
        assert len(stats.radar_data()) == 2
        assert len(stats.trends()) == 2
        assert stats.insights()[0] == "Work is your strongest area at 100% completion"
        assert len(stats.weekly_progress(TaskCategory.WORK)) == 8
        assert stats.detailed_category_analysis(TaskCategory.WORK).completed_tasks == 1

    def test_empty_store(self, task_store, clock):
        stats = StatsAggregator(task_store, clock=clock)

        assert stats.category_stats() == []
        assert stats.top_category() is None
        assert stats.needs_improvement_category() is None
        assert stats.summary_text() == "Ready to begin your journey"
