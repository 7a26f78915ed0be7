"""Analytics service for category statistics and growth insights.

This module provides functions for:
- Per-category completion rates within a rolling timeframe
- Radar chart data and an overall score
- Trends comparing the current window with the previous one
- Text insights and summaries built from fixed thresholds
- Weekly progress and a detailed per-category analysis

Key Concepts:
- Timeframe: a rolling window of 7, 30, or 90 days, matched against each
  task's created_date (not its completion date).
- Completion rate: completed tasks / tasks created in the window.
- Overall score: mean of the per-category completion rates; categories with
  no tasks in the window are left out.

All functions are pure snapshots over a task list. StatsAggregator re-reads
the task store on every call, so nothing is cached.
"""

import logging
from collections import Counter
from datetime import date, datetime, timedelta

from zenith.core.clock import Clock, calendar_day, days_ago, start_of_day, utc_now
from zenith.core.config import Constants
from zenith.core.logging import span
from zenith.domain.task import Task, TaskCategory
from zenith.models.service_models import (
    CategoryStat,
    CategoryTrend,
    DetailedCategoryAnalysis,
    ProductivityTrend,
    RadarDataPoint,
    StatTimeframe,
    WeeklyProgress,
)
from zenith.services.task_store import TaskStore


logger = logging.getLogger(__name__)


def _completion_rate(tasks: list[Task]) -> float:
    if not tasks:
        return 0.0
    return sum(1 for task in tasks if task.is_completed) / len(tasks)


def tasks_in_timeframe(tasks: list[Task], *, timeframe: StatTimeframe, now: datetime) -> list[Task]:
    """Tasks created within the last timeframe.days days."""
    start = days_ago(now, timeframe.days)
    return [task for task in tasks if task.created_date >= start]


def tasks_in_previous_timeframe(tasks: list[Task], *, timeframe: StatTimeframe, now: datetime) -> list[Task]:
    """Tasks created in the window of equal length immediately before the current one."""
    end = days_ago(now, timeframe.days)
    start = days_ago(now, timeframe.days * 2)
    return [task for task in tasks if start <= task.created_date < end]


def calculate_category_stats(
    tasks: list[Task],
    *,
    timeframe: StatTimeframe = StatTimeframe.WEEK,
    now: datetime,
) -> list[CategoryStat]:
    """Completion stats per category, best first. Empty categories are omitted."""
    window = tasks_in_timeframe(tasks, timeframe=timeframe, now=now)

    stats = []
    for category in TaskCategory:
        category_tasks = [task for task in window if task.category == category]
        if not category_tasks:
            continue
        completed = sum(1 for task in category_tasks if task.is_completed)
        stats.append(
            CategoryStat(
                category=category,
                completed_tasks=completed,
                total_tasks=len(category_tasks),
                percentage=completed / len(category_tasks),
            )
        )

    # Stable sort keeps enum order between equal percentages
    return sorted(stats, key=lambda stat: stat.percentage, reverse=True)


def calculate_radar_data(
    tasks: list[Task],
    *,
    timeframe: StatTimeframe = StatTimeframe.WEEK,
    now: datetime,
) -> list[RadarDataPoint]:
    return [
        RadarDataPoint(category=stat.category, value=stat.percentage, label=stat.category.value)
        for stat in calculate_category_stats(tasks, timeframe=timeframe, now=now)
    ]


def calculate_overall_score(
    tasks: list[Task],
    *,
    timeframe: StatTimeframe = StatTimeframe.WEEK,
    now: datetime,
) -> float:
    """Mean of per-category completion rates, 0.0 when there is nothing to score."""
    stats = calculate_category_stats(tasks, timeframe=timeframe, now=now)
    if not stats:
        return 0.0
    return sum(stat.percentage for stat in stats) / len(stats)


def calculate_trends(
    tasks: list[Task],
    *,
    timeframe: StatTimeframe = StatTimeframe.WEEK,
    now: datetime,
) -> list[CategoryTrend]:
    """Compare each category's rate in this window against the previous window.

    Categories with no tasks in either window are omitted. A category is
    improving when its rate rose by more than 10 percentage points.
    """
    current = tasks_in_timeframe(tasks, timeframe=timeframe, now=now)
    previous = tasks_in_previous_timeframe(tasks, timeframe=timeframe, now=now)

    trends = []
    for category in TaskCategory:
        current_tasks = [task for task in current if task.category == category]
        previous_tasks = [task for task in previous if task.category == category]
        if not current_tasks and not previous_tasks:
            continue

        current_rate = _completion_rate(current_tasks)
        previous_rate = _completion_rate(previous_tasks)
        change = current_rate - previous_rate
        trends.append(
            CategoryTrend(
                category=category,
                current_rate=current_rate,
                previous_rate=previous_rate,
                change=change,
                is_improving=change > Constants.TREND_IMPROVING_THRESHOLD,
            )
        )
    return trends


def generate_insights(
    tasks: list[Task],
    *,
    timeframe: StatTimeframe = StatTimeframe.WEEK,
    now: datetime,
) -> list[str]:
    """Human-readable insights from fixed thresholds.

    Order: strongest category, first struggling category, balance, and an
    overall-score message. With no data only the empty-state hint is returned.
    """
    with span("analytics_service.generate_insights"):
        stats = calculate_category_stats(tasks, timeframe=timeframe, now=now)
        if not stats:
            return ["Start completing tasks to see your growth patterns"]

        insights = []
        best = stats[0]
        insights.append(f"{best.category.value} is your strongest area at {best.display_percentage}% completion")

        struggling = [
            stat
            for stat in stats
            if stat.percentage < Constants.NEEDS_FOCUS_RATE and stat.total_tasks >= Constants.NEEDS_FOCUS_MIN_TASKS
        ]
        if struggling:
            insights.append(f"Focus on {struggling[0].category.value} - you have room to grow in this area")

        balanced = sum(1 for stat in stats if stat.percentage >= Constants.BALANCED_RATE)
        if balanced >= Constants.BALANCED_MIN_CATEGORIES:
            insights.append("Great balance! You're performing well across multiple areas")

        overall = sum(stat.percentage for stat in stats) / len(stats)
        if overall >= Constants.EXCELLENT_SCORE:
            insights.append("Excellent consistency! Keep up the amazing work")
        elif overall >= Constants.GOOD_SCORE:
            insights.append("Good progress! Small improvements will make a big difference")
        elif overall > 0:
            insights.append("Every completed task is progress - keep building momentum")

        return insights


def summary_text(score: float) -> str:
    """One-line summary for an overall score."""
    percentage = int(score * 100)
    if 0.8 <= score <= 1.0:  # noqa: PLR2004
        return f"Excellent performance at {percentage}%"
    if 0.6 <= score < 0.8:  # noqa: PLR2004
        return f"Good progress at {percentage}%"
    if 0.4 <= score < 0.6:  # noqa: PLR2004
        return f"Building momentum at {percentage}%"
    if 0.1 <= score < 0.4:  # noqa: PLR2004
        return f"Getting started at {percentage}%"
    return "Ready to begin your journey"


def weekly_progress(category: TaskCategory, tasks: list[Task], *, now: datetime) -> list[WeeklyProgress]:
    """Completion rate for a category over the last eight 7-day windows, oldest first."""
    progress = []
    for week in range(Constants.WEEKLY_PROGRESS_WEEKS):
        week_end = now - timedelta(days=7 * week)
        week_start = week_end - timedelta(days=7)
        week_tasks = [
            task for task in tasks if task.category == category and week_start <= task.created_date < week_end
        ]
        completed = sum(1 for task in week_tasks if task.is_completed)
        progress.append(
            WeeklyProgress(
                week_start=week_start,
                total_tasks=len(week_tasks),
                completed_tasks=completed,
                completion_rate=_completion_rate(week_tasks),
            )
        )
    progress.reverse()
    return progress


def _average_completion_seconds(tasks: list[Task]) -> float:
    durations = [
        (task.completed_date - task.created_date).total_seconds() for task in tasks if task.completed_date is not None
    ]
    if not durations:
        return 0.0
    return sum(durations) / len(durations)


def _category_streak(category_tasks: list[Task], now: datetime) -> int:
    """Consecutive days, counting back from today, with a completed task in the category.

    Days without any task in the category are skipped; a day with tasks but
    no completion ends the streak. Looks back at most 30 days.
    """
    by_day: dict[date, list[Task]] = {}
    for task in category_tasks:
        by_day.setdefault(calendar_day(task.created_date), []).append(task)

    streak = 0
    today = start_of_day(now)
    for offset in range(Constants.CATEGORY_STREAK_LOOKBACK_DAYS):
        day_tasks = by_day.get(calendar_day(today - timedelta(days=offset)), [])
        if any(task.is_completed for task in day_tasks):
            streak += 1
        elif day_tasks:
            break
    return streak


def _productivity_trend(
    category: TaskCategory, tasks: list[Task], *, timeframe: StatTimeframe, now: datetime
) -> ProductivityTrend:
    recent = [task for task in tasks_in_timeframe(tasks, timeframe=timeframe, now=now) if task.category == category]
    previous = [
        task for task in tasks_in_previous_timeframe(tasks, timeframe=timeframe, now=now) if task.category == category
    ]
    change = _completion_rate(recent) - _completion_rate(previous)
    if change > Constants.PRODUCTIVITY_TREND_THRESHOLD:
        return ProductivityTrend.IMPROVING
    if change < -Constants.PRODUCTIVITY_TREND_THRESHOLD:
        return ProductivityTrend.DECLINING
    return ProductivityTrend.STABLE


def _best_day(completed_tasks: list[Task]) -> date | None:
    """Calendar day with the most completed tasks (by creation day); earliest wins ties."""
    counts = Counter(calendar_day(task.created_date) for task in completed_tasks)
    if not counts:
        return None
    return max(sorted(counts), key=lambda day: counts[day])


def detailed_category_analysis(
    category: TaskCategory,
    tasks: list[Task],
    *,
    timeframe: StatTimeframe = StatTimeframe.WEEK,
    now: datetime,
) -> DetailedCategoryAnalysis:
    """Full analysis of one category across all tasks (not limited to the timeframe).

    The timeframe only drives the productivity trend.
    """
    with span("analytics_service.detailed_category_analysis"):
        category_tasks = [task for task in tasks if task.category == category]
        completed = [task for task in category_tasks if task.is_completed]

        return DetailedCategoryAnalysis(
            category=category,
            total_tasks=len(category_tasks),
            completed_tasks=len(completed),
            completion_rate=_completion_rate(category_tasks),
            average_completion_seconds=_average_completion_seconds(completed),
            current_streak=_category_streak(category_tasks, now),
            productivity_trend=_productivity_trend(category, tasks, timeframe=timeframe, now=now),
            last_activity=max((task.created_date for task in category_tasks), default=None),
            best_day=_best_day(completed),
        )


class StatsAggregator:
    """Read-side statistics over the task store's current snapshot."""

    def __init__(self, task_store: TaskStore, *, clock: Clock = utc_now) -> None:
        self.task_store = task_store
        self.clock = clock

    def _tasks(self) -> list[Task]:
        return self.task_store.all_tasks()

    def category_stats(self, timeframe: StatTimeframe = StatTimeframe.WEEK) -> list[CategoryStat]:
        return calculate_category_stats(self._tasks(), timeframe=timeframe, now=self.clock())

    def radar_data(self, timeframe: StatTimeframe = StatTimeframe.WEEK) -> list[RadarDataPoint]:
        return calculate_radar_data(self._tasks(), timeframe=timeframe, now=self.clock())

    def overall_score(self, timeframe: StatTimeframe = StatTimeframe.WEEK) -> float:
        return calculate_overall_score(self._tasks(), timeframe=timeframe, now=self.clock())

    def trends(self, timeframe: StatTimeframe = StatTimeframe.WEEK) -> list[CategoryTrend]:
        return calculate_trends(self._tasks(), timeframe=timeframe, now=self.clock())

    def insights(self, timeframe: StatTimeframe = StatTimeframe.WEEK) -> list[str]:
        return generate_insights(self._tasks(), timeframe=timeframe, now=self.clock())

    def summary_text(self, timeframe: StatTimeframe = StatTimeframe.WEEK) -> str:
        score = self.overall_score(timeframe)
        logger.debug("Computed overall score", extra={"timeframe": timeframe.value, "score": score})
        return summary_text(score)

    def top_category(self, timeframe: StatTimeframe = StatTimeframe.WEEK) -> TaskCategory | None:
        stats = self.category_stats(timeframe)
        return stats[0].category if stats else None

    def needs_improvement_category(self, timeframe: StatTimeframe = StatTimeframe.WEEK) -> TaskCategory | None:
        """Lowest-rate category in the timeframe."""
        stats = self.category_stats(timeframe)
        return stats[-1].category if stats else None

    def weekly_progress(self, category: TaskCategory) -> list[WeeklyProgress]:
        return weekly_progress(category, self._tasks(), now=self.clock())

    def detailed_category_analysis(
        self, category: TaskCategory, timeframe: StatTimeframe = StatTimeframe.WEEK
    ) -> DetailedCategoryAnalysis:
        return detailed_category_analysis(category, self._tasks(), timeframe=timeframe, now=self.clock())
