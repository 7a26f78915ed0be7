"""Points and level domain models."""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import Field

from zenith.core.clock import utc_now
from zenith.core.config import Constants
from zenith.domain.base import StoredModel


def level_for_points(total_points: int) -> int:
    """Level is derived from total points: one level per 100 points, starting at 1."""
    return max(total_points, 0) // Constants.POINTS_PER_LEVEL + 1


class PointTransaction(StoredModel):
    """A single award recorded in the point history."""

    id: UUID = Field(default_factory=uuid4, description="Unique transaction ID")
    points: int = Field(..., description="Points awarded")
    reason: str = Field(..., description="Why the points were awarded")
    date: datetime = Field(default_factory=utc_now, description="When the points were awarded")
    task_id: UUID | None = Field(default=None, description="Task that produced the award, if any")


class UserPoints(StoredModel):
    """Running point totals and history."""

    total_points: int = Field(default=0, description="Lifetime points")
    daily_points: int = Field(default=0, description="Points earned since last_reset_date's day")
    last_reset_date: datetime = Field(default_factory=utc_now, description="When daily points were last reset")
    level: int = Field(default=1, description="Derived level")
    point_history: list[PointTransaction] = Field(default_factory=list, description="Ordered award history")

    @property
    def points_for_next_level(self) -> int:
        return self.level * Constants.POINTS_PER_LEVEL

    @property
    def level_progress(self) -> float:
        """Fraction of the current level band already earned (0.0 to <1.0)."""
        points_in_level = self.total_points % Constants.POINTS_PER_LEVEL
        return points_in_level / Constants.POINTS_PER_LEVEL

    @property
    def recent_transactions(self) -> list[PointTransaction]:
        """Last transactions, newest first."""
        return list(reversed(self.point_history[-Constants.RECENT_TRANSACTIONS_LIMIT :]))

    def recompute_level(self) -> int:
        self.level = level_for_points(self.total_points)
        return self.level
