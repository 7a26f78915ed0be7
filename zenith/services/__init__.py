from zenith.services import (
    analytics_service,
    persistence_store,
    points_engine,
    streak_engine,
    task_generation_service,
    task_store,
    validator,
    workflow_service,
)


__all__ = [
    "analytics_service",
    "persistence_store",
    "points_engine",
    "streak_engine",
    "task_generation_service",
    "task_store",
    "validator",
    "workflow_service",
]
