"""Change-notification hub for the presentation layer.

Engines emit plain events after a state change; listeners register callbacks.
The engines never read anything back from listeners.
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from enum import StrEnum
from typing import Any


logger = logging.getLogger(__name__)


class EngineEvent(StrEnum):
    """Events emitted by the engines."""

    TASKS_UPDATED = "tasks_updated"
    POINTS_AWARDED = "points_awarded"
    POINTS_REVOKED = "points_revoked"
    LEVEL_UP = "level_up"
    STREAK_UPDATED = "streak_updated"
    TASKS_GENERATED = "tasks_generated"
    DATA_REPAIRED = "data_repaired"


EventCallback = Callable[[EngineEvent, dict[str, Any]], None]


class EventHub:
    """Callback registry keyed by event."""

    def __init__(self) -> None:
        self._listeners: dict[EngineEvent, list[EventCallback]] = defaultdict(list)

    def subscribe(self, event: EngineEvent, callback: EventCallback) -> None:
        """Register a callback for an event."""
        self._listeners[event].append(callback)

    def unsubscribe(self, event: EngineEvent, callback: EventCallback) -> None:
        """Remove a previously registered callback. Unknown callbacks are ignored."""
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)

    def emit(self, event: EngineEvent, **payload: Any) -> None:  # noqa: ANN401
        """Deliver an event to every listener.

        A failing listener is logged and skipped; the emitting operation has
        already completed its state change.
        """
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(event, payload)
            except Exception:
                logger.exception("Event listener failed", extra={"event": event.value})

    def listener_count(self, event: EngineEvent) -> int:
        return len(self._listeners.get(event, []))
