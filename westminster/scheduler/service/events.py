"""Event system for the chime scheduler.

Emits events for scheduler lifecycle changes, chimes and countdown ticks.
"""
from typing import Any, Callable

from loguru import logger

from ..schedule import now_ms
from ..types import SchedulerEvent

logger = logger.bind(module="scheduler.events")


# Type alias for event handlers
EventHandler = Callable[[SchedulerEvent], None]


class EventEmitter:
    """Event emitter for scheduler events."""

    def __init__(self):
        self._handlers: list[EventHandler] = []

    def add_handler(self, handler: EventHandler) -> None:
        """Add an event handler."""
        self._handlers.append(handler)

    def remove_handler(self, handler: EventHandler) -> None:
        """Remove an event handler."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    def emit(self, event: SchedulerEvent) -> None:
        """Emit an event to all handlers."""
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler error: {e}")


def emit_event(
    emitter: EventEmitter,
    event_type: str,
    payload: dict[str, Any] | None = None,
) -> None:
    """Emit a scheduler event.

    Args:
        emitter: Event emitter instance
        event_type: Type of event (e.g., "chime.fired", "countdown.tick")
        payload: Additional event payload
    """
    event = SchedulerEvent(
        type=event_type,
        timestamp_ms=now_ms(),
        payload=payload or {},
    )
    emitter.emit(event)


# Event type constants
class EventTypes:
    """Constants for event types."""

    # Scheduler lifecycle
    SCHEDULER_STARTED = "scheduler.started"
    SCHEDULER_STOPPED = "scheduler.stopped"
    SCHEDULER_ERROR = "scheduler.error"
    CONFIG_UPDATED = "config.updated"

    # Chimes
    CHIME_ARMED = "chime.armed"
    CHIME_FIRED = "chime.fired"
    CHIME_SKIPPED = "chime.skipped"

    # Countdown
    COUNTDOWN_TICK = "countdown.tick"
