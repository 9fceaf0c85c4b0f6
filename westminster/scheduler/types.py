"""Core type definitions for the chime scheduler.

This module defines:
- Chime configuration (interval + lead time) and its validation
- Computed targets and countdown snapshots
- Status/event types consumed by the presentation layer
- Error types raised by target computation and timer arming
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


# ============== Configuration ==============

ALLOWED_INTERVALS = (15, 30, 60)
MAX_LEAD_SECONDS = 120

DEFAULT_INTERVAL_MINUTES = 15
DEFAULT_LEAD_SECONDS = 20


def _lead_seconds_options() -> list[int]:
    options = list(range(0, 11))          # 0-10: every second
    options += list(range(15, 61, 5))     # 15-60: every 5 seconds
    options += list(range(70, 121, 10))   # 70-120: every 10 seconds
    return options


# Picker granularity offered to users
LEAD_SECONDS_OPTIONS: list[int] = _lead_seconds_options()


@dataclass(frozen=True)
class ChimeConfig:
    """How often to chime and how far ahead of the boundary.

    Immutable: a new config means a new scheduling cycle.
    """
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    lead_seconds: int = DEFAULT_LEAD_SECONDS

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if isinstance(self.interval_minutes, bool) or not isinstance(self.interval_minutes, int):
            raise InvalidConfigError(f"interval_minutes must be an integer, got {self.interval_minutes!r}")
        if isinstance(self.lead_seconds, bool) or not isinstance(self.lead_seconds, int):
            raise InvalidConfigError(f"lead_seconds must be an integer, got {self.lead_seconds!r}")
        if self.interval_minutes not in ALLOWED_INTERVALS:
            raise InvalidConfigError(
                f"interval_minutes must be one of {ALLOWED_INTERVALS}, got {self.interval_minutes}"
            )
        if not 0 <= self.lead_seconds <= MAX_LEAD_SECONDS:
            raise InvalidConfigError(
                f"lead_seconds must be between 0 and {MAX_LEAD_SECONDS}, got {self.lead_seconds}"
            )
        # Never lead past the previous boundary
        if self.lead_seconds >= self.interval_seconds:
            raise InvalidConfigError(
                f"lead_seconds ({self.lead_seconds}) must be shorter than the interval "
                f"({self.interval_seconds}s)"
            )

    @property
    def interval_seconds(self) -> int:
        return self.interval_minutes * 60

    def to_dict(self) -> dict[str, Any]:
        return {
            "interval_minutes": self.interval_minutes,
            "lead_seconds": self.lead_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChimeConfig":
        return cls(
            interval_minutes=data.get("interval_minutes", DEFAULT_INTERVAL_MINUTES),
            lead_seconds=data.get("lead_seconds", DEFAULT_LEAD_SECONDS),
        )


class MissedChimePolicy(str, Enum):
    """What to do when a target passed while the process was not running."""
    SKIP = "skip"                    # Silently move on to the next future target
    CATCH_UP_ONCE = "catch_up_once"  # Play one chime, then move on


# ============== Computed Values ==============

@dataclass(frozen=True)
class ChimeTarget:
    """Result of one target computation.

    target_at + lead == boundary_at always holds.
    """
    boundary_at: datetime
    target_at: datetime
    delay_seconds: float
    corrected: bool = False  # True when the naive target had already passed

    def to_dict(self) -> dict[str, Any]:
        return {
            "boundary_at": self.boundary_at.isoformat(),
            "target_at": self.target_at.isoformat(),
            "delay_seconds": self.delay_seconds,
            "corrected": self.corrected,
        }


@dataclass(frozen=True)
class CountdownSnapshot:
    """Derived, read-only view of the time left until the next chime."""
    seconds_remaining: int
    display: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "seconds_remaining": self.seconds_remaining,
            "display": self.display,
        }


# ============== Event Types ==============

@dataclass
class SchedulerEvent:
    """Event emitted by the scheduler."""
    type: str
    timestamp_ms: int
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "timestamp_ms": self.timestamp_ms,
            "payload": self.payload,
        }


# ============== Result Types ==============

@dataclass
class SchedulerStatus:
    """Status of the chime scheduler, as shown to the user."""
    active: bool
    interval_minutes: int
    lead_seconds: int
    next_target_at: datetime | None = None
    next_boundary_at: datetime | None = None
    target_display: str = ""
    countdown: CountdownSnapshot | None = None
    status_message: str = ""
    last_error: str | None = None
    chime_count: int = 0
    last_chime_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "active": self.active,
            "interval_minutes": self.interval_minutes,
            "lead_seconds": self.lead_seconds,
            "next_target_at": self.next_target_at.isoformat() if self.next_target_at else None,
            "next_boundary_at": self.next_boundary_at.isoformat() if self.next_boundary_at else None,
            "target_display": self.target_display,
            "countdown": self.countdown.to_dict() if self.countdown else None,
            "status_message": self.status_message,
            "last_error": self.last_error,
            "chime_count": self.chime_count,
            "last_chime_at": self.last_chime_at.isoformat() if self.last_chime_at else None,
        }


# ============== Errors ==============

class ChimeError(Exception):
    """Base class for scheduler errors."""


class ClockComputationError(ChimeError):
    """The next boundary could not be constructed from the calendar."""


class TimerArmingFailure(ChimeError):
    """The event loop refused to schedule the alarm or the countdown tick."""


class InvalidConfigError(ChimeError, ValueError):
    """Interval or lead time outside the supported values."""
