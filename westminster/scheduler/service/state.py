"""State management for the chime scheduler.

Contains dependency injection and runtime state management.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import TYPE_CHECKING, NamedTuple, Protocol

from ..types import ChimeConfig, MissedChimePolicy

if TYPE_CHECKING:
    from .json_store import JsonSettingsStore


class ClockParts(NamedTuple):
    """Calendar-local decomposition of an instant."""
    date: date
    hour: int
    minute: int
    second: int
    tzinfo: tzinfo


class Clock(Protocol):
    """Protocol for the wall-clock source."""

    def now(self) -> datetime:
        """Return the current time as an aware datetime."""
        ...

    def decompose(self, instant: datetime) -> ClockParts:
        """Split an instant into calendar-local parts."""
        ...


class Sound(Protocol):
    """Protocol for chime playback. Fire-and-forget."""

    def play(self) -> None:
        ...


@dataclass
class SchedulerServiceDeps:
    """Dependencies for the scheduler service.

    This allows tests to substitute a fixed clock or a recording sound.
    """
    clock: Clock
    sound: Sound
    settings_store: "JsonSettingsStore | None" = None


@dataclass
class SchedulerOptions:
    """Tuning knobs that are not part of the user-facing configuration."""
    missed_policy: MissedChimePolicy = MissedChimePolicy.SKIP
    missed_grace_seconds: float = 5.0
    tick_interval_seconds: float = 1.0


@dataclass
class SchedulerServiceState:
    """Runtime state of the chime scheduler."""
    active: bool = False
    config: ChimeConfig = field(default_factory=ChimeConfig)

    # Instants are held in UTC
    next_target_at: datetime | None = None
    next_boundary_at: datetime | None = None

    alarm_task: asyncio.Task | None = None
    tick_task: asyncio.Task | None = None
    wake_event: asyncio.Event = field(default_factory=asyncio.Event)
    # Serializes start/stop/update_config
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    status_message: str = ""
    last_error: str | None = None
    chime_count: int = 0
    last_chime_at: datetime | None = None

    def reset(self) -> None:
        """Reset the armed state. Config and chime history survive."""
        self.active = False
        self.alarm_task = None
        self.tick_task = None
        self.next_target_at = None
        self.next_boundary_at = None
        self.wake_event.clear()
