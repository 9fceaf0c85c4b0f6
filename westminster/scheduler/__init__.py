"""Scheduler module for interval chimes.

This module provides the chime scheduler with:
- Next-boundary target computation (15/30/60 minute intervals, lead time)
- One-shot alarm re-armed from the wall clock after every firing
- 1 Hz countdown for display
- JSON file persistence of settings
- asyncio-based timers
"""
# Core types
from .types import (
    # Configuration
    ChimeConfig,
    MissedChimePolicy,
    ALLOWED_INTERVALS,
    LEAD_SECONDS_OPTIONS,
    MAX_LEAD_SECONDS,
    # Computed values
    ChimeTarget,
    CountdownSnapshot,
    # Result types
    SchedulerEvent,
    SchedulerStatus,
    # Errors
    ChimeError,
    ClockComputationError,
    TimerArmingFailure,
    InvalidConfigError,
)

# Schedule utilities
from .schedule import (
    compute_next_chime,
    next_boundary_minute,
    format_countdown,
    format_boundary,
    countdown_snapshot,
    interval_to_human,
    IMMINENT_MARKER,
    now_ms,
)

# Service
from .service import SchedulerService
from .service.events import EventTypes
from .service.json_store import JsonSettingsStore
from .service.state import Clock, ClockParts, SchedulerOptions, Sound

__all__ = [
    # Core types
    "ChimeConfig",
    "MissedChimePolicy",
    "ALLOWED_INTERVALS",
    "LEAD_SECONDS_OPTIONS",
    "MAX_LEAD_SECONDS",
    "ChimeTarget",
    "CountdownSnapshot",
    "SchedulerEvent",
    "SchedulerStatus",
    "ChimeError",
    "ClockComputationError",
    "TimerArmingFailure",
    "InvalidConfigError",
    # Schedule utilities
    "compute_next_chime",
    "next_boundary_minute",
    "format_countdown",
    "format_boundary",
    "countdown_snapshot",
    "interval_to_human",
    "IMMINENT_MARKER",
    "now_ms",
    # Service
    "SchedulerService",
    "EventTypes",
    "JsonSettingsStore",
    "Clock",
    "ClockParts",
    "SchedulerOptions",
    "Sound",
]
