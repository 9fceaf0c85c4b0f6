"""Schedule calculation utilities.

Computes the next chime target for an interval configuration and formats
countdowns for display. Everything here is pure: the current time is always
passed in.
"""
import time
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from .types import (
    ChimeConfig,
    ChimeTarget,
    ClockComputationError,
    CountdownSnapshot,
)

if TYPE_CHECKING:
    from .service.state import Clock

IMMINENT_MARKER = "🔔 Now!"


def now_ms() -> int:
    """Get current timestamp in milliseconds."""
    return int(time.time() * 1000)


def next_boundary_minute(minute: int, interval_minutes: int) -> tuple[int, bool]:
    """Find the next boundary minute strictly after ``minute``.

    Returns:
        (boundary minute, wrapped) where wrapped means the boundary is
        minute 0 of the following hour
    """
    if interval_minutes == 60:
        return 0, True
    for boundary in range(interval_minutes, 60, interval_minutes):
        if minute < boundary:
            return boundary, False
    return 0, True


def compute_next_chime(config: ChimeConfig, now: datetime, clock: "Clock") -> ChimeTarget:
    """Compute the next chime target.

    Args:
        config: Interval and lead time
        now: Current aware time
        clock: Clock used for calendar decomposition

    Returns:
        The target, with both instants in UTC

    Raises:
        ClockComputationError: if the boundary cannot be built from the calendar
    """
    try:
        parts = clock.decompose(now)
        next_minute, wrapped = next_boundary_minute(parts.minute, config.interval_minutes)

        # Step forward from the start of the local hour in absolute time:
        # DST changes neither skip nor repeat a boundary, midnight rolls the date
        now_utc = now.astimezone(timezone.utc)
        hour_start = now_utc - timedelta(
            minutes=parts.minute, seconds=parts.second, microseconds=now.microsecond
        )
        boundary_at = hour_start + timedelta(minutes=60 if wrapped else next_minute)
    except (OverflowError, ValueError, TypeError) as e:
        raise ClockComputationError(f"Error calculating next chime time: {e}") from e

    lead = timedelta(seconds=config.lead_seconds)
    target_at = boundary_at - lead

    # Lead time pushed the target into the past: move on one interval
    corrected = False
    if target_at <= now_utc:
        target_at += timedelta(minutes=config.interval_minutes)
        corrected = True

    # Display and firing stay consistent even after the correction
    boundary_at = target_at + lead

    delay_seconds = (target_at - now_utc).total_seconds()
    if delay_seconds <= 0:
        raise ClockComputationError(
            f"Computed target {target_at.isoformat()} is not after {now_utc.isoformat()}"
        )

    return ChimeTarget(
        boundary_at=boundary_at,
        target_at=target_at,
        delay_seconds=delay_seconds,
        corrected=corrected,
    )


def seconds_until(target_at: datetime, now: datetime) -> int:
    """Whole seconds from ``now`` until ``target_at``, never negative."""
    remaining = int((target_at - now).total_seconds())
    return max(0, remaining)


def format_countdown(seconds_remaining: int) -> str:
    """Format a countdown as ``M:SS``, or the imminent marker at zero."""
    if seconds_remaining <= 0:
        return IMMINENT_MARKER

    minutes, seconds = divmod(seconds_remaining, 60)
    if minutes > 0:
        return f"{minutes}:{seconds:02d}"
    return f"0:{seconds:02d}"


def countdown_snapshot(target_at: datetime | None, now: datetime) -> CountdownSnapshot:
    """Build the countdown view for a target; empty when nothing is armed."""
    if target_at is None:
        return CountdownSnapshot(seconds_remaining=0, display="")

    remaining = seconds_until(target_at, now)
    return CountdownSnapshot(seconds_remaining=remaining, display=format_countdown(remaining))


def format_boundary(boundary_at: datetime | None, clock: "Clock") -> str:
    """Format a boundary as ``HH:MM`` in the clock's zone."""
    if boundary_at is None:
        return ""
    parts = clock.decompose(boundary_at)
    return f"{parts.hour:02d}:{parts.minute:02d}"


def interval_to_human(config: ChimeConfig) -> str:
    """Describe a configuration in words."""
    if config.interval_minutes == 60:
        every = "every hour"
    else:
        every = f"every {config.interval_minutes} minutes"

    if config.lead_seconds == 0:
        return f"Chime {every}, on the boundary"
    unit = "second" if config.lead_seconds == 1 else "seconds"
    return f"Chime {config.lead_seconds} {unit} before the boundary, {every}"
