"""Shared fixtures: a controllable clock and a recording sound."""
import time
from datetime import datetime, timedelta, timezone

import pytest

from westminster.scheduler import ChimeConfig, ClockParts, SchedulerOptions, SchedulerService

LOCAL = timezone(timedelta(hours=1), "TEST")


def at(hour: int, minute: int, second: int = 0, microsecond: int = 0,
       day: int = 18, tz=LOCAL) -> datetime:
    """An instant on 2026-10-18 in the test zone."""
    return datetime(2026, 10, day, hour, minute, second, microsecond, tzinfo=tz)


class FakeClock:
    """Wall clock pinned to a chosen instant.

    When ``running`` it advances with real monotonic time, so asyncio
    timeouts and wall-clock readings stay in step. ``jump`` moves the wall
    clock without any real time passing (suspend/resume, manual changes).
    """

    def __init__(self, start: datetime, running: bool = False):
        self.tz = start.tzinfo
        self.running = running
        self._anchor = start
        self._mono = time.monotonic()

    def now(self) -> datetime:
        if not self.running:
            return self._anchor
        return self._anchor + timedelta(seconds=time.monotonic() - self._mono)

    def set(self, instant: datetime) -> None:
        self._anchor = instant
        self._mono = time.monotonic()

    def jump(self, seconds: float) -> None:
        self._anchor += timedelta(seconds=seconds)

    def decompose(self, instant: datetime) -> ClockParts:
        local = instant.astimezone(self.tz)
        return ClockParts(
            date=local.date(),
            hour=local.hour,
            minute=local.minute,
            second=local.second,
            tzinfo=local.tzinfo,
        )


class RecordingSound:
    """Counts plays; optionally fails like a broken audio device."""

    def __init__(self, fail: bool = False):
        self.plays = 0
        self.fail = fail

    def play(self) -> None:
        self.plays += 1
        if self.fail:
            raise OSError("audio device unavailable")


@pytest.fixture
def sound() -> RecordingSound:
    return RecordingSound()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(at(12, 7, 13))


@pytest.fixture
def make_service(sound):
    """Build a scheduler around a running fake clock with a fast tick."""
    def _make(start: datetime, config: ChimeConfig | None = None, **option_overrides):
        options = SchedulerOptions(tick_interval_seconds=0.02, **option_overrides)
        service = SchedulerService(
            clock=FakeClock(start, running=True),
            sound=sound,
            options=options,
            config=config,
        )
        return service

    return _make
