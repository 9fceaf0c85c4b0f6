"""Wall-clock source for the chime scheduler."""
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from .scheduler.service.state import ClockParts


class SystemClock:
    """Reads the system wall clock.

    With no timezone the host's local zone is used, re-read on every call so
    that DST transitions and zone changes are picked up.
    """

    def __init__(self, timezone: str | tzinfo | None = None):
        if isinstance(timezone, str):
            timezone = ZoneInfo(timezone)
        self.tz = timezone

    def now(self) -> datetime:
        if self.tz is None:
            return datetime.now().astimezone()
        return datetime.now(self.tz)

    def decompose(self, instant: datetime) -> ClockParts:
        local = instant.astimezone(self.tz) if self.tz else instant.astimezone()
        return ClockParts(
            date=local.date(),
            hour=local.hour,
            minute=local.minute,
            second=local.second,
            tzinfo=local.tzinfo,
        )
