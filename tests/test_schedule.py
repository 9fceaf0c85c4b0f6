"""Unit tests for chime target computation and countdown formatting, no timers involved."""
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from conftest import FakeClock, at
from westminster.scheduler import (
    ChimeConfig,
    IMMINENT_MARKER,
    InvalidConfigError,
    LEAD_SECONDS_OPTIONS,
    compute_next_chime,
    countdown_snapshot,
    format_boundary,
    format_countdown,
    interval_to_human,
    next_boundary_minute,
)


def local(clock: FakeClock, instant):
    return instant.astimezone(clock.tz)


# ---- Worked examples ----

class TestWorkedExamples:
    def test_quarter_hour_with_lead(self):
        """12:07:13, every 15 min, 20s lead: chime at 12:14:40 for 12:15."""
        now = at(12, 7, 13)
        clock = FakeClock(now)
        target = compute_next_chime(ChimeConfig(15, 20), now, clock)

        assert local(clock, target.boundary_at) == at(12, 15)
        assert local(clock, target.target_at) == at(12, 14, 40)
        assert target.delay_seconds == 87
        assert not target.corrected

    def test_lead_already_passed_moves_to_next_quarter(self):
        """12:14:41 is past 12:14:40, so the next chime is for 12:30."""
        now = at(12, 14, 41)
        clock = FakeClock(now)
        target = compute_next_chime(ChimeConfig(15, 20), now, clock)

        assert local(clock, target.boundary_at) == at(12, 30)
        assert local(clock, target.target_at) == at(12, 29, 40)
        assert target.corrected

    def test_hour_wraps_to_next_day(self):
        """23:58 hourly with no lead chimes at midnight of the next day."""
        now = at(23, 58)
        clock = FakeClock(now)
        target = compute_next_chime(ChimeConfig(60, 0), now, clock)

        assert local(clock, target.boundary_at) == at(0, 0, day=19)
        assert target.target_at == target.boundary_at
        assert target.delay_seconds == 120

    def test_half_hour_with_long_lead(self):
        """10:00:10, every 30 min, 45s lead: chime at 10:29:15 for 10:30."""
        now = at(10, 0, 10)
        clock = FakeClock(now)
        target = compute_next_chime(ChimeConfig(30, 45), now, clock)

        assert local(clock, target.boundary_at) == at(10, 30)
        assert local(clock, target.target_at) == at(10, 29, 15)


# ---- Boundary minute selection ----

class TestNextBoundaryMinute:
    @pytest.mark.parametrize("minute,expected", [
        (0, (15, False)),
        (14, (15, False)),
        (15, (30, False)),
        (44, (45, False)),
        (45, (0, True)),
        (59, (0, True)),
    ])
    def test_quarter_hours(self, minute, expected):
        assert next_boundary_minute(minute, 15) == expected

    @pytest.mark.parametrize("minute,expected", [
        (0, (30, False)),
        (29, (30, False)),
        (30, (0, True)),
    ])
    def test_half_hours(self, minute, expected):
        assert next_boundary_minute(minute, 30) == expected

    def test_hourly_always_wraps(self):
        assert next_boundary_minute(0, 60) == (0, True)
        assert next_boundary_minute(59, 60) == (0, True)

    def test_on_boundary_moves_to_next(self):
        """Sitting exactly on 12:15:00 schedules for 12:30."""
        now = at(12, 15, 0)
        clock = FakeClock(now)
        target = compute_next_chime(ChimeConfig(15, 0), now, clock)
        assert local(clock, target.boundary_at) == at(12, 30)


# ---- Properties over a whole day ----

class TestTargetProperties:
    @pytest.mark.parametrize("interval", [15, 30, 60])
    @pytest.mark.parametrize("lead", [0, 1, 20, 59, 120])
    def test_target_invariants(self, interval, lead):
        """Target is in the future, boundary is aligned, target + lead == boundary."""
        config = ChimeConfig(interval, lead)
        clock = FakeClock(at(0, 0))
        start = at(0, 0)

        for step in range(0, 24 * 60 * 60, 437):  # every 7m17s across a day
            now = start + timedelta(seconds=step)
            target = compute_next_chime(config, now, clock)
            boundary = local(clock, target.boundary_at)

            assert target.target_at > now
            assert boundary.second == 0
            assert boundary.minute % interval == 0
            if interval == 60:
                assert boundary.minute == 0
            assert target.target_at + timedelta(seconds=lead) == target.boundary_at
            assert target.delay_seconds <= interval * 60

    def test_fractional_seconds(self):
        """Sub-second 'now' still lands on whole-second targets."""
        now = at(12, 14, 39, 999_000)
        clock = FakeClock(now)
        target = compute_next_chime(ChimeConfig(15, 20), now, clock)
        assert local(clock, target.target_at) == at(12, 14, 40)
        assert target.delay_seconds == pytest.approx(0.001)

    def test_results_are_utc(self):
        now = at(9, 1)
        target = compute_next_chime(ChimeConfig(), now, FakeClock(now))
        assert target.target_at.tzinfo == timezone.utc
        assert target.boundary_at.tzinfo == timezone.utc


# ---- Daylight saving ----

class TestDaylightSaving:
    LONDON = ZoneInfo("Europe/London")

    def test_spring_forward(self):
        """00:50 GMT on the spring change: next hour is 02:00 BST, 10 minutes away."""
        now = datetime(2026, 3, 29, 0, 50, tzinfo=self.LONDON)
        clock = FakeClock(now)
        target = compute_next_chime(ChimeConfig(60, 0), now, clock)

        assert target.delay_seconds == 600
        assert format_boundary(target.boundary_at, clock) == "02:00"

    def test_fall_back_first_pass(self):
        """01:50 BST on the autumn change: next hour is 01:00 GMT, 10 minutes away."""
        now = at(1, 50, day=25, tz=self.LONDON)
        assert now.utcoffset() == timedelta(hours=1)
        clock = FakeClock(now)
        target = compute_next_chime(ChimeConfig(15, 0), now, clock)

        assert target.delay_seconds == 600
        assert format_boundary(target.boundary_at, clock) == "01:00"

    def test_fall_back_repeated_hour(self):
        """01:50 GMT (the repeated hour) chimes for 02:00 GMT."""
        now = at(1, 50, day=25, tz=self.LONDON).replace(fold=1)
        assert now.utcoffset() == timedelta(0)
        clock = FakeClock(now)
        target = compute_next_chime(ChimeConfig(15, 0), now, clock)

        assert target.delay_seconds == 600
        assert format_boundary(target.boundary_at, clock) == "02:00"


# ---- Countdown ----

class TestCountdown:
    @pytest.mark.parametrize("seconds,expected", [
        (87, "1:27"),
        (600, "10:00"),
        (59, "0:59"),
        (5, "0:05"),
        (1, "0:01"),
    ])
    def test_format(self, seconds, expected):
        assert format_countdown(seconds) == expected

    def test_zero_shows_imminent_marker(self):
        assert format_countdown(0) == IMMINENT_MARKER

    def test_snapshot_never_negative(self):
        """A tick that runs after the target passed shows the marker, not 0:00."""
        snapshot = countdown_snapshot(at(12, 14, 40), at(12, 14, 42))
        assert snapshot.seconds_remaining == 0
        assert snapshot.display == IMMINENT_MARKER

    def test_snapshot_when_idle(self):
        snapshot = countdown_snapshot(None, at(12, 0))
        assert snapshot.seconds_remaining == 0
        assert snapshot.display == ""

    def test_decreases_by_one_per_second(self):
        target = at(12, 14, 40)
        now = at(12, 7, 13, 250_000)
        previous = countdown_snapshot(target, now).seconds_remaining
        for i in range(1, 120):
            current = countdown_snapshot(target, now + timedelta(seconds=i)).seconds_remaining
            assert current == previous - 1
            previous = current


# ---- Configuration ----

class TestChimeConfig:
    def test_defaults(self):
        config = ChimeConfig()
        assert config.interval_minutes == 15
        assert config.lead_seconds == 20

    @pytest.mark.parametrize("interval", [0, 10, 20, 45, 120])
    def test_rejects_unsupported_interval(self, interval):
        with pytest.raises(InvalidConfigError):
            ChimeConfig(interval, 20)

    @pytest.mark.parametrize("lead", [-1, 121, 3600])
    def test_rejects_out_of_range_lead(self, lead):
        with pytest.raises(InvalidConfigError):
            ChimeConfig(15, lead)

    def test_rejects_non_integers(self):
        with pytest.raises(InvalidConfigError):
            ChimeConfig(15, 2.5)
        with pytest.raises(InvalidConfigError):
            ChimeConfig("15", 20)
        with pytest.raises(InvalidConfigError):
            ChimeConfig(15, True)

    def test_invalid_config_is_a_value_error(self):
        with pytest.raises(ValueError):
            ChimeConfig(7, 0)

    def test_from_dict_fills_defaults(self):
        assert ChimeConfig.from_dict({}) == ChimeConfig(15, 20)
        assert ChimeConfig.from_dict({"interval_minutes": 60}) == ChimeConfig(60, 20)

    def test_lead_picker_options(self):
        assert LEAD_SECONDS_OPTIONS[:11] == list(range(11))
        assert LEAD_SECONDS_OPTIONS[11:21] == [15, 20, 25, 30, 35, 40, 45, 50, 55, 60]
        assert LEAD_SECONDS_OPTIONS[21:] == [70, 80, 90, 100, 110, 120]

    def test_human_description(self):
        assert interval_to_human(ChimeConfig(15, 20)) == \
            "Chime 20 seconds before the boundary, every 15 minutes"
        assert interval_to_human(ChimeConfig(60, 1)) == \
            "Chime 1 second before the boundary, every hour"
        assert interval_to_human(ChimeConfig(30, 0)) == "Chime every 30 minutes, on the boundary"
