"""Tests for the injected clocks."""

from datetime import date, datetime, timedelta, timezone

from timesheet_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:

    def test_default_time(self):
        clock = DeterministicClock()
        assert clock.now() == datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)
        assert clock.today() == date(2024, 1, 15)

    def test_stable_until_advanced(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()
        first = clock.now()
        assert clock.tick() == first + timedelta(seconds=1)

    def test_advance_days_moves_today(self):
        clock = DeterministicClock()
        clock.advance_days(17)
        assert clock.today() == date(2024, 2, 1)

    def test_set_date(self):
        clock = DeterministicClock()
        clock.advance(3600)
        clock.set_date(date(2023, 12, 31))
        assert clock.now() == datetime(2023, 12, 31, 9, 0, tzinfo=timezone.utc)

    def test_today_uses_utc(self):
        late_evening = datetime(2024, 1, 15, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        clock = DeterministicClock(late_evening)
        assert clock.today() == date(2024, 1, 16)


def test_system_clock_is_timezone_aware():
    assert SystemClock().now().tzinfo is not None
