"""
Unit tests for platform time and the daily credit schedule.

Tests cover:
- Reset instant in the platform timezone
- Credit-due decisions around the daily boundary
- Manual platform time
"""

from datetime import datetime, timedelta, timezone

import pytest

from referral_engine.utils.time_machine import (
    asUtc, currentPeriodStart, dailyResetInstant, isCreditDue, parseResetTime, timeMachine,
)

IST = "Asia/Kolkata"


class TestResetInstant:

    def test_midnight_ist_in_utc(self):
        now = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
        assert dailyResetInstant(now, "00:00", IST) == datetime(2026, 3, 9, 18, 30, tzinfo=timezone.utc)

    def test_custom_reset_time(self):
        now = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
        assert dailyResetInstant(now, "06:30", "UTC") == datetime(2026, 3, 10, 6, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["", "noon", "25:99", None])
    def test_malformed_reset_time_falls_back_to_midnight(self, value):
        assert parseResetTime(value).hour == 0
        assert parseResetTime(value).minute == 0

    def test_period_starts_yesterday_before_reset(self):
        now = datetime(2026, 3, 10, 5, 0, tzinfo=timezone.utc)
        assert currentPeriodStart(now, "06:00", "UTC") == datetime(2026, 3, 9, 6, 0, tzinfo=timezone.utc)


class TestCreditDue:

    now = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

    def test_never_credited(self):
        assert isCreditDue(None, self.now, "00:00", "UTC")

    def test_credited_before_today(self):
        assert isCreditDue(self.now - timedelta(days=1), self.now, "00:00", "UTC")

    def test_already_credited_today(self):
        assert not isCreditDue(self.now - timedelta(hours=1), self.now, "00:00", "UTC")

    def test_reset_not_reached_yet(self):
        """Credited yesterday after the reset; today's reset at 18:00 has not come."""
        last = datetime(2026, 3, 9, 19, 0, tzinfo=timezone.utc)
        assert not isCreditDue(last, self.now, "18:00", "UTC")

    def test_naive_checkpoint(self):
        last = (self.now - timedelta(days=2)).replace(tzinfo=None)
        assert isCreditDue(last, self.now, "00:00", IST)


class TestTimeMachine:

    def test_live_time_by_default(self):
        assert not timeMachine.isManual
        assert abs(timeMachine.now - datetime.now(timezone.utc)) < timedelta(seconds=5)

    def test_manual_time(self):
        target = datetime(2026, 1, 1, tzinfo=timezone.utc)
        timeMachine.setTime(target, "admin@example.com")
        timeMachine.advanceTime(days=2, hours=3)

        assert timeMachine.isManual
        assert timeMachine.now == target + timedelta(days=2, hours=3)

    def test_advance_requires_manual_mode(self):
        with pytest.raises(ValueError):
            timeMachine.advanceTime(days=1)

    def test_start_of_day(self):
        timeMachine.setTime(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc))
        assert timeMachine.startOfDay("UTC") == datetime(2026, 3, 10, tzinfo=timezone.utc)

    def test_as_utc_converts_offsets(self):
        value = datetime(2026, 3, 10, 5, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))
        assert asUtc(value) == datetime(2026, 3, 10, 0, 0, tzinfo=timezone.utc)
