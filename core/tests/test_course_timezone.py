"""Tests for course time and timezone helpers."""

from datetime import datetime, time, timezone

import pytest
import pytz

from core.timezone import (
    ensure_utc,
    format_time_in_timezone,
    is_valid_timezone,
    next_occurrence,
    parse_time_of_day,
    reminder_fire_time,
    resolve_timezone,
    weekday_name,
)

GMT = pytz.timezone("GMT")
PARIS = pytz.timezone("Europe/Paris")


class TestParseTimeOfDay:
    def test_parses_hh_mm(self):
        assert parse_time_of_day("20:00") == time(20, 0)
        assert parse_time_of_day(" 7:05 ") == time(7, 5)

    @pytest.mark.parametrize("value", ["", "20", "24:00", "12:60", "ab:cd", None])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValueError):
            parse_time_of_day(value)


class TestResolveTimezone:
    def test_unknown_falls_back_to_utc(self):
        assert resolve_timezone("Nowhere/Special") == pytz.UTC

    def test_is_valid_timezone(self):
        assert is_valid_timezone("Africa/Abidjan")
        assert not is_valid_timezone("Nowhere/Special")


class TestNextOccurrence:
    def test_later_today_is_today(self):
        # Monday 2026-03-02 06:00 GMT
        now = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)

        start = next_occurrence("monday", time(20, 0), GMT, now)

        assert start == GMT.localize(datetime(2026, 3, 2, 20, 0))

    def test_already_started_moves_to_next_week(self):
        now = datetime(2026, 3, 2, 20, 30, tzinfo=timezone.utc)

        start = next_occurrence("monday", time(20, 0), GMT, now)

        assert start == GMT.localize(datetime(2026, 3, 9, 20, 0))

    def test_other_weekday(self):
        now = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)  # Monday

        start = next_occurrence("thursday", time(18, 30), GMT, now)

        assert start == GMT.localize(datetime(2026, 3, 5, 18, 30))

    def test_uses_local_weekday(self):
        # Sunday 23:30 UTC is already Monday 00:30 in Paris
        now = datetime(2026, 3, 1, 23, 30, tzinfo=timezone.utc)

        start = next_occurrence("monday", time(9, 0), PARIS, now)

        assert start == PARIS.localize(datetime(2026, 3, 2, 9, 0))


class TestReminderFireTime:
    def test_subtracts_lead_time(self):
        start = GMT.localize(datetime(2026, 3, 2, 20, 0))

        fire_at = reminder_fire_time(start, 30)

        assert format_time_in_timezone(fire_at, GMT) == "19:30"

    def test_crosses_midnight(self):
        start = PARIS.localize(datetime(2026, 3, 2, 0, 15))

        fire_at = reminder_fire_time(start, 30)

        assert fire_at.astimezone(PARIS).replace(tzinfo=None) == datetime(2026, 3, 1, 23, 45)

    def test_across_dst_change(self):
        # Paris moves to summer time at 02:00 on 2026-03-29
        start = PARIS.localize(datetime(2026, 3, 29, 10, 0))

        fire_at = reminder_fire_time(start, 12 * 60)

        assert fire_at.utcoffset() == PARIS.localize(datetime(2026, 3, 28, 23, 0)).utcoffset()
        assert (start - fire_at).total_seconds() == 12 * 3600


class TestMisc:
    def test_ensure_utc_attaches_utc_to_naive(self):
        assert ensure_utc(datetime(2026, 3, 2, 20, 0)).tzinfo == pytz.UTC

    def test_weekday_name(self):
        assert weekday_name(datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc), GMT) == "monday"
