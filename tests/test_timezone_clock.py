"""
Store-local time tests.

Guards against:
1. Host timezone leaking into store hour / weekday
2. Unparseable zone codes crashing instead of defaulting to Pacific Standard
3. "Today" computed on the UTC calendar instead of the store's
"""
from datetime import datetime, timezone

from store_intelligence.models.signals import StoreClassification
from store_intelligence.services.store_context import build_store_context
from store_intelligence.utils.timezone_clock import (
    DEFAULT_OFFSET_MINUTES,
    FRIDAY,
    SATURDAY,
    SUNDAY,
    THURSDAY,
    TimeZoneClock,
    is_late_night,
    is_peak_hour,
    is_slow_period,
    is_weekend,
    parse_offset,
)

from fakes import NOW, fixed_clock, make_store


# ---------------------------------------------------------------------------
# Offset parsing
# ---------------------------------------------------------------------------

def test_parse_negative_offset():
    assert parse_offset("GMT-07:00") == -420


def test_parse_positive_offset_with_minutes():
    assert parse_offset("GMT+05:30") == 330


def test_parse_missing_or_garbage_defaults_to_pacific():
    assert parse_offset(None) == DEFAULT_OFFSET_MINUTES
    assert parse_offset("") == DEFAULT_OFFSET_MINUTES
    assert parse_offset("America/Los_Angeles") == DEFAULT_OFFSET_MINUTES
    assert DEFAULT_OFFSET_MINUTES == -480


# ---------------------------------------------------------------------------
# Local time
# ---------------------------------------------------------------------------

def test_local_time_shifts_clock_fields():
    local = TimeZoneClock().local_time(NOW, "GMT-07:00")
    assert local.hour == 18
    assert local.minute == 0
    assert local.day_of_week == THURSDAY
    assert local.date.isoformat() == "2026-10-15"
    assert local.wall_clock.tzinfo is None


def test_local_time_treats_naive_input_as_utc():
    naive = datetime(2026, 10, 16, 1, 0)
    assert TimeZoneClock().local_time(naive, "GMT-07:00").hour == 18


def test_local_time_defaults_to_clock_now():
    local = fixed_clock().local_time(offset_string="GMT+00:00")
    assert (local.hour, local.day_of_week) == (1, FRIDAY)


def test_local_time_crosses_day_boundary_eastward():
    local = TimeZoneClock().local_time(datetime(2026, 10, 17, 20, 30, tzinfo=timezone.utc), "GMT+05:30")
    assert local.date.isoformat() == "2026-10-18"
    assert (local.hour, local.minute, local.day_of_week) == (2, 0, SUNDAY)


def test_is_local_today_uses_store_calendar():
    clock = TimeZoneClock()
    now = datetime(2026, 10, 15, 20, 0, tzinfo=timezone.utc)  # 13:00 local
    evening_local = datetime(2026, 10, 16, 3, 0, tzinfo=timezone.utc)  # 20:00 local, next UTC day
    after_midnight_local = datetime(2026, 10, 16, 8, 0, tzinfo=timezone.utc)  # 01:00 local next day

    assert clock.is_local_today(evening_local, now, "GMT-07:00") is True
    assert clock.is_local_today(after_midnight_local, now, "GMT-07:00") is False


def test_local_day_bounds_are_store_midnights():
    start, end = TimeZoneClock().local_day_bounds(NOW, "GMT-07:00")
    assert start == datetime(2026, 10, 15, 7, 0, tzinfo=timezone.utc)
    assert end == datetime(2026, 10, 16, 7, 0, tzinfo=timezone.utc)


def test_local_days_between_counts_calendar_days():
    later = datetime(2026, 10, 18, 2, 0, tzinfo=timezone.utc)  # Sat 17th 19:00 local
    assert TimeZoneClock().local_days_between(NOW, later, "GMT-07:00") == 2


# ---------------------------------------------------------------------------
# Flags
# ---------------------------------------------------------------------------

def test_peak_hours_are_17_through_20():
    assert [h for h in range(24) if is_peak_hour(h)] == [17, 18, 19, 20]


def test_late_night_wraps_midnight():
    assert [h for h in range(24) if is_late_night(h)] == [0, 1, 22, 23]


def test_weekend_is_saturday_and_sunday():
    assert is_weekend(SATURDAY) and is_weekend(SUNDAY)
    assert not is_weekend(FRIDAY)


def test_slow_period_end_hours_exclusive():
    assert is_slow_period(9, THURSDAY)
    assert is_slow_period(10, THURSDAY)
    assert not is_slow_period(11, THURSDAY)
    assert is_slow_period(15, THURSDAY)
    assert not is_slow_period(16, THURSDAY)


def test_late_slow_period_starts_later_on_weekends():
    assert is_slow_period(22, THURSDAY)
    assert not is_slow_period(22, SATURDAY)
    assert is_slow_period(23, SATURDAY)


def test_store_context_flags():
    classification = StoreClassification(type="suburban", sub_type="standard")
    context = build_store_context(make_store(), classification, fixed_clock(), NOW)
    assert context.hour == 18
    assert context.is_peak_time is True
    assert context.is_weekend is False
    assert context.is_late_night is False
    assert context.is_slow_period is False
    assert context.classification is classification
