"""
Event merger tests.

Guards against:
1. The same show listed by two providers counted twice
2. Server/UTC calendar used for "today" instead of the store's
3. Low-impact far-off events crowding the prompt
"""
from datetime import datetime, timedelta, timezone

from store_intelligence.models.signals import EventListing
from store_intelligence.services.event_merger import (
    DEFAULT_EVENT_CAPACITY,
    EventMerger,
    capacity_score,
    post_event_window,
    pre_event_window,
)

from fakes import NOW

TZ = "GMT-07:00"


def _listing(name, venue, when, capacity, source="test"):
    return EventListing(name=name, venue=venue, date=when, capacity=capacity, source=source)


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_capacity_tiers():
    assert capacity_score(20000) == 0.6
    assert capacity_score(19999) == 0.4
    assert capacity_score(5000) == 0.2
    assert capacity_score(1000) == 0.1
    assert capacity_score(999) == 0.0


def test_event_windows():
    start = _utc(2026, 10, 18, 2, 0)
    pre = pre_event_window(start, 19500)
    post = post_event_window(start, 19500)

    assert pre.start == start - timedelta(hours=3)
    assert pre.end == start - timedelta(minutes=30)
    assert pre.expected_orders == 97
    assert pre.drivers_needed == 5

    assert post.end == start + timedelta(hours=2)
    assert post.peak_time == start + timedelta(minutes=45)
    assert post.expected_orders == 195
    assert post.drivers_needed == 13


def test_impact_prime_time_saturday():
    merger = EventMerger()
    # Saturday 19:00 local, 25 hours out
    listing = _listing("Lakers vs Celtics", "Staples Center", _utc(2026, 10, 18, 2, 0), 19500)
    assert merger.score_impact(listing, NOW, TZ) == 0.8


def test_impact_same_day_bonus_and_clamp():
    merger = EventMerger()
    # Thursday 20:00 local, 3 hours out, big venue: 0.6 + 0.2 + 0.3 = 1.1 -> 1.0
    listing = _listing("Stadium Show", "Stadium", _utc(2026, 10, 16, 3, 0), 40000)
    assert merger.score_impact(listing, NOW, TZ) == 1.0


def test_build_event_defaults_unknown_capacity():
    event = EventMerger().build_event(_listing("Show", "Hall", _utc(2026, 10, 18, 2, 0), 0), NOW, TZ)
    assert event.capacity == DEFAULT_EVENT_CAPACITY


def test_build_event_attaches_pre_order_push():
    event = EventMerger().build_event(
        _listing("Lakers vs Celtics", "Staples Center", _utc(2026, 10, 18, 2, 0), 19500), NOW, TZ
    )
    assert event.days_until_event == 2
    assert event.is_today is False
    assert event.pre_order_opportunity.urgency == "HIGH"
    assert event.pre_order_opportunity.target_orders == 195


def test_is_today_follows_store_calendar():
    merger = EventMerger()
    now = _utc(2026, 10, 15, 20, 0)  # 13:00 local
    tonight = merger.build_event(_listing("Show", "Hall", _utc(2026, 10, 16, 3, 0), 1000), now, TZ)
    after_midnight = merger.build_event(_listing("Late", "Club", _utc(2026, 10, 16, 8, 0), 1000), now, TZ)

    assert tonight.is_today is True
    assert tonight.is_past_today is False
    assert after_midnight.is_today is False


def test_earlier_today_is_marked_past():
    event = EventMerger().build_event(_listing("Matinee", "Hall", _utc(2026, 10, 15, 21, 0), 1000), NOW, TZ)
    assert event.is_today is True
    assert event.is_past_today is True


def test_duplicate_listings_keep_larger_capacity():
    merger = EventMerger()
    events = merger.merge(
        [
            [_listing("Lakers vs Celtics", "Staples Center", _utc(2026, 10, 18, 2, 0), 0, "ticketmaster")],
            [_listing("Lakers at Celtics", "staples center ", _utc(2026, 10, 18, 2, 30), 19500, "seatgeek")],
        ],
        NOW,
        TZ,
    )
    assert len(events) == 1
    assert events[0].capacity == 19500
    assert events[0].source == "seatgeek"


def test_same_venue_different_bucket_kept():
    merger = EventMerger()
    events = merger.merge(
        [[
            _listing("Early Show", "Arena", _utc(2026, 10, 18, 1, 0), 20000),  # 18:00 local
            _listing("Late Show", "Arena", _utc(2026, 10, 18, 3, 0), 20000),  # 20:00 local
        ]],
        NOW,
        TZ,
    )
    assert [e.name for e in events] == ["Early Show", "Late Show"]


def test_low_impact_filtered_unless_today():
    merger = EventMerger()
    events = merger.merge(
        [[
            _listing("Small Far", "Library", _utc(2026, 10, 20, 17, 0), 500),  # Tue 10:00 local
            _listing("Small Today", "Cafe", _utc(2026, 10, 15, 22, 0), 500),  # Thu 15:00 local
        ]],
        NOW,
        TZ,
    )
    assert [e.name for e in events] == ["Small Today"]


def test_sorted_by_date_and_capped():
    merger = EventMerger()
    start = _utc(2026, 10, 17, 2, 0)
    listings = [
        _listing(f"Show {i}", f"Venue {i}", start + timedelta(hours=24 * (11 - i)), 25000)
        for i in range(12)
    ]
    events = merger.merge([listings], NOW, TZ)
    assert len(events) == 10
    dates = [e.date for e in events]
    assert dates == sorted(dates)


def test_empty_groups_from_failed_providers():
    assert EventMerger().merge([[], []], NOW, TZ) == []


def test_staples_center_example():
    merger = EventMerger()
    now = _utc(2024, 4, 28, 18, 0)
    events = merger.merge(
        [
            [_listing("Lakers", "Staples Center", _utc(2024, 5, 2, 2, 0), 18000)],  # May 1 19:00 local
            [_listing("Lakers", "staples center", _utc(2024, 5, 2, 2, 45), 19500)],  # May 1 19:45 local
        ],
        now,
        TZ,
    )
    assert [e.capacity for e in events] == [19500]


def test_late_evening_event_is_today_for_west_coast_store():
    # Server sees 2024-05-01 in UTC; the store is still on April 30th at 22:00
    event = EventMerger().build_event(
        _listing("Late Set", "Club", _utc(2024, 5, 1, 6, 0), 1000), _utc(2024, 5, 1, 5, 0), TZ
    )
    assert event.is_today is True
    assert event.days_until_event == 0
    assert event.hours_until_event == 1.0
