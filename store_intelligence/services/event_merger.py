"""
Event Merger

Combines listings from every event provider into one scored, deduplicated,
date-ordered list for a store.

Impact score (same for all providers, clamped to [0, 1]):
    capacity tier   0.6 (>=20k) / 0.4 (>=10k) / 0.2 (>=5k) / 0.1 (>=1k)
    same day        +0.2 when the event starts within the next 24h
    prime time      +0.3 when the store-local start hour is 17-21
    weekend         +0.1 when the store-local start day is Friday or Saturday

"Today" is the store-local calendar day, never the server's: providers hand
back UTC timestamps and a late-evening event on the US west coast is already
"tomorrow" in UTC.
"""
import math
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from store_intelligence.models.signals import Event, EventListing, EventWindow
from store_intelligence.services.heuristics import detect_preorder_opportunity
from store_intelligence.utils.helpers import clamp
from store_intelligence.utils.timezone_clock import FRIDAY, SATURDAY, TimeZoneClock, to_utc

DEFAULT_EVENT_CAPACITY = 5000

CAPACITY_TIERS = (
    (20000, 0.6),
    (10000, 0.4),
    (5000, 0.2),
    (1000, 0.1),
)
SAME_DAY_BONUS = 0.2
PRIME_TIME_BONUS = 0.3
WEEKEND_BONUS = 0.1
PRIME_TIME_HOURS = (17, 21)

MIN_IMPACT = 0.3
MAX_EVENTS = 10
DEDUP_BUCKET_HOURS = 2


def capacity_score(capacity: int) -> float:
    for threshold, score in CAPACITY_TIERS:
        if capacity >= threshold:
            return score
    return 0.0


def pre_event_window(start: datetime, capacity: int) -> EventWindow:
    """Orders before the event: [start-3h, start-30m], one driver per 20 orders."""
    expected = math.floor(capacity * 0.005)
    return EventWindow(
        start=start - timedelta(hours=3),
        end=start - timedelta(minutes=30),
        expected_orders=expected,
        drivers_needed=math.ceil(expected / 20),
    )


def post_event_window(start: datetime, capacity: int) -> EventWindow:
    """Orders after the event: [start, start+2h] peaking 45 minutes in, one driver per 15 orders."""
    expected = math.floor(capacity * 0.01)
    return EventWindow(
        start=start,
        end=start + timedelta(hours=2),
        expected_orders=expected,
        drivers_needed=math.ceil(expected / 15),
        peak_time=start + timedelta(minutes=45),
    )


class EventMerger:
    """Scores, deduplicates and selects events for one store"""

    def __init__(
        self,
        clock: Optional[TimeZoneClock] = None,
        min_impact: float = MIN_IMPACT,
        max_events: int = MAX_EVENTS,
    ):
        self.clock = clock or TimeZoneClock()
        self.min_impact = min_impact
        self.max_events = max_events

    def score_impact(self, listing: EventListing, now: datetime, offset_string: Optional[str]) -> float:
        start = to_utc(listing.date)
        score = capacity_score(listing.capacity)

        hours_until = (start - to_utc(now)).total_seconds() / 3600
        if 0 <= hours_until <= 24:
            score += SAME_DAY_BONUS

        local_start = self.clock.to_local(start, offset_string)
        if PRIME_TIME_HOURS[0] <= local_start.hour <= PRIME_TIME_HOURS[1]:
            score += PRIME_TIME_BONUS
        if local_start.weekday() in (FRIDAY, SATURDAY):
            score += WEEKEND_BONUS

        return round(clamp(score, 0.0, 1.0), 2)

    def build_event(self, listing: EventListing, now: datetime, offset_string: Optional[str]) -> Event:
        start = to_utc(listing.date)
        now = to_utc(now)
        capacity = listing.capacity if listing.capacity and listing.capacity > 0 else DEFAULT_EVENT_CAPACITY

        scored = EventListing(
            name=listing.name,
            venue=listing.venue,
            date=start,
            capacity=capacity,
            type=listing.type,
            source=listing.source,
        )
        is_today = self.clock.is_local_today(start, now, offset_string)
        days_until = self.clock.local_days_between(now, start, offset_string)

        return Event(
            name=listing.name,
            venue=listing.venue,
            date=start,
            capacity=capacity,
            type=listing.type,
            source=listing.source,
            impact=self.score_impact(scored, now, offset_string),
            hours_until_event=round((start - now).total_seconds() / 3600, 1),
            days_until_event=days_until,
            is_today=is_today,
            is_past_today=is_today and start < now,
            pre_event_window=pre_event_window(start, capacity),
            post_event_window=post_event_window(start, capacity),
            pre_order_opportunity=detect_preorder_opportunity(listing.name, capacity, days_until),
        )

    def dedup_key(self, event: Event, offset_string: Optional[str]) -> Tuple[str, str, int]:
        """(venue, store-local date, 2-hour bucket)"""
        local_start = self.clock.to_local(event.date, offset_string)
        return (
            event.venue.strip().lower(),
            local_start.date().isoformat(),
            local_start.hour // DEDUP_BUCKET_HOURS,
        )

    def deduplicate(self, events: Iterable[Event], offset_string: Optional[str]) -> List[Event]:
        """Collapse listings of the same show from different providers; the larger capacity wins."""
        groups: Dict[Tuple[str, str, int], Event] = {}
        for event in events:
            key = self.dedup_key(event, offset_string)
            kept = groups.get(key)
            if kept is None or event.capacity > kept.capacity:
                groups[key] = event
        return list(groups.values())

    def merge(
        self,
        listing_groups: Iterable[Iterable[EventListing]],
        now: datetime,
        offset_string: Optional[str],
    ) -> List[Event]:
        """
        Merge provider results into the final event list.

        Args:
            listing_groups: one iterable of listings per provider (failed providers pass [])
            now: current UTC instant
            offset_string: store time zone code

        Returns:
            Up to `max_events` events ordered by date (larger capacity first on ties),
            keeping only impact >= min_impact or happening today
        """
        built = [
            self.build_event(listing, now, offset_string)
            for group in listing_groups
            for listing in group
        ]
        merged = self.deduplicate(built, offset_string)
        merged.sort(key=lambda e: (e.date, -e.capacity))
        selected = [e for e in merged if e.impact >= self.min_impact or e.is_today]
        return selected[: self.max_events]
