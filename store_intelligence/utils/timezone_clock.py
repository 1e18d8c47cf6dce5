"""
Store-local wall-clock arithmetic.

Stores carry a fixed UTC offset string such as "GMT-07:00". The local
instant is always `UTC + offset`; hour and weekday are read from the clock
fields of that shifted value, never from a host-timezone-aware call, so the
server's own timezone can't leak into store time.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional, Tuple

DEFAULT_OFFSET_MINUTES = -480  # Pacific Standard

_OFFSET_PATTERN = re.compile(r"GMT([+-])(\d{2}):(\d{2})")

# Python weekday() numbering
MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY = range(7)
WEEKEND_DAYS = (SATURDAY, SUNDAY)


@dataclass(frozen=True)
class LocalTime:
    """Store-local wall clock; `wall_clock` is naive and already shifted"""
    wall_clock: datetime
    hour: int
    minute: int
    day_of_week: int
    offset_minutes: int

    @property
    def date(self) -> date:
        return self.wall_clock.date()


def parse_offset(offset_string: Optional[str]) -> int:
    """Parse "GMT+HH:MM" / "GMT-HH:MM" into signed minutes, -480 when unparseable."""
    if not offset_string:
        return DEFAULT_OFFSET_MINUTES
    match = _OFFSET_PATTERN.search(offset_string)
    if not match:
        return DEFAULT_OFFSET_MINUTES
    sign = 1 if match.group(1) == "+" else -1
    return sign * (int(match.group(2)) * 60 + int(match.group(3)))


def to_utc(instant: datetime) -> datetime:
    """Normalize to an aware UTC datetime (naive values are taken as UTC)."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def is_peak_hour(hour: int) -> bool:
    return 17 <= hour <= 20


def is_late_night(hour: int) -> bool:
    return hour >= 22 or hour < 2


def is_weekend(day_of_week: int) -> bool:
    return day_of_week in WEEKEND_DAYS


def is_slow_period(hour: int, day_of_week: int) -> bool:
    """Morning 9-11, afternoon 14-16, late night from 22 (23 on weekends); end hours exclusive."""
    late_start = 23 if is_weekend(day_of_week) else 22
    return 9 <= hour < 11 or 14 <= hour < 16 or hour >= late_start


class TimeZoneClock:
    """Converts UTC instants to store-local wall-clock time"""

    def __init__(self, now_fn: Optional[Callable[[], datetime]] = None):
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        """Current instant as aware UTC"""
        return to_utc(self._now_fn())

    def to_local(self, instant: datetime, offset_string: Optional[str]) -> datetime:
        """Naive store-local wall clock for a UTC instant"""
        offset = parse_offset(offset_string)
        return (to_utc(instant) + timedelta(minutes=offset)).replace(tzinfo=None)

    def local_time(self, now_utc: Optional[datetime] = None, offset_string: Optional[str] = None) -> LocalTime:
        """
        Store-local time for `now_utc` (defaults to the clock's now).

        Args:
            now_utc: UTC instant (naive values are treated as UTC)
            offset_string: store time zone code, e.g. "GMT-07:00"

        Returns:
            LocalTime with hour/minute/day_of_week taken from the shifted clock fields
        """
        instant = now_utc if now_utc is not None else self.now()
        offset = parse_offset(offset_string)
        wall = (to_utc(instant) + timedelta(minutes=offset)).replace(tzinfo=None)
        return LocalTime(
            wall_clock=wall,
            hour=wall.hour,
            minute=wall.minute,
            day_of_week=wall.weekday(),
            offset_minutes=offset,
        )

    def local_day_bounds(self, now_utc: datetime, offset_string: Optional[str]) -> Tuple[datetime, datetime]:
        """UTC instants of the store-local midnight that starts today and the one that ends it."""
        offset = parse_offset(offset_string)
        local_midnight = datetime.combine(self.to_local(now_utc, offset_string).date(), time.min)
        start = (local_midnight - timedelta(minutes=offset)).replace(tzinfo=timezone.utc)
        return start, start + timedelta(days=1)

    def is_local_today(self, instant: datetime, now_utc: datetime, offset_string: Optional[str]) -> bool:
        start, end = self.local_day_bounds(now_utc, offset_string)
        return start <= to_utc(instant) < end

    def local_days_between(self, now_utc: datetime, instant: datetime, offset_string: Optional[str]) -> int:
        """Calendar days from store-local today to the store-local date of `instant`."""
        today = self.to_local(now_utc, offset_string).date()
        return (self.to_local(instant, offset_string).date() - today).days
