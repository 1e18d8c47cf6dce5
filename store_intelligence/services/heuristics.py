"""
Heuristic Detectors

Deterministic (no LLM, no I/O) opportunity detection over the current
store-local date/time and the merged signals:

- carryout opportunity (weather-triggered discount)
- pre-order opportunity (large events 2-7 days out)
- boost week (historically strong promotional periods)
- slow period (named low-volume windows and what to do in them)
- upcoming holiday (nearest public holiday within a look-ahead)
"""
import math
from datetime import date
from typing import Iterable, List, Optional

from store_intelligence.models.signals import (
    BoostWeek,
    CarryoutOpportunity,
    Holiday,
    PreOrderOpportunity,
    PublicHoliday,
    SlowPeriod,
    SlowWindow,
)
from store_intelligence.utils.timezone_clock import TUESDAY, WEDNESDAY, THURSDAY, is_weekend

# ---------------------------------------------------------------------------
# Weather classification
# ---------------------------------------------------------------------------

RAIN_CONDITIONS = frozenset({"Rain", "Drizzle", "Thunderstorm"})
SEVERE_CONDITIONS = frozenset({"Thunderstorm", "Snow", "Tornado", "Squall"})

SEVERE_HEAT_F = 95
SEVERE_COLD_F = 35
SEVERE_WIND_MPH = 25

SEVERE_WEATHER_DISCOUNT = 50
RAIN_DISCOUNT = 30


def _normalize_condition(condition: Optional[str]) -> str:
    return (condition or "").strip().title()


def is_rain(condition: Optional[str]) -> bool:
    return _normalize_condition(condition) in RAIN_CONDITIONS


def is_severe_weather(
    condition: Optional[str],
    temperature: Optional[float] = None,
    wind_speed: Optional[float] = None,
) -> bool:
    if _normalize_condition(condition) in SEVERE_CONDITIONS:
        return True
    if temperature is not None and (temperature > SEVERE_HEAT_F or temperature < SEVERE_COLD_F):
        return True
    return wind_speed is not None and wind_speed > SEVERE_WIND_MPH


def detect_carryout_opportunity(
    condition: Optional[str],
    temperature: Optional[float] = None,
    wind_speed: Optional[float] = None,
) -> Optional[CarryoutOpportunity]:
    """
    Weather-triggered carryout discount.

    Severe weather (50%) takes priority over rain (30%); anything milder
    (clouds, haze, mist, clear) never produces a discount.
    """
    if is_severe_weather(condition, temperature, wind_speed):
        return CarryoutOpportunity(
            is_active=True,
            discount=SEVERE_WEATHER_DISCOUNT,
            message=f"Severe weather ({_normalize_condition(condition) or 'extreme conditions'}): "
                    f"push {SEVERE_WEATHER_DISCOUNT}% off carryout to ease delivery load",
            reason="severe_weather",
        )
    if is_rain(condition):
        return CarryoutOpportunity(
            is_active=True,
            discount=RAIN_DISCOUNT,
            message=f"Rain: offer {RAIN_DISCOUNT}% off carryout to shift demand from delivery",
            reason="rain",
        )
    return None


# ---------------------------------------------------------------------------
# Pre-order opportunity
# ---------------------------------------------------------------------------

PREORDER_MIN_DAYS = 2
PREORDER_MAX_DAYS = 7
PREORDER_MIN_CAPACITY = 5000
PREORDER_HIGH_URGENCY_DAYS = 3


def detect_preorder_opportunity(
    event_name: str,
    capacity: int,
    days_until_event: int,
) -> Optional[PreOrderOpportunity]:
    """Large events 2-7 days out justify an early marketing push."""
    if not (PREORDER_MIN_DAYS <= days_until_event <= PREORDER_MAX_DAYS):
        return None
    if capacity <= PREORDER_MIN_CAPACITY:
        return None

    urgency = "HIGH" if days_until_event <= PREORDER_HIGH_URGENCY_DAYS else "MEDIUM"
    target_orders = math.floor(capacity * 0.01)
    return PreOrderOpportunity(
        is_active=True,
        event_name=event_name,
        urgency=urgency,
        target_orders=target_orders,
        days_until_event=days_until_event,
        message=f"Start pre-order push for {event_name} in {days_until_event} days "
                f"(target {target_orders} orders)",
    )


# ---------------------------------------------------------------------------
# Boost week
# ---------------------------------------------------------------------------

BOOST_MONTHS = {1, 4, 8, 11}
# Week-of-month that historically carried the boost for each boost month
HISTORICAL_BOOST_WEEKS = {1: 2, 4: 3, 8: 4, 11: 1}
BOOST_WEEKDAYS = {TUESDAY, WEDNESDAY, THURSDAY}

POST_HOLIDAY_MIN_DAYS = 5
POST_HOLIDAY_MAX_DAYS = 14


def week_of_month(day: date) -> int:
    return (day.day - 1) // 7 + 1


def detect_boost_week(today: date, holidays: Iterable[PublicHoliday]) -> BoostWeek:
    """
    Additive confidence score:

    +30  5-14 days since the last public holiday
    +20  month is January, April, August or November
    +25  ... and today falls in that month's historical boost week
    +5   Tuesday through Thursday
    """
    confidence = 0
    reasons: List[str] = []

    past = [h for h in holidays if h.is_public and h.date <= today]
    last_holiday = max(past, key=lambda h: h.date) if past else None
    days_since = (today - last_holiday.date).days if last_holiday else None

    if days_since is not None and POST_HOLIDAY_MIN_DAYS <= days_since <= POST_HOLIDAY_MAX_DAYS:
        confidence += 30
        reasons.append(f"{days_since} days after {last_holiday.name}")

    if today.month in BOOST_MONTHS:
        confidence += 20
        reasons.append(f"{today.strftime('%B')} is a historical boost month")
        if week_of_month(today) == HISTORICAL_BOOST_WEEKS[today.month]:
            confidence += 25
            reasons.append(f"week {week_of_month(today)} matches past boost weeks")

    if today.weekday() in BOOST_WEEKDAYS:
        confidence += 5
        reasons.append("mid-week promotion day")

    return BoostWeek(
        confidence=confidence,
        is_high_probability_period=confidence > 50,
        urgency="HIGH" if confidence > 70 else "MEDIUM",
        reasons=reasons,
        days_since_holiday=days_since,
        last_holiday=last_holiday.name if last_holiday else None,
    )


# ---------------------------------------------------------------------------
# Slow periods
# ---------------------------------------------------------------------------

WEEKDAY_SLOW_WINDOWS = (
    SlowWindow("morning", 9, 11, -35, "high"),
    SlowWindow("afternoon", 14, 16, -25, "high"),
    SlowWindow("lateNight", 22, 24, -40, "medium"),
)
WEEKEND_SLOW_WINDOWS = (
    SlowWindow("morning", 9, 11, -35, "high"),
    SlowWindow("afternoon", 14, 16, -25, "medium"),
    SlowWindow("lateNight", 23, 24, -30, "medium"),
)

SLOW_PERIOD_RECOMMENDATIONS = {
    "morning": [
        "Run prep and dough management while volume is low",
        "Schedule a single driver until 11",
    ],
    "afternoon": [
        "Send drivers on breaks in rotation",
        "Restock and pre-fold boxes ahead of the dinner rush",
    ],
    "lateNight": [
        "Cut to closing driver count",
        "Push late-night carryout deals to students and shift workers",
    ],
}


def slow_windows_for(day_of_week: int):
    return WEEKEND_SLOW_WINDOWS if is_weekend(day_of_week) else WEEKDAY_SLOW_WINDOWS


def detect_slow_period(hour: int, day_of_week: int) -> SlowPeriod:
    """Current slow window (if any), else the next one to come, by store-local hour."""
    windows = slow_windows_for(day_of_week)

    for window in windows:
        if window.start_hour <= hour < window.end_hour:
            return SlowPeriod(
                is_slow_period=True,
                current_window=window,
                recommendations=list(SLOW_PERIOD_RECOMMENDATIONS.get(window.name, [])),
            )

    upcoming = [w for w in windows if w.start_hour > hour]
    if upcoming:
        next_window = upcoming[0]
        hours_until = next_window.start_hour - hour
    else:
        # Tomorrow's first window
        tomorrow = slow_windows_for((day_of_week + 1) % 7)
        next_window = tomorrow[0]
        hours_until = 24 - hour + next_window.start_hour

    return SlowPeriod(
        is_slow_period=False,
        next_window=next_window,
        hours_until_next=hours_until,
    )


# ---------------------------------------------------------------------------
# Upcoming holiday
# ---------------------------------------------------------------------------

HIGH_IMPACT_HOLIDAYS = ("Independence Day", "Memorial Day", "Labor Day", "New Year")
MEDIUM_IMPACT_HOLIDAYS = (
    "Martin Luther King", "Presidents", "Washington", "Columbus",
    "Indigenous", "Veterans", "Juneteenth",
)

HOLIDAY_IMPACT = {"high": 50, "medium": 35, "low": 20}


def holiday_impact(name: str) -> int:
    lowered = name.lower()
    if any(h.lower() in lowered for h in HIGH_IMPACT_HOLIDAYS):
        return HOLIDAY_IMPACT["high"]
    if any(h.lower() in lowered for h in MEDIUM_IMPACT_HOLIDAYS):
        return HOLIDAY_IMPACT["medium"]
    return HOLIDAY_IMPACT["low"]


def find_upcoming_holiday(
    holidays: Iterable[PublicHoliday],
    today: date,
    days_ahead: int = 7,
) -> Optional[Holiday]:
    """Nearest public holiday from today through `days_ahead` days out."""
    candidates = [
        h for h in holidays
        if h.is_public and 0 <= (h.date - today).days <= days_ahead
    ]
    if not candidates:
        return None

    nearest = min(candidates, key=lambda h: h.date)
    return Holiday(
        name=nearest.name,
        date=nearest.date,
        days_until=(nearest.date - today).days,
        expected_impact=holiday_impact(nearest.name),
    )
