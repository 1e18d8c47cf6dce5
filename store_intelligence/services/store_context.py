"""Per-request store context: classification plus store-local time flags."""
from datetime import datetime
from typing import Optional

from store_intelligence.models.signals import StoreClassification, StoreContext
from store_intelligence.models.store import Store
from store_intelligence.utils.timezone_clock import (
    TimeZoneClock,
    is_late_night,
    is_peak_hour,
    is_slow_period,
    is_weekend,
)


def build_store_context(
    store: Store,
    classification: StoreClassification,
    clock: TimeZoneClock,
    now: Optional[datetime] = None,
) -> StoreContext:
    local = clock.local_time(now, store.time_zone_code)
    return StoreContext(
        classification=classification,
        local_time=local.wall_clock,
        hour=local.hour,
        day_of_week=local.day_of_week,
        is_weekend=is_weekend(local.day_of_week),
        is_peak_time=is_peak_hour(local.hour),
        is_late_night=is_late_night(local.hour),
        is_slow_period=is_slow_period(local.hour, local.day_of_week),
    )
