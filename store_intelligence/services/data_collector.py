"""
Data Collector

Fans out every signal fetch for one store concurrently, joins them all, and
assembles a single ExternalData snapshot.

Each task gets its own timeout at spawn time and its own failure handling,
so one slow or broken provider only blanks its own signal: scalars default
to None, event lists to []. The upcoming-holiday lookup runs after the join;
it reuses the holiday lists the boost-week task just cached. Both holiday
signals fail (and stay uncached) while any needed holiday year is missing.
"""
import asyncio
from datetime import date, datetime
from typing import Any, Awaitable, Dict, List, Optional, Sequence, Tuple

from store_intelligence.connectors.events import EventProvider
from store_intelligence.connectors.google_traffic import GoogleTrafficProvider
from store_intelligence.connectors.nager_date import NagerDateProvider
from store_intelligence.connectors.openweather import OpenWeatherProvider
from store_intelligence.models.signals import BoostWeek, ExternalData, Holiday, PublicHoliday, SlowPeriod
from store_intelligence.models.store import Store
from store_intelligence.services.event_merger import EventMerger
from store_intelligence.services.heuristics import (
    detect_boost_week,
    detect_slow_period,
    find_upcoming_holiday,
)
from store_intelligence.utils.cache import TTLCache
from store_intelligence.utils.errors import ProviderError
from store_intelligence.utils.logger import log
from store_intelligence.utils.timezone_clock import LocalTime, TimeZoneClock


class DataCollector:
    """Concurrent fan-out / fan-in over all signal fetchers"""

    def __init__(
        self,
        weather: OpenWeatherProvider,
        traffic: GoogleTrafficProvider,
        event_providers: Sequence[EventProvider],
        holidays: NagerDateProvider,
        cache: TTLCache,
        merger: Optional[EventMerger] = None,
        clock: Optional[TimeZoneClock] = None,
        holiday_country: str = "US",
        holiday_days_ahead: int = 7,
        boost_week_ttl: float = 6 * 3600,
        task_timeout: float = 10.0,
    ):
        self.weather = weather
        self.traffic = traffic
        self.event_providers = list(event_providers)
        self.holidays = holidays
        self.cache = cache
        self.clock = clock or TimeZoneClock()
        self.merger = merger or EventMerger(self.clock)
        self.holiday_country = holiday_country
        self.holiday_days_ahead = holiday_days_ahead
        self.boost_week_ttl = boost_week_ttl
        self.task_timeout = task_timeout

    async def collect(self, store: Store, now: Optional[datetime] = None) -> ExternalData:
        """
        Collect all external signals for a store

        Args:
            store: Validated store projection
            now: UTC instant to evaluate at (defaults to the clock's now)

        Returns:
            ExternalData with every signal present or defaulted
        """
        now = now if now is not None else self.clock.now()
        local = self.clock.local_time(now, store.time_zone_code)

        tasks: List[Tuple[str, Awaitable[Any], Any]] = [
            ("weather", self.weather.fetch(store), None),
            ("traffic", self.traffic.fetch(store), None),
        ]
        for provider in self.event_providers:
            tasks.append((f"events_{provider.name}", provider.fetch(store, now), []))
        tasks.append(("boost_week", self._boost_week(store, local.date), None))
        tasks.append(("slow_period", self._slow_period(local), None))

        settled = await asyncio.gather(*(
            self._settle(name, coro, default) for name, coro, default in tasks
        ))
        results: Dict[str, Any] = {}
        failed: List[str] = []
        for (name, _, _), (value, ok) in zip(tasks, settled):
            results[name] = value
            if not ok or value is None:
                failed.append(name)

        event_groups = [results[f"events_{p.name}"] for p in self.event_providers]
        events = self.merger.merge(event_groups, now, store.time_zone_code)

        upcoming_holiday, ok = await self._settle("holidays", self._upcoming_holiday(local.date), None)
        if not ok:
            failed.append("holidays")

        data = ExternalData(
            collected_at=now,
            weather=results["weather"],
            traffic=results["traffic"],
            events=events,
            boost_week=results["boost_week"],
            slow_period=results["slow_period"],
            upcoming_holiday=upcoming_holiday,
            failed_signals=failed,
        )

        log.info(
            f"Collected signals for store {store.store_id}: "
            f"{len(events)} events, missing={failed or 'none'}"
        )
        return data

    async def _settle(self, name: str, coro: Awaitable[Any], default: Any) -> Tuple[Any, bool]:
        """Await one task with its own timeout; any failure becomes (default, False)."""
        try:
            return await asyncio.wait_for(coro, timeout=self.task_timeout), True
        except asyncio.TimeoutError:
            log.warning(f"Signal {name} timed out after {self.task_timeout}s")
        except Exception as e:
            log.warning(f"Signal {name} failed: {type(e).__name__}: {e}")
        return default, False

    async def _boost_week(self, store: Store, today: date) -> BoostWeek:
        key = f"boost_week_{store.store_id}_{today.isoformat()}"
        cached = self.cache.get(key, self.boost_week_ttl)
        if cached is not None:
            return cached

        # In January the most recent holiday may be last year's
        years = [today.year - 1, today.year] if today.month == 1 else [today.year]
        holidays = await self._holidays_for(years)
        boost_week = detect_boost_week(today, holidays)
        self.cache.set(key, boost_week, ttl=self.boost_week_ttl)
        return boost_week

    async def _slow_period(self, local: LocalTime) -> SlowPeriod:
        return detect_slow_period(local.hour, local.day_of_week)

    async def _upcoming_holiday(self, today: date) -> Optional[Holiday]:
        # In December the look-ahead can cross into next year
        years = [today.year, today.year + 1] if today.month == 12 else [today.year]
        holidays = await self._holidays_for(years)
        return find_upcoming_holiday(holidays, today, self.holiday_days_ahead)

    async def _holidays_for(self, years: List[int]) -> List[PublicHoliday]:
        holidays, complete = await self.holidays.fetch_years(years, self.holiday_country)
        if not complete:
            raise ProviderError(self.holidays.name, f"holidays unavailable for {years}")
        return holidays
