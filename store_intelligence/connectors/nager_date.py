"""
Nager.Date Connector

Public holidays per (year, country). Holidays change once a year, so results
are cached for 30 days under "holidays_{year}_{country}". No API key needed.
"""
from datetime import date
from typing import Any, List, Optional, Tuple

from store_intelligence.connectors.base import BaseProvider
from store_intelligence.models.signals import PublicHoliday
from store_intelligence.utils.errors import MalformedPayload
from store_intelligence.utils.rate_limiter import ProviderClass


def normalize_holidays(payload: Any) -> List[PublicHoliday]:
    if not isinstance(payload, list):
        raise MalformedPayload("nager_date", "expected a list of holidays")

    holidays = []
    for row in payload:
        try:
            holiday_date = date.fromisoformat(row["date"])
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedPayload("nager_date", f"bad holiday row: {e}")
        types = row.get("types") or []
        holidays.append(PublicHoliday(
            date=holiday_date,
            name=row.get("name") or row.get("localName") or "Holiday",
            is_public="Public" in types if types else bool(row.get("global", True)),
        ))
    return holidays


class NagerDateProvider(BaseProvider):
    """date.nager.at public holiday API"""

    name = "nager_date"
    provider_class = ProviderClass.GENERAL
    requires_key = False
    base_url = "https://date.nager.at/api/v3"

    async def fetch(self, year: int, country: str = "US") -> Optional[List[PublicHoliday]]:
        """Holidays for one year, or None when the provider could not be reached"""
        return await self.fetch_cached(
            f"holidays_{year}_{country}",
            lambda: self._load(year, country),
        )

    async def fetch_years(
        self, years: List[int], country: str = "US"
    ) -> Tuple[List[PublicHoliday], bool]:
        """
        Holidays across several years.

        Returns:
            (holidays, complete); complete is False when any year failed to
            load, so callers can tell an outage from a year without holidays
        """
        holidays: List[PublicHoliday] = []
        complete = True
        for year in years:
            rows = await self.fetch(year, country)
            if rows is None:
                complete = False
                continue
            holidays.extend(rows)
        return holidays, complete

    async def _load(self, year: int, country: str) -> List[PublicHoliday]:
        payload = await self._get_json(f"{self.base_url}/PublicHolidays/{year}/{country}")
        return normalize_holidays(payload)
