"""
Event Listing Connectors

Four independent event providers, each returning normalized listings
(name, venue, UTC start, capacity) for events near a store over the
look-ahead window. A provider's failure or missing key only empties its own
list; scoring and deduplication happen later in the EventMerger.
"""
from abc import abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from store_intelligence.connectors.base import BaseProvider, parse_utc
from store_intelligence.models.signals import EventListing
from store_intelligence.models.store import Store
from store_intelligence.utils.errors import MalformedPayload
from store_intelligence.utils.logger import log
from store_intelligence.utils.rate_limiter import ProviderClass

METERS_PER_MILE = 1609.34
UNKNOWN_CAPACITY = 0  # EventMerger substitutes its conservative default


def _as_capacity(value: Any) -> int:
    try:
        capacity = int(float(value))
    except (TypeError, ValueError):
        return UNKNOWN_CAPACITY
    return max(capacity, UNKNOWN_CAPACITY)


class EventProvider(BaseProvider):
    """Common fetch path for event listing providers"""

    def __init__(self, *args, radius_miles: int = 10, lookahead_days: int = 7, **kwargs):
        super().__init__(*args, **kwargs)
        self.radius_miles = radius_miles
        self.lookahead_days = lookahead_days

    async def fetch(self, store: Store, now: datetime) -> List[EventListing]:
        return await self.fetch_cached(
            f"events_{self.name}_{store.store_id}",
            lambda: self._load(store, now),
            empty=[],
        )

    async def _load(self, store: Store, now: datetime) -> List[EventListing]:
        payload = await self._request(store, now, now + timedelta(days=self.lookahead_days))
        rows = self._extract_rows(payload)
        if not isinstance(rows, list):
            raise MalformedPayload(self.name, "event list missing")

        listings = []
        for row in rows:
            try:
                listing = self._normalize(row)
            except (MalformedPayload, KeyError, TypeError, AttributeError) as e:
                log.debug(f"{self.name}: skipping listing: {e}")
                continue
            if listing is not None:
                listings.append(listing)

        log.debug(f"{self.name}: {len(listings)} events near store {store.store_id}")
        return listings

    @abstractmethod
    async def _request(self, store: Store, start: datetime, end: datetime) -> Any:
        """Call the provider for events between start and end (aware UTC)"""

    @abstractmethod
    def _extract_rows(self, payload: Any) -> Any:
        """Pull the list of raw events out of the response body"""

    @abstractmethod
    def _normalize(self, row: Dict[str, Any]) -> Optional[EventListing]:
        """Map one raw event to an EventListing (None to skip it)"""


class TicketmasterProvider(EventProvider):
    """Ticketmaster Discovery API v2"""

    name = "ticketmaster"
    provider_class = ProviderClass.TICKETING
    url = "https://app.ticketmaster.com/discovery/v2/events.json"

    async def _request(self, store: Store, start: datetime, end: datetime) -> Any:
        params = {
            "apikey": self.api_key,
            "latlong": f"{store.latitude},{store.longitude}",
            "radius": self.radius_miles,
            "unit": "miles",
            "startDateTime": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "endDateTime": end.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "size": 50,
            "sort": "date,asc",
        }
        return await self._get_json(self.url, params=params)

    def _extract_rows(self, payload: Any) -> Any:
        # No "_embedded" key means zero results
        return (payload.get("_embedded") or {}).get("events", [])

    def _normalize(self, row: Dict[str, Any]) -> Optional[EventListing]:
        start = (row.get("dates") or {}).get("start") or {}
        if not start.get("dateTime"):
            return None  # TBA / date-only listings can't be placed in a window
        venues = (row.get("_embedded") or {}).get("venues") or [{}]
        classifications = row.get("classifications") or [{}]
        return EventListing(
            name=row["name"],
            venue=venues[0].get("name", ""),
            date=parse_utc(start["dateTime"]),
            capacity=UNKNOWN_CAPACITY,
            type=((classifications[0].get("segment") or {}).get("name") or "event").lower(),
            source=self.name,
        )


class SeatGeekProvider(EventProvider):
    """SeatGeek Platform API v2"""

    name = "seatgeek"
    provider_class = ProviderClass.TICKETING
    url = "https://api.seatgeek.com/2/events"

    async def _request(self, store: Store, start: datetime, end: datetime) -> Any:
        params = {
            "client_id": self.api_key,
            "lat": store.latitude,
            "lon": store.longitude,
            "range": f"{self.radius_miles}mi",
            "datetime_utc.gte": start.strftime("%Y-%m-%dT%H:%M:%S"),
            "datetime_utc.lte": end.strftime("%Y-%m-%dT%H:%M:%S"),
            "per_page": 50,
        }
        return await self._get_json(self.url, params=params)

    def _extract_rows(self, payload: Any) -> Any:
        return payload.get("events", [])

    def _normalize(self, row: Dict[str, Any]) -> Optional[EventListing]:
        venue = row.get("venue") or {}
        return EventListing(
            name=row["title"],
            venue=venue.get("name", ""),
            date=parse_utc(row["datetime_utc"]),
            capacity=_as_capacity(venue.get("capacity")),
            type=row.get("type") or "event",
            source=self.name,
        )


class PredictHQProvider(EventProvider):
    """PredictHQ Events API"""

    name = "predicthq"
    provider_class = ProviderClass.GENERAL
    url = "https://api.predicthq.com/v1/events/"
    categories = "concerts,sports,festivals,performing-arts,conferences,expos,community"

    async def _request(self, store: Store, start: datetime, end: datetime) -> Any:
        params = {
            "within": f"{self.radius_miles}mi@{store.latitude},{store.longitude}",
            "active.gte": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "active.lte": end.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "category": self.categories,
            "limit": 50,
            "sort": "start",
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        return await self._get_json(self.url, params=params, headers=headers)

    def _extract_rows(self, payload: Any) -> Any:
        return payload.get("results", [])

    def _normalize(self, row: Dict[str, Any]) -> Optional[EventListing]:
        venue = next(
            (e.get("name", "") for e in row.get("entities") or [] if e.get("type") == "venue"),
            "",
        )
        return EventListing(
            name=row["title"],
            venue=venue,
            date=parse_utc(row["start"]),
            capacity=_as_capacity(row.get("phq_attendance")),
            type=row.get("category") or "event",
            source=self.name,
        )


class YelpEventsProvider(EventProvider):
    """Yelp Fusion Events API"""

    name = "yelp"
    provider_class = ProviderClass.GENERAL
    url = "https://api.yelp.com/v3/events"
    max_radius_meters = 40000

    async def _request(self, store: Store, start: datetime, end: datetime) -> Any:
        params = {
            "latitude": store.latitude,
            "longitude": store.longitude,
            "radius": min(int(self.radius_miles * METERS_PER_MILE), self.max_radius_meters),
            "start_date": int(start.timestamp()),
            "end_date": int(end.timestamp()),
            "limit": 50,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        return await self._get_json(self.url, params=params, headers=headers)

    def _extract_rows(self, payload: Any) -> Any:
        return payload.get("events", [])

    def _normalize(self, row: Dict[str, Any]) -> Optional[EventListing]:
        location = row.get("location") or {}
        venue = location.get("address1") or ", ".join(location.get("display_address") or [])
        return EventListing(
            name=row["name"],
            venue=venue,
            date=parse_utc(row["time_start"]),
            capacity=_as_capacity(row.get("attending_count")),
            type=row.get("category") or "event",
            source=self.name,
        )
