"""
Google Maps Traffic Connector

Samples one short driving route from the store (offset by a fixed distance
north-east) and compares the live duration with the free-flow duration.
"""
from typing import Any, Dict, Optional

from store_intelligence.connectors.base import BaseProvider
from store_intelligence.models.signals import Traffic
from store_intelligence.models.store import Store
from store_intelligence.utils.errors import MalformedPayload
from store_intelligence.utils.rate_limiter import ProviderClass

KM_PER_DEGREE = 111  # rough, good enough for a sample route

SEVERE_DELAY_MINUTES = 20
MODERATE_DELAY_MINUTES = 10
DELIVERY_IMPACT_MINUTES = 10


def traffic_severity(delay_minutes: int) -> str:
    if delay_minutes > SEVERE_DELAY_MINUTES:
        return "severe"
    if delay_minutes > MODERATE_DELAY_MINUTES:
        return "moderate"
    return "light"


def normalize_traffic(payload: Dict[str, Any]) -> Optional[Traffic]:
    """Map a Directions API response to the Traffic signal (None when no route)."""
    routes = payload.get("routes") if isinstance(payload, dict) else None
    if not routes:
        return None
    try:
        leg = routes[0]["legs"][0]
        normal_seconds = int(leg["duration"]["value"])
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise MalformedPayload("google_traffic", f"unexpected route shape: {e}")

    traffic_seconds = int((leg.get("duration_in_traffic") or {}).get("value", normal_seconds))
    delay_minutes = max(0, round((traffic_seconds - normal_seconds) / 60))

    return Traffic(
        delay_minutes=delay_minutes,
        severity=traffic_severity(delay_minutes),
        affects_delivery=delay_minutes > DELIVERY_IMPACT_MINUTES,
        normal_minutes=round(normal_seconds / 60),
        traffic_minutes=round(traffic_seconds / 60),
    )


class GoogleTrafficProvider(BaseProvider):
    """Google Maps Directions API with departure_time=now"""

    name = "google_traffic"
    provider_class = ProviderClass.MAPPING
    directions_url = "https://maps.googleapis.com/maps/api/directions/json"

    def __init__(self, *args, sample_distance_km: float = 5.0, **kwargs):
        super().__init__(*args, **kwargs)
        self.sample_distance_km = sample_distance_km

    async def fetch(self, store: Store) -> Optional[Traffic]:
        return await self.fetch_cached(
            f"traffic_{store.store_id}",
            lambda: self._load(store),
            empty=None,
        )

    async def _load(self, store: Store) -> Optional[Traffic]:
        offset = self.sample_distance_km / KM_PER_DEGREE
        params = {
            "origin": f"{store.latitude},{store.longitude}",
            "destination": f"{store.latitude + offset},{store.longitude + offset}",
            "mode": "driving",
            "departure_time": "now",
            "traffic_model": "best_guess",
            "key": self.api_key,
        }
        payload = await self._get_json(self.directions_url, params=params)
        return normalize_traffic(payload)
