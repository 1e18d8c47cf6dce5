"""
Store Classification Service

Classifies a store as military / college / downtown / suburban and attaches
the demand patterns for that type. Lookup order:

1. process cache ("classification_{store_id}")
2. persistence collaborator (tolerates read failures; the geometry answer is
   then cached briefly and not written back)
3. proximity to known military bases, then colleges, in the store's state
4. dense urban core city list -> downtown
5. suburban / standard

Auto-classifications are written back without blocking the request.
"""
import asyncio
from typing import Any, Dict, List, Optional, Protocol, Set, Tuple

from store_intelligence.models.signals import StoreClassification
from store_intelligence.models.store import Store
from store_intelligence.utils.cache import TTLCache
from store_intelligence.utils.helpers import haversine_miles
from store_intelligence.utils.logger import log

# Seed locations by state; radius in miles
DEFAULT_LOCATIONS: Dict[str, Dict[str, List[Dict[str, Any]]]] = {
    "military": {
        "CA": [
            {"name": "Camp Pendleton", "lat": 33.2341, "lng": -117.3897, "radius": 20},
            {"name": "Travis AFB", "lat": 38.2627, "lng": -121.9275, "radius": 15},
            {"name": "Naval Base San Diego", "lat": 32.6859, "lng": -117.1831, "radius": 15},
        ],
    },
    "college": {
        "CA": [
            {"name": "UC Berkeley", "lat": 37.8719, "lng": -122.2585, "radius": 5},
            {"name": "UCLA", "lat": 34.0689, "lng": -118.4452, "radius": 5},
            {"name": "Stanford", "lat": 37.4275, "lng": -122.1697, "radius": 5},
        ],
    },
}

DEFAULT_DOWNTOWN_CITIES = frozenset({
    "los angeles", "san francisco", "san diego", "san jose", "oakland", "sacramento",
})

DEMAND_PATTERNS: Dict[str, Dict[str, Any]] = {
    "military": {
        "payday_surge": {"dates": [1, 15], "multiplier": 1.45},
        "weekly_pattern": {"friday": 1.4, "saturday": 1.5},
    },
    "college": {
        "weekly_pattern": {"thursday": 1.3, "friday": 1.4, "saturday": 1.5},
        "late_night_multiplier": 1.5,
    },
    "downtown": {
        "weekly_pattern": {"friday": 1.25, "saturday": 1.2},
        "lunch_rush_hours": "11-13",
    },
    "suburban": {
        "weekly_pattern": {"friday": 1.2, "saturday": 1.3},
        "family_dinner_hours": "17-19",
    },
}

STORE_TYPES = frozenset(DEMAND_PATTERNS)


class ClassificationStore(Protocol):
    async def read_classification(self, store_id: str) -> Optional[Dict[str, str]]: ...

    async def write_classification(self, store_id: str, classification: Dict[str, str]) -> None: ...


def patterns_for(store_type: str) -> Dict[str, Any]:
    return DEMAND_PATTERNS.get(store_type, DEMAND_PATTERNS["suburban"])


class StoreClassifier:
    """Classification with cache -> database -> geometry fallback"""

    def __init__(
        self,
        repository: Optional[ClassificationStore] = None,
        cache: Optional[TTLCache] = None,
        cache_ttl: float = 24 * 3600,
        retry_ttl: float = 300,
        locations: Optional[Dict[str, Dict[str, List[Dict[str, Any]]]]] = None,
        downtown_cities: Optional[Set[str]] = None,
    ):
        self.repository = repository
        self.cache = cache or TTLCache(default_ttl=cache_ttl)
        self.cache_ttl = cache_ttl
        self.retry_ttl = retry_ttl
        self.locations = locations if locations is not None else DEFAULT_LOCATIONS
        self.downtown_cities = downtown_cities if downtown_cities is not None else DEFAULT_DOWNTOWN_CITIES
        self._pending_writes: Set[asyncio.Task] = set()

    async def classify(self, store: Store) -> StoreClassification:
        key = f"classification_{store.store_id}"
        cached = self.cache.get(key, self.cache_ttl)
        if cached is not None:
            return cached

        stored, reachable = await self._read_stored(store.store_id)
        if stored is not None:
            classification = StoreClassification(
                type=stored["type"],
                sub_type=stored.get("sub_type") or "standard",
                patterns=patterns_for(stored["type"]),
                source="database",
            )
        else:
            classification = self.auto_classify(store)
            if not reachable:
                # Ask the database again soon; never overwrite a row we could not read
                self.cache.set(key, classification, ttl=self.retry_ttl)
                return classification
            self._schedule_write(store.store_id, classification)

        self.cache.set(key, classification, ttl=self.cache_ttl)
        return classification

    def auto_classify(self, store: Store) -> StoreClassification:
        """Geometry-based classification from seed locations"""
        for store_type in ("military", "college"):
            nearby = self.find_nearby(store, self.locations.get(store_type, {}).get(store.state.upper(), []))
            if nearby:
                return StoreClassification(
                    type=store_type,
                    sub_type=nearby["name"],
                    patterns=patterns_for(store_type),
                )

        if store.city.strip().lower() in self.downtown_cities:
            return StoreClassification(type="downtown", sub_type="urban_core", patterns=patterns_for("downtown"))

        return StoreClassification(type="suburban", sub_type="standard", patterns=patterns_for("suburban"))

    @staticmethod
    def find_nearby(store: Store, locations: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        for location in locations:
            distance = haversine_miles(store.latitude, store.longitude, location["lat"], location["lng"])
            if distance <= location["radius"]:
                return location
        return None

    async def _read_stored(self, store_id: str) -> Tuple[Optional[Dict[str, str]], bool]:
        """(usable stored row or None, whether the repository answered)"""
        if self.repository is None:
            return None, True
        try:
            stored = await self.repository.read_classification(store_id)
        except Exception as e:
            log.warning(f"Classification lookup failed for store {store_id}, using proximity: {e}")
            return None, False
        if stored and stored.get("type") in STORE_TYPES:
            return stored, True
        return None, True

    def _schedule_write(self, store_id: str, classification: StoreClassification) -> None:
        if self.repository is None:
            return
        task = asyncio.create_task(self._write_back(store_id, classification))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _write_back(self, store_id: str, classification: StoreClassification) -> None:
        try:
            await self.repository.write_classification(
                store_id, {"type": classification.type, "sub_type": classification.sub_type}
            )
        except Exception as e:
            log.warning(f"Could not persist classification for store {store_id}: {e}")

    async def drain(self) -> None:
        """Wait for outstanding write-backs (shutdown and tests)."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)
