"""
Store Intelligence Service

Facade for one store's insight briefing:

    validate store -> classify -> collect signals (concurrent) -> build prompt
    -> completion service -> validate response

generate_insight() is total: invalid input, a collector crash or any
completion failure all produce the canonical fallback insight, which has the
same shape as a real one.
"""
from typing import Any, Dict, Optional, Union

import httpx
from pydantic import ValidationError

from store_intelligence.config import Settings, get_settings
from store_intelligence.connectors import (
    GoogleTrafficProvider,
    NagerDateProvider,
    OpenWeatherProvider,
    PredictHQProvider,
    SeatGeekProvider,
    TicketmasterProvider,
    YelpEventsProvider,
)
from store_intelligence.models.signals import ExternalData, Insight, StoreClassification
from store_intelligence.models.store import Store
from store_intelligence.services.data_collector import DataCollector
from store_intelligence.services.event_merger import EventMerger
from store_intelligence.services.insight_validator import fallback_insight, validate_insight
from store_intelligence.services.llm_service import LLMService
from store_intelligence.services.prompt_builder import PromptBuilder, shift_phase
from store_intelligence.services.store_classifier import ClassificationStore, StoreClassifier
from store_intelligence.services.store_context import build_store_context
from store_intelligence.utils.cache import TTLCache
from store_intelligence.utils.errors import InvalidStoreError
from store_intelligence.utils.logger import log
from store_intelligence.utils.rate_limiter import ProviderClass, RateLimiter
from store_intelligence.utils.timezone_clock import TimeZoneClock

StoreInput = Union[Store, Dict[str, Any]]


class StoreIntelligenceService:
    """Insight facade; owns nothing global, every collaborator is injected"""

    def __init__(
        self,
        collector: DataCollector,
        classifier: StoreClassifier,
        prompt_builder: PromptBuilder,
        llm: LLMService,
        clock: Optional[TimeZoneClock] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.collector = collector
        self.classifier = classifier
        self.prompt_builder = prompt_builder
        self.llm = llm
        self.clock = clock or TimeZoneClock()
        self._http_client = http_client  # closed by aclose() when set

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        repository: Optional[ClassificationStore] = None,
        llm: Optional[LLMService] = None,
        clock: Optional[TimeZoneClock] = None,
    ) -> "StoreIntelligenceService":
        """
        Composition root: one cache, one rate limiter and one HTTP client
        shared by every provider for the lifetime of the service.
        """
        settings = settings or get_settings()
        clock = clock or TimeZoneClock()
        owned_client = None
        if http_client is None:
            http_client = owned_client = httpx.AsyncClient(timeout=settings.upstream_timeout_seconds)

        cache = TTLCache(default_ttl=settings.events_cache_ttl)
        rate_limiter = RateLimiter({
            ProviderClass.GENERAL: settings.rate_limit_general,
            ProviderClass.TICKETING: settings.rate_limit_ticketing,
            ProviderClass.MAPPING: settings.rate_limit_mapping,
        })
        common = dict(
            http_client=http_client,
            cache=cache,
            rate_limiter=rate_limiter,
            timeout=settings.upstream_timeout_seconds,
            cooldown=settings.rate_limited_cooldown,
        )
        event_options = dict(
            cache_ttl=settings.events_cache_ttl,
            radius_miles=settings.event_radius_miles,
            lookahead_days=settings.event_lookahead_days,
        )

        collector = DataCollector(
            weather=OpenWeatherProvider(
                api_key=settings.openweather_api_key, cache_ttl=settings.weather_cache_ttl, **common
            ),
            traffic=GoogleTrafficProvider(
                api_key=settings.google_maps_api_key,
                cache_ttl=settings.traffic_cache_ttl,
                sample_distance_km=settings.traffic_sample_distance_km,
                **common,
            ),
            event_providers=[
                TicketmasterProvider(api_key=settings.ticketmaster_api_key, **event_options, **common),
                SeatGeekProvider(api_key=settings.seatgeek_client_id, **event_options, **common),
                PredictHQProvider(api_key=settings.predicthq_access_token, **event_options, **common),
                YelpEventsProvider(api_key=settings.yelp_api_key, **event_options, **common),
            ],
            holidays=NagerDateProvider(cache_ttl=settings.holidays_cache_ttl, **common),
            cache=cache,
            merger=EventMerger(clock),
            clock=clock,
            holiday_country=settings.holiday_country,
            holiday_days_ahead=settings.holiday_days_ahead,
            boost_week_ttl=settings.boost_week_cache_ttl,
            task_timeout=settings.signal_task_timeout_seconds,
        )

        return cls(
            collector=collector,
            classifier=StoreClassifier(
                repository=repository,
                cache=cache,
                cache_ttl=settings.classification_cache_ttl,
                retry_ttl=settings.classification_retry_ttl,
            ),
            prompt_builder=PromptBuilder(clock, max_chars=settings.prompt_max_chars),
            llm=llm or LLMService(settings),
            clock=clock,
            http_client=owned_client,
        )

    @staticmethod
    def validate_store(store: StoreInput) -> Store:
        """
        Raises:
            InvalidStoreError: missing id/city/state or non-numeric coordinates
        """
        if isinstance(store, Store):
            return store
        if not isinstance(store, dict):
            raise InvalidStoreError(f"expected a store mapping, got {type(store).__name__}")
        try:
            return Store.model_validate(store)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise InvalidStoreError(f"invalid store input ({fields})")

    async def _classify(self, store: Store) -> StoreClassification:
        try:
            return await self.classifier.classify(store)
        except Exception as e:
            log.warning(f"Classification failed for store {store.store_id}, using proximity only: {e}")
            return self.classifier.auto_classify(store)

    async def collect_external_data(self, store: StoreInput) -> ExternalData:
        """Merged signal snapshot for a store (raises InvalidStoreError on bad input)"""
        store = self.validate_store(store)
        return await self.collector.collect(store, self.clock.now())

    async def generate_insight(self, store: StoreInput) -> Insight:
        """
        Generate one insight for a store. Never raises.

        Returns:
            Validated Insight, or the fallback insight when input is invalid or
            any stage fails irrecoverably
        """
        try:
            store = self.validate_store(store)
        except InvalidStoreError as e:
            log.error(f"Rejected insight request: {e}")
            return fallback_insight()

        try:
            now = self.clock.now()
            classification = await self._classify(store)
            context = build_store_context(store, classification, self.clock, now)
            data = await self.collector.collect(store, now)

            prompt = self.prompt_builder.build(store, data, context)
            system = self.prompt_builder.system_instruction(context)
            raw = await self.llm.complete_json(system, prompt)

            carryout = data.carryout_opportunity
            insight = validate_insight(
                raw,
                phase=shift_phase(context.hour),
                allowed_discount=carryout.discount if carryout else None,
            )
            log.info(f"Insight for store {store.store_id}: severity={insight.severity}")
            return insight

        except Exception as e:
            log.error(f"Insight generation failed for store {store.store_id}, using fallback: {e}")
            return fallback_insight()

    async def aclose(self) -> None:
        await self.classifier.drain()
        if self._http_client is not None:
            await self._http_client.aclose()
