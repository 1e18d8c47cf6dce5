"""
Base Provider Class

All upstream signal providers inherit from this base class.
Provides the shared fetch path: cache lookup, rate limiting, bounded HTTP
call, normalization and failure containment.
"""
import asyncio
from abc import ABC
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from dateutil import parser as date_parser

from store_intelligence.utils.cache import TTLCache
from store_intelligence.utils.errors import (
    MalformedPayload,
    ProviderError,
    ProviderNotConfigured,
    ProviderRateLimited,
)
from store_intelligence.utils.logger import log
from store_intelligence.utils.rate_limiter import ProviderClass, RateLimiter
from store_intelligence.utils.timezone_clock import to_utc

# Cached in place of a payload while a provider is cooling down after a 429
_COOLDOWN = object()


def parse_utc(value: Any) -> datetime:
    """Parse a provider timestamp to aware UTC; naive values are taken as UTC."""
    if not value:
        raise MalformedPayload("timestamp", "missing timestamp")
    try:
        return to_utc(date_parser.isoparse(str(value)))
    except (ValueError, OverflowError) as e:
        raise MalformedPayload("timestamp", f"unparseable timestamp {value!r}: {e}")


class BaseProvider(ABC):
    """
    Base class for all signal providers

    Implements common patterns:
    - Per-signal TTL caching
    - Per-class rate limiting
    - Per-call timeout
    - Failure containment (fetch_cached never raises)
    """

    name: str = "provider"
    provider_class: str = ProviderClass.GENERAL
    requires_key: bool = True

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cache: TTLCache,
        rate_limiter: RateLimiter,
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        cache_ttl: float = 600,
        cooldown: float = 300,
    ):
        """
        Initialize provider

        Args:
            http_client: Shared async HTTP client
            cache: Process-wide TTL cache
            rate_limiter: Process-wide rate limiter
            api_key: Provider credential (None = not configured)
            timeout: Per-call timeout in seconds
            cache_ttl: TTL for successful results
            cooldown: How long a 429 keeps the provider from being called
        """
        self.http = http_client
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.api_key = api_key
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.cooldown = cooldown
        self._missing_key_logged = False

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) or not self.requires_key

    def _require_key(self) -> None:
        if not self.is_configured:
            raise ProviderNotConfigured(self.name)

    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        GET a JSON document within the provider timeout.

        Raises:
            ProviderRateLimited: on HTTP 429
            ProviderError: on timeout, transport error or other non-2xx status
            MalformedPayload: when the body isn't JSON
        """
        try:
            response = await asyncio.wait_for(
                self.http.get(url, params=params, headers=headers, timeout=self.timeout),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderError(self.name, f"timed out after {self.timeout}s")
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"{type(e).__name__}: {e}")

        if response.status_code == 429:
            raise ProviderRateLimited(self.name)
        if response.status_code >= 400:
            raise ProviderError(self.name, response.text[:200], status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise MalformedPayload(self.name, f"invalid JSON: {e}")

    async def fetch_cached(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        empty: Any = None,
        ttl: Optional[float] = None,
    ) -> Any:
        """
        cache hit -> payload; miss -> rate limit, load, cache, return.

        Never raises: upstream failures, missing keys and malformed payloads
        all come back as `empty`. A 429 additionally caches a cooldown marker
        so the next requests get `empty` without hammering the provider.
        """
        ttl = ttl if ttl is not None else self.cache_ttl

        cached = self.cache.get(key, ttl)
        if cached is _COOLDOWN:
            return empty
        if cached is not None:
            return cached

        try:
            self._require_key()
            await self.rate_limiter.wait(self.provider_class)
            result = await loader()
        except ProviderNotConfigured:
            if not self._missing_key_logged:
                log.info(f"{self.name} not configured (no API key), signal disabled")
                self._missing_key_logged = True
            return empty
        except ProviderRateLimited:
            log.warning(f"{self.name} rate limited, cooling down for {self.cooldown}s")
            self.cache.set(key, _COOLDOWN, ttl=self.cooldown)
            return empty
        except Exception as e:
            log.warning(f"{self.name} fetch failed for {key}: {e}")
            return empty

        if result is None:
            return empty
        self.cache.set(key, result, ttl=ttl)
        return result
