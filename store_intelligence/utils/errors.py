"""
Exception hierarchy for the store intelligence core.

Provider errors are raised inside connectors and caught at the provider
boundary; nothing here is allowed to escape the insight facade.
"""
from typing import Optional


class StoreIntelligenceError(Exception):
    """Base class for all store intelligence errors."""


class ProviderError(StoreIntelligenceError):
    """An upstream provider call failed (transport error, timeout, non-2xx)."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        detail = f"{provider}: {message}"
        if status_code is not None:
            detail = f"{detail} (HTTP {status_code})"
        super().__init__(detail)


class ProviderRateLimited(ProviderError):
    """Upstream answered 429 Too Many Requests."""

    def __init__(self, provider: str):
        super().__init__(provider, "rate limited", status_code=429)


class ProviderNotConfigured(ProviderError):
    """No API key/token configured for the provider."""

    def __init__(self, provider: str):
        super().__init__(provider, "API key not configured")


class MalformedPayload(ProviderError):
    """Upstream payload could not be decoded or normalized."""


class InvalidStoreError(StoreIntelligenceError):
    """Store projection is missing identity/location fields."""


class CompletionError(StoreIntelligenceError):
    """Completion service unavailable, timed out or returned an unusable response."""
