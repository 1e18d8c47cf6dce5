"""
Configuration management for the Store Intelligence service
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Store Intelligence Service"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Database (store classification cache)
    database_url: str = "sqlite:///./store_intelligence.db"

    # Weather (OpenWeatherMap)
    openweather_api_key: Optional[str] = None

    # Traffic (Google Maps Directions)
    google_maps_api_key: Optional[str] = None
    traffic_sample_distance_km: float = 5.0

    # Event providers
    ticketmaster_api_key: Optional[str] = None
    seatgeek_client_id: Optional[str] = None
    predicthq_access_token: Optional[str] = None
    yelp_api_key: Optional[str] = None
    event_radius_miles: int = 10
    event_lookahead_days: int = 7

    # Holidays (Nager.Date, no key required)
    holiday_country: str = "US"
    holiday_days_ahead: int = 7

    # Cache TTLs (seconds)
    weather_cache_ttl: int = 600
    traffic_cache_ttl: int = 600
    events_cache_ttl: int = 3600
    holidays_cache_ttl: int = 30 * 24 * 3600
    boost_week_cache_ttl: int = 6 * 3600
    classification_cache_ttl: int = 24 * 3600
    classification_retry_ttl: int = 300  # Geometry fallback while the database is unreachable
    rate_limited_cooldown: int = 300  # Empty result cached after a 429

    # Rate limiter minimum spacing per provider class (seconds)
    rate_limit_general: float = 0.1
    rate_limit_ticketing: float = 1.0
    rate_limit_mapping: float = 0.1

    # Upstream timeouts (seconds)
    upstream_timeout_seconds: float = 5.0
    signal_task_timeout_seconds: float = 10.0

    # LLM Configuration
    anthropic_api_key: Optional[str] = None
    llm_model: str = "claude-sonnet-4-20250514"
    enable_llm_insights: bool = True
    llm_max_tokens: int = 800
    llm_temperature: float = 0.3
    llm_timeout_seconds: float = 20.0

    # Prompt
    prompt_max_chars: int = 3200

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
