"""Upstream signal providers"""

from store_intelligence.connectors.base import BaseProvider
from store_intelligence.connectors.openweather import OpenWeatherProvider
from store_intelligence.connectors.google_traffic import GoogleTrafficProvider
from store_intelligence.connectors.events import (
    EventProvider,
    TicketmasterProvider,
    SeatGeekProvider,
    PredictHQProvider,
    YelpEventsProvider,
)
from store_intelligence.connectors.nager_date import NagerDateProvider

__all__ = [
    "BaseProvider",
    "OpenWeatherProvider",
    "GoogleTrafficProvider",
    "EventProvider",
    "TicketmasterProvider",
    "SeatGeekProvider",
    "PredictHQProvider",
    "YelpEventsProvider",
    "NagerDateProvider",
]
