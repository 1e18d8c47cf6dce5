"""Data models for the store intelligence service"""

from store_intelligence.models.store import Store

from store_intelligence.models.signals import (
    CarryoutOpportunity,
    Weather,
    Traffic,
    EventListing,
    EventWindow,
    PreOrderOpportunity,
    Event,
    PublicHoliday,
    Holiday,
    BoostWeek,
    SlowWindow,
    SlowPeriod,
    StoreClassification,
    StoreContext,
    ExternalData,
    InsightMetrics,
    CarryoutPromotion,
    PreOrderCampaign,
    Insight,
)

__all__ = [
    "Store",
    "CarryoutOpportunity",
    "Weather",
    "Traffic",
    "EventListing",
    "EventWindow",
    "PreOrderOpportunity",
    "Event",
    "PublicHoliday",
    "Holiday",
    "BoostWeek",
    "SlowWindow",
    "SlowPeriod",
    "StoreClassification",
    "StoreContext",
    "ExternalData",
    "InsightMetrics",
    "CarryoutPromotion",
    "PreOrderCampaign",
    "Insight",
]
