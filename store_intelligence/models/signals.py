"""
Signal and insight types.

Every signal is independently nullable: None (or [] for events) means the
fetch failed or the provider isn't configured, never an error.
"""
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class Serializable:
    """to_dict() with ISO-formatted dates for API responses and prompt dumps"""

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(asdict(self))


# ==================== WEATHER / TRAFFIC ====================

@dataclass
class CarryoutOpportunity(Serializable):
    is_active: bool
    discount: int  # percent
    message: str
    reason: str  # severe_weather, rain


@dataclass
class Weather(Serializable):
    temperature: Optional[int]
    condition: str
    description: str = ""
    wind_speed: Optional[float] = None
    humidity: Optional[int] = None
    is_raining: bool = False
    is_snowing: bool = False
    is_severe: bool = False
    order_impact: int = 0  # expected % change in orders
    driver_safety: str = "normal"  # normal, caution, high-risk
    alert: Optional[str] = None
    carryout_opportunity: Optional[CarryoutOpportunity] = None


@dataclass
class Traffic(Serializable):
    delay_minutes: int
    severity: str  # light, moderate, severe
    affects_delivery: bool
    normal_minutes: Optional[int] = None
    traffic_minutes: Optional[int] = None


# ==================== EVENTS ====================

@dataclass
class EventListing(Serializable):
    """One provider's listing before scoring; `date` is aware UTC"""
    name: str
    venue: str
    date: datetime
    capacity: int
    type: str = "event"
    source: str = ""


@dataclass
class EventWindow(Serializable):
    start: datetime
    end: datetime
    expected_orders: int
    drivers_needed: int
    peak_time: Optional[datetime] = None


@dataclass
class PreOrderOpportunity(Serializable):
    is_active: bool
    event_name: str
    urgency: str  # HIGH, MEDIUM
    target_orders: int
    days_until_event: int
    message: str


@dataclass
class Event(Serializable):
    name: str
    venue: str
    date: datetime
    capacity: int
    type: str
    source: str
    impact: float
    hours_until_event: float
    days_until_event: int
    is_today: bool
    is_past_today: bool
    pre_event_window: EventWindow
    post_event_window: EventWindow
    pre_order_opportunity: Optional[PreOrderOpportunity] = None


# ==================== HOLIDAYS / HEURISTICS ====================

@dataclass
class PublicHoliday(Serializable):
    """Provider row, normalized"""
    date: date
    name: str
    is_public: bool = True


@dataclass
class Holiday(Serializable):
    name: str
    date: date
    days_until: int
    expected_impact: int  # percent


@dataclass
class BoostWeek(Serializable):
    confidence: int
    is_high_probability_period: bool
    urgency: str  # HIGH, MEDIUM
    reasons: List[str] = field(default_factory=list)
    days_since_holiday: Optional[int] = None
    last_holiday: Optional[str] = None


@dataclass
class SlowWindow(Serializable):
    name: str
    start_hour: int
    end_hour: int  # exclusive
    impact_percent: int  # negative
    confidence: str


@dataclass
class SlowPeriod(Serializable):
    is_slow_period: bool
    current_window: Optional[SlowWindow] = None
    next_window: Optional[SlowWindow] = None
    hours_until_next: Optional[int] = None
    recommendations: List[str] = field(default_factory=list)


# ==================== STORE CONTEXT ====================

@dataclass
class StoreClassification(Serializable):
    type: str  # military, college, downtown, suburban
    sub_type: str
    patterns: Dict[str, Any] = field(default_factory=dict)
    source: str = "auto"  # cache, database, auto


@dataclass
class StoreContext(Serializable):
    classification: StoreClassification
    local_time: datetime  # naive store-local wall clock
    hour: int
    day_of_week: int
    is_weekend: bool
    is_peak_time: bool
    is_late_night: bool
    is_slow_period: bool


@dataclass
class ExternalData(Serializable):
    """Merged signal bundle for one store at one instant; assembled once per request"""
    collected_at: datetime
    weather: Optional[Weather] = None
    traffic: Optional[Traffic] = None
    events: List[Event] = field(default_factory=list)
    boost_week: Optional[BoostWeek] = None
    slow_period: Optional[SlowPeriod] = None
    upcoming_holiday: Optional[Holiday] = None
    failed_signals: List[str] = field(default_factory=list)

    @property
    def carryout_opportunity(self) -> Optional[CarryoutOpportunity]:
        return self.weather.carryout_opportunity if self.weather else None

    @property
    def pre_order_opportunities(self) -> List[PreOrderOpportunity]:
        return [e.pre_order_opportunity for e in self.events if e.pre_order_opportunity]


# ==================== INSIGHT ====================

@dataclass
class InsightMetrics:
    expected_order_increase: float = 0
    recommended_extra_drivers: int = 0
    primary_reason: str = "standard_operations"


@dataclass
class CarryoutPromotion:
    is_active: bool
    discount: int
    message: str


@dataclass
class PreOrderCampaign:
    event_name: str
    urgency: str
    target_orders: int
    message: str


@dataclass
class Insight:
    """Validated completion-service output; produced fresh per request, never cached"""
    insight: str
    severity: str
    metrics: InsightMetrics
    action: str
    carryout_promotion: Optional[CarryoutPromotion] = None
    pre_order_campaign: Optional[PreOrderCampaign] = None
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Response shape (camelCase, as the completion service emits it)"""
        return {
            "insight": self.insight,
            "severity": self.severity,
            "metrics": {
                "expectedOrderIncrease": self.metrics.expected_order_increase,
                "recommendedExtraDrivers": self.metrics.recommended_extra_drivers,
                "primaryReason": self.metrics.primary_reason,
            },
            "action": self.action,
            "carryoutPromotion": {
                "isActive": self.carryout_promotion.is_active,
                "discount": self.carryout_promotion.discount,
                "message": self.carryout_promotion.message,
            } if self.carryout_promotion else None,
            "preOrderCampaign": {
                "eventName": self.pre_order_campaign.event_name,
                "urgency": self.pre_order_campaign.urgency,
                "targetOrders": self.pre_order_campaign.target_orders,
                "message": self.pre_order_campaign.message,
            } if self.pre_order_campaign else None,
            "isFallback": self.is_fallback,
        }
