"""
Insight Response Validation

Every field of the completion-service response is coerced and clamped to its
declared type and range. Anything that can't be parsed at all yields the
canonical fallback insight instead of an error.

Field rules:
    insight                  str, cut to the shift phase's character cap
    severity                 info | warning | high | critical, else "info"
    expectedOrderIncrease    number in [0, 100]
    recommendedExtraDrivers  integer in [0, 10] (floored)
    primaryReason            str, cut to 60 chars
    action                   str, cut to 80 chars
    carryoutPromotion        well-typed object or null
    preOrderCampaign         well-typed object or null
"""
import json
import math
from typing import Any, Dict, Optional

from store_intelligence.models.signals import (
    CarryoutPromotion,
    Insight,
    InsightMetrics,
    PreOrderCampaign,
)
from store_intelligence.services.prompt_builder import ACTION_CHAR_LIMIT, INSIGHT_CHAR_LIMITS
from store_intelligence.utils.helpers import clamp, to_float, truncate
from store_intelligence.utils.logger import log

ALLOWED_SEVERITIES = ("info", "warning", "high", "critical")
ALLOWED_URGENCIES = ("HIGH", "MEDIUM")

MAX_ORDER_INCREASE = 100
MAX_EXTRA_DRIVERS = 10
PRIMARY_REASON_CHAR_LIMIT = 60
MESSAGE_CHAR_LIMIT = 120

FALLBACK_TEXT = "Unable to generate store insight. Monitor standard operations."
FALLBACK_ACTION = "Follow standard staffing patterns"
DEFAULT_PRIMARY_REASON = "standard_operations"

# Default for allowed_discount: accept any well-typed discount
ANY_DISCOUNT = object()


def fallback_insight() -> Insight:
    """Generic zero-impact insight, same shape as a real one"""
    return Insight(
        insight=FALLBACK_TEXT,
        severity="info",
        metrics=InsightMetrics(
            expected_order_increase=0,
            recommended_extra_drivers=0,
            primary_reason=DEFAULT_PRIMARY_REASON,
        ),
        action=FALLBACK_ACTION,
        carryout_promotion=None,
        pre_order_campaign=None,
        is_fallback=True,
    )


def _pick(payload: Dict[str, Any], camel: str, snake: str) -> Any:
    return payload.get(camel, payload.get(snake))


def _parse(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, (str, bytes, bytearray)):
        raw = json.loads(raw)
    if not isinstance(raw, dict):
        raise ValueError(f"expected a JSON object, got {type(raw).__name__}")
    return raw


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_carryout_promotion(value: Any, allowed_discount: Any = ANY_DISCOUNT) -> Optional[CarryoutPromotion]:
    """
    Pass through only a well-typed promotion. When `allowed_discount` is given
    (None = no opportunity detected), any other discount is rejected.
    """
    if not isinstance(value, dict):
        return None
    is_active = _pick(value, "isActive", "is_active")
    discount = value.get("discount")
    message = value.get("message")
    if not isinstance(is_active, bool) or not _is_number(discount) or not isinstance(message, str):
        return None
    if not 0 <= discount <= 100:
        return None
    if allowed_discount is not ANY_DISCOUNT and (allowed_discount is None or int(discount) != allowed_discount):
        log.warning(f"Dropping carryout promotion with unsupported discount {discount}")
        return None
    return CarryoutPromotion(
        is_active=is_active,
        discount=int(discount),
        message=truncate(message, MESSAGE_CHAR_LIMIT),
    )


def validate_pre_order_campaign(value: Any) -> Optional[PreOrderCampaign]:
    if not isinstance(value, dict):
        return None
    event_name = _pick(value, "eventName", "event_name")
    urgency = value.get("urgency")
    target_orders = _pick(value, "targetOrders", "target_orders")
    message = value.get("message")
    if not isinstance(event_name, str) or not event_name.strip():
        return None
    if not isinstance(urgency, str) or urgency.upper() not in ALLOWED_URGENCIES:
        return None
    if not _is_number(target_orders) or target_orders < 0:
        return None
    if not isinstance(message, str):
        return None
    return PreOrderCampaign(
        event_name=truncate(event_name, MESSAGE_CHAR_LIMIT),
        urgency=urgency.upper(),
        target_orders=int(target_orders),
        message=truncate(message, MESSAGE_CHAR_LIMIT),
    )


def validate_insight(raw: Any, phase: str = "evening", allowed_discount: Any = ANY_DISCOUNT) -> Insight:
    """
    Coerce a raw completion response into an Insight.

    Args:
        raw: JSON text or an already-decoded dict
        phase: shift phase, selects the insight character cap
        allowed_discount: the computed carryout discount (None = none active);
            omitted = accept any well-typed discount

    Returns:
        Validated Insight, or the fallback insight when `raw` is unusable
    """
    try:
        payload = _parse(raw)
    except (ValueError, TypeError) as e:
        log.warning(f"Completion response unusable, using fallback insight: {e}")
        return fallback_insight()

    insight_text = truncate(payload.get("insight"), INSIGHT_CHAR_LIMITS.get(phase, 100))
    if not insight_text:
        return fallback_insight()

    severity = str(payload.get("severity") or "").strip().lower()
    if severity not in ALLOWED_SEVERITIES:
        severity = "info"

    metrics = payload.get("metrics")
    if not isinstance(metrics, dict):
        metrics = {}

    increase = to_float(_pick(metrics, "expectedOrderIncrease", "expected_order_increase"), 0.0)
    drivers = to_float(_pick(metrics, "recommendedExtraDrivers", "recommended_extra_drivers"), 0.0)
    reason = truncate(_pick(metrics, "primaryReason", "primary_reason"), PRIMARY_REASON_CHAR_LIMIT)

    action = truncate(payload.get("action"), ACTION_CHAR_LIMIT) or FALLBACK_ACTION

    return Insight(
        insight=insight_text,
        severity=severity,
        metrics=InsightMetrics(
            expected_order_increase=round(clamp(increase, 0, MAX_ORDER_INCREASE), 1),
            recommended_extra_drivers=int(clamp(math.floor(drivers), 0, MAX_EXTRA_DRIVERS)),
            primary_reason=reason or DEFAULT_PRIMARY_REASON,
        ),
        action=action,
        carryout_promotion=validate_carryout_promotion(
            _pick(payload, "carryoutPromotion", "carryout_promotion"), allowed_discount
        ),
        pre_order_campaign=validate_pre_order_campaign(
            _pick(payload, "preOrderCampaign", "pre_order_campaign")
        ),
    )
