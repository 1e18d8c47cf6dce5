"""
Prompt Builder

Renders a store's ExternalData and context into a bounded brief for the
completion service. The template (system instruction, insight length) is
picked by store-local shift phase, only signals that are actually present
are rendered, and every time is shown in the store's own zone.
"""
import json
from datetime import datetime
from typing import Iterable, List, Optional

from store_intelligence.models.signals import Event, ExternalData, StoreContext
from store_intelligence.models.store import Store
from store_intelligence.utils.logger import log
from store_intelligence.utils.timezone_clock import TimeZoneClock

DEFAULT_MAX_CHARS = 3200
MAX_PROMPT_EVENTS = 5

SHIFT_PHASES = ("morning", "lunch", "afternoon", "evening", "late_night")

INSIGHT_CHAR_LIMITS = {
    "morning": 150,
    "lunch": 120,
    "afternoon": 140,
    "evening": 100,
    "late_night": 120,
}
ACTION_CHAR_LIMIT = 80

SYSTEM_INSTRUCTIONS = {
    "morning": (
        "You are a store mentor for pizza delivery managers opening the store. "
        "Focus on the day ahead: staffing the lunch and dinner rush, events and "
        "weather later today, and prep priorities. Be specific and brief."
    ),
    "lunch": (
        "You are a store mentor for pizza delivery managers during the lunch rush. "
        "Focus on what affects the next two hours: drivers on the road, delivery "
        "times and immediate weather or traffic problems. Be terse."
    ),
    "afternoon": (
        "You are a store mentor for pizza delivery managers in the afternoon lull. "
        "Focus on preparing for dinner: driver call-ins, evening events, and "
        "using slow time productively. Be specific and brief."
    ),
    "evening": (
        "You are a store mentor for pizza delivery managers in the dinner peak. "
        "Only say what changes decisions in the next hour: driver count, "
        "delivery delays, event surges. Be extremely terse."
    ),
    "late_night": (
        "You are a store mentor for pizza delivery managers closing the store. "
        "Focus on late-night demand, closing driver count, and anything worth "
        "preparing for tomorrow. Be specific and brief."
    ),
}


def shift_phase(hour: int) -> str:
    """Store-local hour -> shift phase"""
    if 5 <= hour < 11:
        return "morning"
    if 11 <= hour < 14:
        return "lunch"
    if 14 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 22:
        return "evening"
    return "late_night"


def format_local(wall_clock: datetime, with_day: bool = True) -> str:
    """'Tue 6:05 PM' without platform-specific strftime flags"""
    hour = wall_clock.hour % 12 or 12
    suffix = "PM" if wall_clock.hour >= 12 else "AM"
    text = f"{hour}:{wall_clock.minute:02d} {suffix}"
    return f"{wall_clock:%a} {text}" if with_day else text


class PromptBuilder:
    """Bounded natural-language brief for one store"""

    def __init__(self, clock: Optional[TimeZoneClock] = None, max_chars: int = DEFAULT_MAX_CHARS):
        self.clock = clock or TimeZoneClock()
        self.max_chars = max_chars

    def system_instruction(self, context: StoreContext) -> str:
        return SYSTEM_INSTRUCTIONS[shift_phase(context.hour)]

    def build(self, store: Store, data: ExternalData, context: StoreContext) -> str:
        phase = shift_phase(context.hour)

        head = "\n".join(self._header(store, context, phase)) + "\n\n"
        tail = "\n\n" + "\n".join(self._rules(data)) + "\n\n" + self._response_shape(phase)

        budget = self.max_chars - len(head) - len(tail)
        lines: List[str] = ["Current signals:"]
        budget -= len(lines[0]) + 1
        skipped = 0
        for line in self._signal_lines(store, data):
            if len(line) + 1 > budget:
                skipped += 1
                continue
            lines.append(line)
            budget -= len(line) + 1
        if len(lines) == 1:
            lines.append("- No external signals available; use standard operating patterns.")
        if skipped:
            log.debug(f"Prompt for store {store.store_id}: dropped {skipped} signal lines over budget")

        prompt = head + "\n".join(lines) + tail
        return prompt[: self.max_chars]

    # ==================== SECTIONS ====================

    def _header(self, store: Store, context: StoreContext, phase: str) -> List[str]:
        classification = context.classification
        flags = [
            name for name, on in (
                ("peak", context.is_peak_time),
                ("weekend", context.is_weekend),
                ("late night", context.is_late_night),
                ("slow period", context.is_slow_period),
            ) if on
        ]
        status = "OFFLINE (forced)" if store.is_force_offline else ("online" if store.is_online else "offline")
        delivery = store.delivery_minutes
        carryout = store.carryout_minutes

        lines = [
            f"Generate ONE actionable insight for store {store.store_id} for the {phase.replace('_', ' ')} shift.",
            "",
            "Store context:",
            f"- Location: {store.city}, {store.state} ({classification.type}, {classification.sub_type})",
            f"- Local time: {format_local(context.local_time)}" + (f" [{', '.join(flags)}]" if flags else ""),
            f"- Status: {status}"
            + (f", wait {store.estimated_wait_minutes} min" if store.estimated_wait_minutes is not None else "")
            + (f", delivery fee ${store.delivery_fee:.2f}" if store.delivery_fee is not None else ""),
            f"- Baselines: delivery {delivery[0]}-{delivery[1]} min, carryout {carryout[0]}-{carryout[1]} min, "
            f"min order ${store.effective_minimum_order:.2f}, cash limit ${store.effective_cash_limit:.0f}",
        ]
        if classification.patterns:
            lines.append(f"- Demand pattern: {json.dumps(classification.patterns, separators=(',', ':'))}")
        return lines

    def _signal_lines(self, store: Store, data: ExternalData) -> Iterable[str]:
        """Present signals only, highest priority first"""
        tz = store.time_zone_code

        if data.weather:
            w = data.weather
            temp = f"{w.temperature}°F " if w.temperature is not None else ""
            line = f"- Weather: {temp}{w.condition}"
            if w.description:
                line += f" ({w.description})"
            if w.order_impact:
                line += f", expected orders +{w.order_impact}%"
            line += f", driver safety {w.driver_safety}"
            if w.alert:
                line += f", alert: {w.alert}"
            yield line

            carryout = w.carryout_opportunity
            if carryout:
                yield f"- Carryout opportunity: {carryout.discount}% off carryout ({carryout.reason.replace('_', ' ')})"
            else:
                yield "- Carryout opportunity: none (current weather does not justify a discount)"

        if data.traffic:
            t = data.traffic
            yield (
                f"- Traffic: {t.delay_minutes} min delay ({t.severity})"
                + (", slowing deliveries" if t.affects_delivery else "")
            )

        if data.upcoming_holiday:
            h = data.upcoming_holiday
            when = "today" if h.days_until == 0 else f"in {h.days_until} days"
            yield f"- Holiday: {h.name} {when} ({h.date.isoformat()}), expected orders +{h.expected_impact}%"

        if data.boost_week and data.boost_week.confidence > 0:
            b = data.boost_week
            label = "likely boost week" if b.is_high_probability_period else "possible boost week"
            yield f"- Boost week: {label}, confidence {b.confidence}% ({b.urgency}); " + "; ".join(b.reasons)

        if data.slow_period:
            s = data.slow_period
            if s.is_slow_period and s.current_window:
                yield (
                    f"- Slow period now: {s.current_window.name} ({s.current_window.impact_percent}% orders); "
                    + "; ".join(s.recommendations)
                )
            elif s.next_window:
                yield f"- Next slow window: {s.next_window.name} in {s.hours_until_next}h"

        for event in data.events[:MAX_PROMPT_EVENTS]:
            yield self._event_line(event, tz)

    def _event_line(self, event: Event, tz: Optional[str]) -> str:
        def clock_time(instant: datetime) -> str:
            return format_local(self.clock.to_local(instant, tz), with_day=False)

        pre, post = event.pre_event_window, event.post_event_window
        if event.is_today:
            when = f"TODAY {clock_time(event.date)}"
        else:
            when = format_local(self.clock.to_local(event.date, tz))

        line = (
            f"- Event: {event.name} @ {event.venue or 'unknown venue'}, {when}, ~{event.capacity:,} people, "
            f"impact {event.impact:.1f}; pre-event {clock_time(pre.start)}-{clock_time(pre.end)} "
            f"~{pre.expected_orders} orders/{pre.drivers_needed} drivers; "
            f"post-event peak {clock_time(post.peak_time)} "
            f"~{post.expected_orders} orders/{post.drivers_needed} drivers"
        )
        if event.pre_order_opportunity:
            p = event.pre_order_opportunity
            line += f"; pre-order push {p.urgency}, target {p.target_orders} orders"
        return line

    def _rules(self, data: ExternalData) -> List[str]:
        carryout = data.carryout_opportunity
        rules = [
            "Rules:",
            "- Use only the signals listed above. Do not mention weather, traffic or events that are not listed.",
            "- Do not suggest promotions or discounts for weather that is not listed as a carryout opportunity "
            "(clouds, haze, mist or clear skies never justify one).",
        ]
        if carryout:
            rules.append(
                f"- carryoutPromotion.discount must be exactly {carryout.discount}. Never invent other discount values."
            )
        else:
            rules.append("- No carryout discount is active: carryoutPromotion must be null. Never invent discount values.")
        if data.pre_order_opportunities:
            rules.append("- preOrderCampaign may only reference an event listed with a pre-order push.")
        else:
            rules.append("- preOrderCampaign must be null.")
        return rules

    def _response_shape(self, phase: str) -> str:
        return (
            "Return JSON with:\n"
            "{\n"
            f'  "insight": "specific action for NOW (max {INSIGHT_CHAR_LIMITS[phase]} chars)",\n'
            '  "severity": "info|warning|critical",\n'
            '  "metrics": {"expectedOrderIncrease": 0-100, "recommendedExtraDrivers": 0-10, '
            '"primaryReason": "short reason"},\n'
            f'  "action": "what to do next (max {ACTION_CHAR_LIMIT} chars)",\n'
            '  "carryoutPromotion": {"isActive": true, "discount": number, "message": "..."} or null,\n'
            '  "preOrderCampaign": {"eventName": "...", "urgency": "HIGH|MEDIUM", "targetOrders": number, '
            '"message": "..."} or null\n'
            "}"
        )
