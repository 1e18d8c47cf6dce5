"""
OpenWeatherMap Connector

Current conditions for a store, normalized to the Weather signal with its
business impact (expected order change, driver safety, manager alert) and
the derived carryout opportunity.
"""
from typing import Any, Dict, Optional, Tuple

from store_intelligence.connectors.base import BaseProvider
from store_intelligence.models.signals import Weather
from store_intelligence.models.store import Store
from store_intelligence.services.heuristics import (
    detect_carryout_opportunity,
    is_rain,
    is_severe_weather,
)
from store_intelligence.utils.errors import MalformedPayload
from store_intelligence.utils.rate_limiter import ProviderClass


def assess_weather_impact(condition: str, temperature: Optional[float]) -> Tuple[int, str]:
    """
    Expected order change (%) and driver safety level.

    Rain +25%, snow +30%, heat over 90F +15%, cold under 40F +20%; the
    largest applicable impact and the worst safety level win.
    """
    impact = 0
    safety = "normal"

    if is_rain(condition):
        impact, safety = 25, "caution"
    if condition == "Snow":
        impact, safety = 30, "high-risk"
    if temperature is not None:
        if temperature > 90:
            impact = max(impact, 15)
        elif temperature < 40:
            impact = max(impact, 20)
            if safety == "normal":
                safety = "caution"

    return impact, safety


def weather_alert(temperature: Optional[float], wind_speed: Optional[float], condition_id: Optional[int]) -> Optional[str]:
    """Manager-facing alert, based on OpenWeather condition codes"""
    if temperature is not None:
        if temperature > 100:
            return "Extreme Heat Warning"
        if temperature < 32:
            return "Freezing Conditions"
    if wind_speed is not None and wind_speed > 25:
        return "High Wind Advisory"
    if condition_id is not None:
        if 200 <= condition_id < 300:
            return "Thunderstorm Warning"
        if 502 <= condition_id < 600:
            return "Heavy Rain Warning"
        if 600 <= condition_id < 700:
            return "Snow Alert"
    return None


def normalize_weather(payload: Dict[str, Any]) -> Weather:
    """Map an OpenWeather /weather response to the Weather signal."""
    try:
        conditions = payload["weather"][0]
        condition = str(conditions["main"])
        temp_raw = payload["main"]["temp"]
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedPayload("openweather", f"missing field {e}")

    temperature = round(float(temp_raw)) if temp_raw is not None else None
    wind_speed = (payload.get("wind") or {}).get("speed")
    condition_id = conditions.get("id")
    order_impact, driver_safety = assess_weather_impact(condition, temperature)

    return Weather(
        temperature=temperature,
        condition=condition,
        description=str(conditions.get("description", "")),
        wind_speed=round(float(wind_speed), 1) if wind_speed is not None else None,
        humidity=payload["main"].get("humidity"),
        is_raining=is_rain(condition),
        is_snowing=condition == "Snow",
        is_severe=is_severe_weather(condition, temperature, wind_speed),
        order_impact=order_impact,
        driver_safety=driver_safety,
        alert=weather_alert(temperature, wind_speed, condition_id),
        carryout_opportunity=detect_carryout_opportunity(condition, temperature, wind_speed),
    )


class OpenWeatherProvider(BaseProvider):
    """OpenWeatherMap current-weather API"""

    name = "openweather"
    provider_class = ProviderClass.GENERAL
    base_url = "https://api.openweathermap.org/data/2.5"

    async def fetch(self, store: Store) -> Optional[Weather]:
        return await self.fetch_cached(
            f"weather_{store.store_id}",
            lambda: self._load(store),
            empty=None,
        )

    async def _load(self, store: Store) -> Weather:
        params = {
            "lat": store.latitude,
            "lon": store.longitude,
            "appid": self.api_key,
            "units": "imperial",
        }
        payload = await self._get_json(f"{self.base_url}/weather", params=params)
        return normalize_weather(payload)
