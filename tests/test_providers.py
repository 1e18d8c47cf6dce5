"""
Upstream provider tests over httpx.MockTransport.

Guards against:
1. Provider payload changes crashing the request instead of blanking a signal
2. 429s being retried on every request instead of cooling down
3. Unconfigured providers making network calls
"""
from datetime import date

import httpx

from store_intelligence.connectors import (
    GoogleTrafficProvider,
    NagerDateProvider,
    OpenWeatherProvider,
    PredictHQProvider,
    SeatGeekProvider,
    TicketmasterProvider,
    YelpEventsProvider,
)
from store_intelligence.connectors.google_traffic import normalize_traffic
from store_intelligence.connectors.nager_date import normalize_holidays
from store_intelligence.connectors.openweather import assess_weather_impact, normalize_weather
from store_intelligence.utils.cache import TTLCache

from fakes import (
    HOLIDAYS_2026,
    NOW,
    RAIN_WEATHER,
    SEATGEEK_EVENTS,
    TICKETMASTER_EVENTS,
    TRAFFIC_ROUTE,
    Router,
    make_store,
    provider_kwargs,
    run,
)

WEATHER_HOST = "api.openweathermap.org"
MAPS_HOST = "maps.googleapis.com"


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def test_normalize_rain():
    weather = normalize_weather(RAIN_WEATHER)
    assert weather.temperature == 59
    assert weather.condition == "Rain"
    assert weather.is_raining is True
    assert weather.order_impact == 25
    assert weather.driver_safety == "caution"
    assert weather.alert is None
    assert weather.carryout_opportunity.discount == 30


def test_normalize_thunderstorm_alert():
    weather = normalize_weather({
        "weather": [{"id": 211, "main": "Thunderstorm", "description": "thunderstorm"}],
        "main": {"temp": 75},
        "wind": {"speed": 12},
    })
    assert weather.is_severe is True
    assert weather.alert == "Thunderstorm Warning"
    assert weather.carryout_opportunity.discount == 50


def test_weather_impact_cold_and_snow():
    assert assess_weather_impact("Clear", 35) == (20, "caution")
    assert assess_weather_impact("Snow", 28) == (30, "high-risk")
    assert assess_weather_impact("Clear", 95) == (15, "normal")


def test_normalize_traffic():
    traffic = normalize_traffic(TRAFFIC_ROUTE)
    assert traffic.delay_minutes == 15
    assert traffic.severity == "moderate"
    assert traffic.affects_delivery is True


def test_traffic_never_negative_and_no_route():
    faster = {"routes": [{"legs": [{"duration": {"value": 900}, "duration_in_traffic": {"value": 600}}]}]}
    assert normalize_traffic(faster).delay_minutes == 0
    assert normalize_traffic(faster).severity == "light"
    assert normalize_traffic({"routes": [], "status": "ZERO_RESULTS"}) is None


def test_normalize_holidays():
    holidays = normalize_holidays(HOLIDAYS_2026)
    assert holidays[0].date == date(2026, 1, 1)
    assert holidays[0].is_public is True
    founders = next(h for h in holidays if h.name == "Founders Day")
    assert founders.is_public is False


# ---------------------------------------------------------------------------
# Fetch path
# ---------------------------------------------------------------------------

def test_weather_fetch_is_cached():
    router = Router({WEATHER_HOST: (200, RAIN_WEATHER)})
    provider = OpenWeatherProvider(**provider_kwargs(router))

    async def scenario():
        first = await provider.fetch(make_store())
        second = await provider.fetch(make_store())
        return first, second

    first, second = run(scenario())
    assert first.condition == "Rain"
    assert second is first
    assert router.hits(WEATHER_HOST) == 1

    params = router.requests[0].url.params
    assert params["units"] == "imperial"
    assert params["lat"] == "36.7378"


def test_rate_limited_caches_cooldown():
    router = Router({MAPS_HOST: (429, {"error": "slow down"})})
    cache = TTLCache()
    provider = GoogleTrafficProvider(**provider_kwargs(router, cache))

    async def scenario():
        return await provider.fetch(make_store()), await provider.fetch(make_store())

    assert run(scenario()) == (None, None)
    assert router.hits(MAPS_HOST) == 1
    assert "traffic_1234" in cache


def test_rate_limited_events_cache_empty_list():
    router = Router({"api.seatgeek.com": (429, {})})
    provider = SeatGeekProvider(**provider_kwargs(router))

    async def scenario():
        return await provider.fetch(make_store(), NOW), await provider.fetch(make_store(), NOW)

    assert run(scenario()) == ([], [])
    assert router.hits("api.seatgeek.com") == 1


def test_missing_key_makes_no_request():
    router = Router({WEATHER_HOST: (200, RAIN_WEATHER)})
    provider = OpenWeatherProvider(**provider_kwargs(router, api_key=None))

    assert provider.is_configured is False
    assert run(provider.fetch(make_store())) is None
    assert router.requests == []


def test_server_error_blanks_signal_without_caching():
    router = Router({WEATHER_HOST: (503, {"message": "down"})})
    cache = TTLCache()
    provider = OpenWeatherProvider(**provider_kwargs(router, cache))

    assert run(provider.fetch(make_store())) is None
    assert "weather_1234" not in cache


def test_malformed_payloads_blank_signal():
    router = Router({WEATHER_HOST: (200, {"cod": 200, "unexpected": True})})
    provider = OpenWeatherProvider(**provider_kwargs(router))
    assert run(provider.fetch(make_store())) is None

    router = Router({WEATHER_HOST: lambda request: httpx.Response(200, text="<html>oops</html>")})
    provider = OpenWeatherProvider(**provider_kwargs(router))
    assert run(provider.fetch(make_store())) is None


def test_transport_timeout_blanks_signal():
    def timeout(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    router = Router({WEATHER_HOST: timeout})
    provider = OpenWeatherProvider(**provider_kwargs(router))
    assert run(provider.fetch(make_store())) is None


def test_holidays_need_no_key():
    router = Router({"date.nager.at": (200, HOLIDAYS_2026)})
    provider = NagerDateProvider(**provider_kwargs(router, api_key=None))

    holidays = run(provider.fetch(2026, "US"))
    assert len(holidays) == 5
    assert router.requests[0].url.path == "/api/v3/PublicHolidays/2026/US"


# ---------------------------------------------------------------------------
# Event providers
# ---------------------------------------------------------------------------

def test_ticketmaster_listings():
    body = {
        "_embedded": {
            "events": TICKETMASTER_EVENTS["_embedded"]["events"] + [
                {"name": "Date TBA", "dates": {"start": {"localDate": "2026-10-20"}}},
            ],
        },
    }
    router = Router({"app.ticketmaster.com": (200, body)})
    provider = TicketmasterProvider(**provider_kwargs(router))

    listings = run(provider.fetch(make_store(), NOW))
    assert len(listings) == 1
    assert listings[0].venue == "valley children's stadium"
    assert listings[0].type == "sports"
    assert listings[0].date.isoformat() == "2026-10-18T02:30:00+00:00"
    assert listings[0].capacity == 0


def test_ticketmaster_no_results():
    router = Router({"app.ticketmaster.com": (200, {"page": {"totalElements": 0}})})
    provider = TicketmasterProvider(**provider_kwargs(router))
    assert run(provider.fetch(make_store(), NOW)) == []


def test_seatgeek_listings():
    router = Router({"api.seatgeek.com": (200, SEATGEEK_EVENTS)})
    provider = SeatGeekProvider(**provider_kwargs(router))

    listings = run(provider.fetch(make_store(), NOW))
    assert listings[0].capacity == 41031
    assert listings[0].date.tzinfo is not None
    assert router.requests[0].url.params["client_id"] == "test-key"


def test_predicthq_listings_and_auth_header():
    body = {
        "results": [
            {
                "title": "Fresno Fair",
                "start": "2026-10-17T17:00:00Z",
                "category": "festivals",
                "phq_attendance": 12000,
                "entities": [{"type": "venue", "name": "Fresno Fairgrounds"}],
            },
            {"title": "Broken", "start": "not a date"},
        ],
    }
    router = Router({"api.predicthq.com": (200, body)})
    provider = PredictHQProvider(**provider_kwargs(router))

    listings = run(provider.fetch(make_store(), NOW))
    assert [listing.venue for listing in listings] == ["Fresno Fairgrounds"]
    assert listings[0].capacity == 12000
    assert router.requests[0].headers["Authorization"] == "Bearer test-key"


def test_yelp_listings():
    body = {
        "events": [{
            "name": "Tower District Block Party",
            "time_start": "2026-10-17T18:00:00-07:00",
            "category": "festivals-fairs",
            "attending_count": 350,
            "location": {"address1": "Olive Ave & Wishon Ave"},
        }],
    }
    router = Router({"api.yelp.com": (200, body)})
    provider = YelpEventsProvider(**provider_kwargs(router))

    listings = run(provider.fetch(make_store(), NOW))
    assert listings[0].venue == "Olive Ave & Wishon Ave"
    assert listings[0].date.isoformat() == "2026-10-18T01:00:00+00:00"


def test_holiday_years_report_missing_year():
    def reply(request):
        if request.url.path.endswith("/2027/US"):
            return httpx.Response(503, json={"error": "unavailable"})
        return httpx.Response(200, json=HOLIDAYS_2026)

    router = Router({"date.nager.at": reply})
    provider = NagerDateProvider(**provider_kwargs(router, api_key=None))

    holidays, complete = run(provider.fetch_years([2026, 2027], "US"))
    assert complete is False
    assert len(holidays) == 5
    assert run(provider.fetch(2027, "US")) is None
