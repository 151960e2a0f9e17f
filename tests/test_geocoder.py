import httpx
import pytest

from aggregator.geocoder import (
    Geocoder,
    GoogleGeocoder,
    NominatimGeocoder,
    pick_city,
)
from aggregator.models import Coordinates
from conftest import mock_client

NYC = Coordinates(latitude=40.7128, longitude=-74.006)


def _recording(responses):
    """Handler that records requested hosts and answers from *responses*."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        status, body = responses[request.url.host]
        return httpx.Response(status, json=body)

    return handler, seen


def _geocoder(responses, api_key="test-key"):
    handler, seen = _recording(responses)
    client = mock_client(handler)
    return Geocoder(GoogleGeocoder(client, api_key=api_key), NominatimGeocoder(client)), seen


@pytest.mark.asyncio
async def test_short_query_returns_none_without_network():
    geocoder, seen = _geocoder({})
    assert await geocoder.geocode("NY") is None
    assert await geocoder.geocode("   ") is None
    assert seen == []


@pytest.mark.asyncio
async def test_google_answers_first():
    geocoder, seen = _geocoder({
        "maps.googleapis.com": (200, {
            "status": "OK",
            "results": [{"geometry": {"location": {"lat": 40.7128, "lng": -74.006}}}],
        }),
    })
    assert await geocoder.geocode("New York, NY") == NYC
    assert seen == ["maps.googleapis.com"]


@pytest.mark.asyncio
async def test_falls_back_to_nominatim_on_google_error():
    geocoder, seen = _geocoder({
        "maps.googleapis.com": (500, {}),
        "nominatim.openstreetmap.org": (200, [{"lat": "40.7128", "lon": "-74.006"}]),
    })
    assert await geocoder.geocode("New York, NY") == NYC
    assert seen == ["maps.googleapis.com", "nominatim.openstreetmap.org"]


@pytest.mark.asyncio
async def test_falls_back_when_google_key_missing(monkeypatch):
    monkeypatch.delenv("GOOGLE_GEOCODING_API_KEY", raising=False)
    geocoder, seen = _geocoder(
        {"nominatim.openstreetmap.org": (200, [{"lat": "40.7128", "lon": "-74.006"}])},
        api_key=None,
    )
    assert await geocoder.geocode("New York, NY") == NYC
    assert seen == ["nominatim.openstreetmap.org"]


@pytest.mark.asyncio
async def test_not_found_everywhere_is_none():
    geocoder, _ = _geocoder({
        "maps.googleapis.com": (200, {"status": "ZERO_RESULTS", "results": []}),
        "nominatim.openstreetmap.org": (200, []),
    })
    assert await geocoder.geocode("Nowhereville") is None


@pytest.mark.asyncio
async def test_reverse_geocode_google_components():
    geocoder, _ = _geocoder({
        "maps.googleapis.com": (200, {
            "status": "OK",
            "results": [{
                "formatted_address": "Brooklyn, NY, USA",
                "address_components": [
                    {"long_name": "Brooklyn", "short_name": "Brooklyn",
                     "types": ["sublocality", "political"]},
                    {"long_name": "Kings County", "short_name": "Kings County",
                     "types": ["administrative_area_level_2"]},
                    {"long_name": "New York", "short_name": "NY",
                     "types": ["administrative_area_level_1"]},
                ],
            }],
        }),
    })
    place = await geocoder.reverse_geocode(NYC)
    assert (place.city, place.region) == ("Brooklyn", "NY")


def test_nominatim_place_prefers_town_then_county():
    place = NominatimGeocoder.parse_place(
        {"address": {"town": "Media", "county": "Delaware County", "state": "Pennsylvania"}}
    )
    assert (place.city, place.region) == ("Media", "Pennsylvania")
    place = NominatimGeocoder.parse_place({"address": {"county": "Delaware County"}})
    assert place.city == "Delaware County"


@pytest.mark.parametrize(
    "parts, expected",
    [
        (("Philadelphia", "Fishtown", "Philadelphia County", "x"), "Philadelphia"),
        ((None, "Fishtown", "Philadelphia County", "x"), "Fishtown"),
        ((None, None, "Philadelphia County", "x"), "Philadelphia County"),
        ((None, "", None, "Somewhere Rd, PA, USA"), "Somewhere Rd"),
        ((None, None, None, None), None),
    ],
)
def test_pick_city_precedence(parts, expected):
    assert pick_city(*parts) == expected
