"""
Shared pytest fixtures for the aggregator test suite.

Provides an Event factory, canned provider payloads and small fakes for
adapters, stores and geocoders.
"""

import asyncio
from datetime import date, datetime, timezone
from typing import Any

import httpx
import pytest

from aggregator.base import BaseAdapter
from aggregator.models import Coordinates, Event, Place

TODAY = date(2025, 6, 1)  # a Sunday
NOW = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)
ORIGIN = Coordinates(latitude=40.0, longitude=-75.0)


@pytest.fixture
def create_event():
    """
    Return a function that creates Event objects with sensible defaults.

    Example:
        event = create_event(title="Jazz Night", location="Blue Note")
    """

    def _create_event(
        id: str = "tm_1",
        title: str = "Test Event",
        primary_date: str = "2025-06-01",
        **kwargs,
    ) -> Event:
        defaults: dict[str, Any] = {
            "id": id,
            "title": title,
            "primary_date": primary_date,
            "location": "Test Venue",
            "coordinates": ORIGIN,
            "source": id.split("_", 1)[0] if "_" in id else "test",
        }
        defaults.update(kwargs)
        return Event(**defaults)

    return _create_event


def mock_client(handler) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by *handler*."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class StaticAdapter(BaseAdapter):
    """Adapter serving canned Event dicts, optionally slowly or brokenly."""

    name = "static"

    def __init__(self, name: str = "static", items=(), delay: float = 0, exc: Exception | None = None):
        self.name = name
        super().__init__()
        self.items = list(items)
        self.delay = delay
        self.exc = exc
        self.cancelled = False

    def location_params(self, origin, radius_miles, since, category_hint):
        return {}

    def keyword_params(self, keyword, origin, radius_miles, since):
        return {}

    def place_params(self, place, since):
        return {"place": place}

    async def _query(self, params):
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.exc is not None:
            raise self.exc
        return self.items

    def transform(self, item):
        return Event(**item)


class FakeGeocoder:
    """Geocoder stand-in answering from a dict."""

    def __init__(self, known: dict[str, Coordinates] | None = None, place: Place | None = None):
        self.known = known or {}
        self.place = place
        self.queries: list[str] = []

    async def geocode(self, address):
        self.queries.append(address)
        return self.known.get(address)

    async def reverse_geocode(self, coords):
        return self.place

    async def aclose(self):
        pass


class BrokenStore:
    async def get_user_submitted_events(self):
        return []

    async def get_user_pass_history(self, user_id):
        raise OSError("disk on fire")

    async def get_user_save_history(self, user_id):
        return set()


# ---------------------------------------------------------------------------
# Canned provider payloads
# ---------------------------------------------------------------------------

@pytest.fixture
def ticketmaster_item():
    return {
        "id": "G5vYZ9",
        "name": "Jazz Night",
        "url": "https://www.ticketmaster.com/event/G5vYZ9",
        "info": "An evening of standards.",
        "dates": {
            "start": {"localDate": "2025-06-01", "localTime": "19:30:00"},
            "timezone": "America/New_York",
        },
        "classifications": [
            {"segment": {"name": "Music"}, "genre": {"name": "Jazz"}}
        ],
        "priceRanges": [{"min": 25.0, "max": 60.0, "currency": "USD"}],
        "images": [
            {"url": "https://img.tm/small.jpg", "width": 100},
            {"url": "https://img.tm/large.jpg", "width": 1024},
        ],
        "_embedded": {
            "venues": [
                {
                    "name": "Blue Note",
                    "city": {"name": "New York"},
                    "state": {"stateCode": "NY"},
                    "address": {"line1": "131 W 3rd St"},
                    "location": {"latitude": "40.7308", "longitude": "-74.0007"},
                }
            ]
        },
    }


@pytest.fixture
def seatgeek_item():
    return {
        "id": 6101,
        "title": "Phillies vs. Mets",
        "datetime_local": "2025-06-03T19:05:00",
        "time_tbd": False,
        "url": "https://seatgeek.com/e/6101",
        "score": 0.72,
        "taxonomies": [{"name": "mlb"}],
        "venue": {
            "name": "Citizens Bank Park",
            "address": "1 Citizens Bank Way",
            "city": "Philadelphia",
            "state": "PA",
            "location": {"lat": 39.9061, "lon": -75.1665},
        },
        "stats": {"lowest_price": 18, "highest_price": 240},
        "performers": [{"image": "https://img.sg/phillies.jpg"}],
    }


@pytest.fixture
def predicthq_item():
    return {
        "id": "phq123",
        "title": "Riverside Farmers Market",
        "category": "community",
        "start": "2025-06-07T13:00:00Z",
        "timezone": "America/New_York",
        "rank": 41,
        "location": [-75.1652, 39.9526],
        "entities": [
            {"type": "venue", "name": "Penn's Landing", "formatted_address": "101 S Columbus Blvd"}
        ],
        "geo": {"address": {"locality": "Philadelphia", "region": "PA"}},
    }


EVENTBRITE_HTML = """
<html><head>
<script type="application/ld+json">
{"@type": "ItemList", "itemListElement": [
  {"item": {"@type": "Event", "name": "Startup Mixer",
            "startDate": "2025-06-05T18:00:00-04:00",
            "url": "https://www.eventbrite.com/e/startup-mixer-tickets-987654",
            "location": {"name": "WeWork", "address": {"streetAddress": "1 Market St",
                         "addressLocality": "Philadelphia"}},
            "offers": {"lowPrice": "0", "priceCurrency": "USD"}}},
  {"item": {"@type": "Event", "name": "Startup Mixer",
            "startDate": "2025-06-05T18:00:00-04:00",
            "url": "https://www.eventbrite.com/e/startup-mixer-tickets-987654"}}
]}
</script>
<script type="application/ld+json">
{"@type": "Event", "name": "Midnight Gallery Walk",
 "startDate": "2025-06-06T00:00:00",
 "url": "https://www.eventbrite.com/e/gallery-walk-tickets-111",
 "location": {"name": "Old City", "geo": {"latitude": "39.95", "longitude": "-75.14"}},
 "offers": [{"lowPrice": "12.5", "priceCurrency": "USD"}]}
</script>
</head><body></body></html>
"""
