"""Eventbrite scraper – city listing pages (JSON-LD and embedded server data)."""

from __future__ import annotations

import json
import logging
import re
from typing import Any
from urllib.parse import quote

from bs4 import BeautifulSoup

from aggregator.base import BaseAdapter, register
from aggregator.classifier import classify
from aggregator.dates import normalize_date, normalize_time
from aggregator.geo import distance_miles
from aggregator.models import Coordinates, Event

log = logging.getLogger(__name__)

BASE_URL = "https://www.eventbrite.com"

#: Eventbrite listing slugs with their city centre, used to pick the page
#: for a coordinate search and as the position of events without geo data.
CITIES: list[dict[str, Any]] = [
    {"name": "New York", "slug": "ny--new-york", "lat": 40.7128, "lng": -74.0060},
    {"name": "Los Angeles", "slug": "ca--los-angeles", "lat": 34.0522, "lng": -118.2437},
    {"name": "Miami", "slug": "fl--miami", "lat": 25.7617, "lng": -80.1918},
    {"name": "Las Vegas", "slug": "nv--las-vegas", "lat": 36.1699, "lng": -115.1398},
    {"name": "Portland", "slug": "or--portland", "lat": 45.5152, "lng": -122.6784},
    {"name": "Berlin", "slug": "germany--berlin", "lat": 52.5200, "lng": 13.4050},
    {"name": "Munich", "slug": "germany--munich", "lat": 48.1351, "lng": 11.5820},
    {"name": "Vienna", "slug": "austria--vienna", "lat": 48.2082, "lng": 16.3738},
    {"name": "Madrid", "slug": "spain--madrid", "lat": 40.4168, "lng": -3.7038},
    {"name": "Barcelona", "slug": "spain--barcelona", "lat": 41.3851, "lng": 2.1734},
    {"name": "Mexico City", "slug": "mexico--mexico-city", "lat": 19.4326, "lng": -99.1332},
    {"name": "Paris", "slug": "france--paris", "lat": 48.8566, "lng": 2.3522},
    {"name": "Montreal", "slug": "canada--montreal", "lat": 45.5017, "lng": -73.5673},
    {"name": "Lisbon", "slug": "portugal--lisbon", "lat": 38.7223, "lng": -9.1393},
    {"name": "Rome", "slug": "italy--rome", "lat": 41.9028, "lng": 12.4964},
    {"name": "Amsterdam", "slug": "netherlands--amsterdam", "lat": 52.3676, "lng": 4.9041},
    {"name": "London", "slug": "united-kingdom--london", "lat": 51.5074, "lng": -0.1278},
    {"name": "Sydney", "slug": "australia--sydney", "lat": -33.8688, "lng": 151.2093},
    {"name": "Tokyo", "slug": "japan--tokyo", "lat": 35.6762, "lng": 139.6503},
]

#: How far beyond the search radius a city centre may lie and still be used.
CITY_REACH_MILES = 30.0

_SERVER_DATA_RE = re.compile(r"window\.__SERVER_DATA__\s*=\s*")
_TICKET_ID_RE = re.compile(r"tickets?-(\d+)")
_TRAILING_ID_RE = re.compile(r"(\d+)(?:\?|/?$)")
_CLOCK_RE = re.compile(r"T(\d{2}):(\d{2})")


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def nearest_city(origin: Coordinates, radius_miles: float) -> dict[str, Any] | None:
    """Closest listed city whose centre is within reach of the search circle."""
    best = None
    best_distance = radius_miles + CITY_REACH_MILES
    for city in CITIES:
        d = distance_miles(origin, Coordinates(latitude=city["lat"], longitude=city["lng"]))
        if d <= best_distance:
            best, best_distance = city, d
    return best


@register
class EventbriteAdapter(BaseAdapter):
    name = "eventbrite"
    id_prefix = "eb_"

    def location_params(self, origin, radius_miles, since, category_hint):
        city = nearest_city(origin, radius_miles)
        if city is None:
            return {"url": None, "city": None}
        return {"url": f"{BASE_URL}/d/{city['slug']}/events/", "city": city}

    def keyword_params(self, keyword, origin, radius_miles, since):
        city = nearest_city(origin, radius_miles) if origin is not None else None
        slug = city["slug"] if city else "online"
        return {"url": f"{BASE_URL}/d/{slug}/{quote(slugify(keyword))}/", "city": city}

    def place_params(self, place, since):
        match = next((c for c in CITIES if c["name"].lower() == place.strip().lower()), None)
        slug = match["slug"] if match else slugify(place)
        return {"url": f"{BASE_URL}/d/{slug}/events/", "city": match}

    async def _query(self, params: dict[str, Any]) -> list[dict]:
        if not params["url"]:
            log.debug("no Eventbrite city near the search origin")
            return []
        resp = await self.fetch(params["url"])
        items = self.extract_items(resp.text)
        city = params["city"]
        return [{**item, "_city": city} for item in items]

    @staticmethod
    def extract_items(html: str) -> list[dict]:
        """Raw event dicts from a listing page, de-duplicated by URL."""
        soup = BeautifulSoup(html, "html.parser")
        items: list[dict] = []

        # Strategy 1: embedded server data (search results + JSON-LD list)
        for script in soup.find_all("script"):
            text = script.string or ""
            match = _SERVER_DATA_RE.search(text)
            if not match:
                continue
            try:
                data, _ = json.JSONDecoder().raw_decode(text, match.end())
            except json.JSONDecodeError:
                log.warning("could not decode Eventbrite __SERVER_DATA__")
                break
            results = data.get("search_data", {}).get("events", {}).get("results", [])
            items.extend(r for r in results if isinstance(r, dict))
            for block in data.get("jsonld") or []:
                for entry in block.get("itemListElement", []) if isinstance(block, dict) else []:
                    if isinstance(entry, dict) and isinstance(entry.get("item"), dict):
                        items.append(entry["item"])
            break

        # Strategy 2: standalone JSON-LD blocks
        for script in soup.find_all("script", type="application/ld+json"):
            try:
                data = json.loads(script.string or "")
            except json.JSONDecodeError:
                continue
            for item in data if isinstance(data, list) else [data]:
                if not isinstance(item, dict):
                    continue
                if item.get("@type") == "ItemList":
                    items.extend(
                        e["item"] for e in item.get("itemListElement", [])
                        if isinstance(e, dict) and isinstance(e.get("item"), dict)
                    )
                else:
                    items.append(item)

        seen: set[str] = set()
        unique: list[dict] = []
        for item in items:
            if "start_date" not in item and item.get("@type") != "Event":
                continue
            key = item.get("url") or str(item.get("id"))
            if key in seen:
                continue
            seen.add(key)
            unique.append(item)
        return unique

    def transform(self, item: dict) -> Event | None:
        try:
            if "start_date" in item:
                fields = self._from_server_data(item)
            else:
                fields = self._from_jsonld(item)
            if fields is None:
                return None

            city = item.get("_city")
            if fields["coordinates"] is None and city:
                fields["coordinates"] = Coordinates(latitude=city["lat"], longitude=city["lng"])

            category, label = classify(fields["title"], fields["location"])
            return Event(
                **fields,
                city=city["name"] if city else None,
                category=category,
                category_display=label,
                source=self.name,
            )
        except (ValueError, TypeError, KeyError, AttributeError):
            return None

    def _from_jsonld(self, item: dict) -> dict[str, Any] | None:
        title = (item.get("name") or "").strip()
        start_raw = item.get("startDate") or ""
        url = item.get("url") or ""
        external_id = self._external_id(url)
        if not title or not start_raw or not external_id:
            return None

        location = item.get("location") if isinstance(item.get("location"), dict) else {}
        address = location.get("address")
        if isinstance(address, dict):
            parts = [
                address.get("streetAddress"),
                address.get("addressLocality"),
                address.get("addressRegion"),
                address.get("postalCode"),
            ]
            address = ", ".join(p for p in parts if p)
        geo = location.get("geo") or {}
        coordinates = None
        if geo.get("latitude") and geo.get("longitude"):
            coordinates = Coordinates(
                latitude=float(geo["latitude"]), longitude=float(geo["longitude"])
            )

        image = item.get("image")
        if isinstance(image, list):
            image = image[0] if image else None
        if isinstance(image, dict):
            image = image.get("url")

        return {
            "id": f"{self.id_prefix}{external_id}",
            "title": title,
            "primary_date": normalize_date(start_raw),
            "primary_time": self._clock(start_raw),
            "location": location.get("name") or "",
            "address": address or "",
            "coordinates": coordinates,
            "price": self._price(item.get("offers")),
            "image": image or "",
            "ticket_url": url,
            "description": (item.get("description") or "")[:2000],
        }

    def _from_server_data(self, item: dict) -> dict[str, Any] | None:
        title = (item.get("name") or "").strip()
        if not title or not item.get("id") or not item.get("start_date"):
            return None
        venue = item.get("primary_venue") or {}
        venue_address = venue.get("address") or {}
        coordinates = None
        if venue_address.get("latitude") and venue_address.get("longitude"):
            coordinates = Coordinates(
                latitude=float(venue_address["latitude"]),
                longitude=float(venue_address["longitude"]),
            )
        time_str = normalize_time(item.get("start_time"))
        return {
            "id": f"{self.id_prefix}{item['id']}",
            "title": title,
            "primary_date": normalize_date(item["start_date"]),
            "primary_time": "" if time_str == "00:00" else time_str,
            "location": venue.get("name") or "",
            "address": venue_address.get("localized_address_display") or "",
            "coordinates": coordinates,
            "price": "Free" if item.get("is_free") else "See tickets",
            "image": (item.get("image") or {}).get("url") or "",
            "ticket_url": item.get("url") or "",
            "description": (item.get("summary") or "")[:2000],
        }

    @staticmethod
    def _external_id(url: str) -> str | None:
        match = _TICKET_ID_RE.search(url) or _TRAILING_ID_RE.search(url)
        return match.group(1) if match else None

    @staticmethod
    def _clock(start_raw: str) -> str:
        """Wall-clock time from the raw string; midnight means "not given"."""
        match = _CLOCK_RE.search(start_raw)
        if not match or (match.group(1), match.group(2)) == ("00", "00"):
            return ""
        return f"{match.group(1)}:{match.group(2)}"

    @staticmethod
    def _price(offers: dict | list | None) -> str:
        if isinstance(offers, list):
            offers = offers[0] if offers else {}
        if not isinstance(offers, dict):
            return "See tickets"
        raw = offers.get("lowPrice", offers.get("price"))
        if raw is None:
            return "See tickets"
        try:
            val = float(raw)
        except (ValueError, TypeError):
            return str(raw)
        currency = offers.get("priceCurrency", "USD")
        return "Free" if val == 0 else f"{currency} {val:.2f}"
