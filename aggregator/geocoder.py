"""Forward and reverse geocoding with a primary and a fallback provider.

Google's Geocoding API is tried first; OpenStreetMap Nominatim answers when
Google fails, is not configured, or returns nothing. "Not found" is ``None``,
never an exception.
"""

from __future__ import annotations

import abc
import logging
import os
from typing import Any

import httpx

from aggregator import config
from aggregator.models import Coordinates, Place

log = logging.getLogger(__name__)

GOOGLE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"
NOMINATIM_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"

MIN_QUERY_LENGTH = 3


def pick_city(
    locality: str | None,
    sublocality: str | None,
    admin_area_2: str | None,
    formatted_address: str | None,
) -> str | None:
    """Choose the city name shown to the user.

    Precedence: locality, sublocality, second-level administrative area,
    then the first comma-separated segment of the formatted address.
    """
    for candidate in (locality, sublocality, admin_area_2):
        if candidate and candidate.strip():
            return candidate.strip()
    if formatted_address:
        head = formatted_address.split(",")[0].strip()
        if head:
            return head
    return None


class GeocodingProvider(abc.ABC):
    """One geocoding backend. Methods raise on transport/HTTP errors."""

    name: str = ""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": config.NOMINATIM_USER_AGENT},
                timeout=config.GEOCODER_TIMEOUT_S,
            )
        return self._client

    async def _get_json(self, url: str, params: dict[str, Any]) -> Any:
        client = await self._ensure_client()
        resp = await client.get(url, params=params)
        resp.raise_for_status()
        return resp.json()

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    @abc.abstractmethod
    async def forward(self, query: str) -> Coordinates | None: ...

    @abc.abstractmethod
    async def reverse(self, coords: Coordinates) -> Place | None: ...


class GoogleGeocoder(GeocodingProvider):
    name = "google"

    def __init__(
        self, client: httpx.AsyncClient | None = None, api_key: str | None = None
    ) -> None:
        super().__init__(client)
        self._api_key = api_key

    @property
    def api_key(self) -> str:
        key = self._api_key or os.environ.get("GOOGLE_GEOCODING_API_KEY")
        if not key:
            raise RuntimeError("GOOGLE_GEOCODING_API_KEY is not set")
        return key

    async def _results(self, params: dict[str, Any]) -> list[dict]:
        data = await self._get_json(GOOGLE_URL, {**params, "key": self.api_key})
        status = data.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            raise RuntimeError(f"google geocoder status {status}")
        return data.get("results") or []

    async def forward(self, query: str) -> Coordinates | None:
        results = await self._results({"address": query})
        if not results:
            return None
        loc = results[0].get("geometry", {}).get("location", {})
        return Coordinates(latitude=float(loc["lat"]), longitude=float(loc["lng"]))

    async def reverse(self, coords: Coordinates) -> Place | None:
        results = await self._results(
            {"latlng": f"{coords.latitude},{coords.longitude}"}
        )
        if not results:
            return None
        return self.parse_place(results[0])

    @staticmethod
    def parse_place(result: dict) -> Place | None:
        by_type: dict[str, dict] = {}
        for component in result.get("address_components", []):
            for kind in component.get("types", []):
                by_type.setdefault(kind, component)

        def long_name(kind: str) -> str | None:
            return by_type.get(kind, {}).get("long_name")

        sublocality = long_name("sublocality") or long_name("sublocality_level_1")
        city = pick_city(
            long_name("locality"),
            sublocality,
            long_name("administrative_area_level_2"),
            result.get("formatted_address"),
        )
        if not city:
            return None
        region = by_type.get("administrative_area_level_1", {}).get("short_name", "")
        return Place(city=city, region=region)


class NominatimGeocoder(GeocodingProvider):
    name = "nominatim"

    async def forward(self, query: str) -> Coordinates | None:
        rows = await self._get_json(
            NOMINATIM_SEARCH_URL, {"q": query, "format": "json", "limit": 1}
        )
        if not rows:
            return None
        return Coordinates(
            latitude=float(rows[0]["lat"]), longitude=float(rows[0]["lon"])
        )

    async def reverse(self, coords: Coordinates) -> Place | None:
        data = await self._get_json(
            NOMINATIM_REVERSE_URL,
            {
                "lat": coords.latitude,
                "lon": coords.longitude,
                "format": "json",
                "addressdetails": 1,
            },
        )
        if not data or "error" in data:
            return None
        return self.parse_place(data)

    @staticmethod
    def parse_place(data: dict) -> Place | None:
        address = data.get("address") or {}
        locality = address.get("city") or address.get("town") or address.get("village")
        city = pick_city(
            locality,
            address.get("suburb"),
            address.get("county"),
            data.get("display_name"),
        )
        if not city:
            return None
        return Place(city=city, region=address.get("state", ""))


class Geocoder:
    """Primary/fallback geocoder used by discovery and event submission."""

    def __init__(
        self,
        primary: GeocodingProvider | None = None,
        fallback: GeocodingProvider | None = None,
    ) -> None:
        self.primary = primary or GoogleGeocoder()
        self.fallback = fallback or NominatimGeocoder()

    async def aclose(self) -> None:
        await self.primary.aclose()
        await self.fallback.aclose()

    async def _first_result(self, method: str, arg: Any) -> Any:
        for provider in (self.primary, self.fallback):
            try:
                result = await getattr(provider, method)(arg)
            except (httpx.HTTPError, RuntimeError, ValueError, KeyError, TypeError) as exc:
                log.warning("%s %s failed for %r: %s", provider.name, method, arg, exc)
                continue
            if result is not None:
                return result
            log.debug("%s %s returned nothing for %r", provider.name, method, arg)
        return None

    async def geocode(self, address: str) -> Coordinates | None:
        """Resolve free text to coordinates, or ``None``."""
        query = (address or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return None
        return await self._first_result("forward", query)

    async def reverse_geocode(self, coords: Coordinates) -> Place | None:
        """Resolve coordinates to a city/region pair, or ``None``."""
        return await self._first_result("reverse", coords)
