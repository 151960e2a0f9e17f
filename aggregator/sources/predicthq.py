"""PredictHQ events API.

PredictHQ categories are coarse ("community", "expos", ...), so the
classifier decides first and the category is only a fallback hint.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

from aggregator.base import KM_PER_MILE, BaseAdapter, register
from aggregator.classifier import classify
from aggregator.dates import split_datetime
from aggregator.models import Coordinates, Event

_ENDPOINT = "https://api.predicthq.com/v1/events/"
_DEFAULT_CATEGORIES = (
    "concerts,festivals,sports,performing-arts,community,expos,conferences"
)


@register
class PredictHQAdapter(BaseAdapter):
    name = "predicthq"
    id_prefix = "phq_"

    def _headers(self) -> dict[str, str]:
        token = os.environ.get("PREDICTHQ_API_KEY")
        if not token:
            raise RuntimeError("PREDICTHQ_API_KEY environment variable is required")
        return {"Authorization": f"Bearer {token}", "Accept": "application/json"}

    def _base_params(self, since: datetime, sort: str = "start") -> dict[str, Any]:
        self._headers()  # fail before any request when no token is set
        return {
            "limit": self.page_size,
            "sort": sort,
            "start.gte": since.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S"),
            "state": "active,predicted",
        }

    @staticmethod
    def _within(origin: Coordinates, radius_miles: float) -> str:
        radius_km = round(radius_miles * KM_PER_MILE)
        return f"{radius_km}km@{origin.latitude},{origin.longitude}"

    def location_params(self, origin, radius_miles, since, category_hint):
        params = self._base_params(since)
        params["within"] = self._within(origin, radius_miles)
        params["category"] = category_hint or _DEFAULT_CATEGORIES
        return params

    def keyword_params(self, keyword, origin, radius_miles, since):
        params = self._base_params(since, sort="relevance")
        params["q"] = keyword
        if origin is not None:
            params["within"] = self._within(origin, radius_miles)
        return params

    def place_params(self, place, since):
        params = self._base_params(since)
        params["q"] = place
        return params

    async def _query(self, params: dict[str, Any]) -> list[dict]:
        data = await self.fetch_json(_ENDPOINT, params=params, headers=self._headers())
        results = data.get("results")
        if not isinstance(results, list):
            raise ValueError("PredictHQ payload has no 'results' list")
        return results

    def transform(self, item: dict) -> Event | None:
        try:
            title = (item.get("title") or "").strip()
            if not title:
                return None

            if item.get("start_local"):
                date_str, time_str = split_datetime(item["start_local"])
            elif item.get("start"):
                date_str, time_str = split_datetime(item["start"], item.get("timezone"))
            else:
                return None

            entities = item.get("entities") or []
            venue = next((e for e in entities if e.get("type") == "venue"), {})
            geo_address = (item.get("geo") or {}).get("address") or {}
            venue_name = venue.get("name") or geo_address.get("locality") or ""
            address = (
                venue.get("formatted_address")
                or geo_address.get("formatted_address")
                or ""
            )

            coordinates = None
            location = item.get("location")
            if isinstance(location, list) and len(location) == 2:
                # PredictHQ uses [lon, lat]
                coordinates = Coordinates(
                    latitude=float(location[1]), longitude=float(location[0])
                )

            category, label = classify(title, venue_name, item.get("category"))

            return Event(
                id=f"{self.id_prefix}{item['id']}",
                title=title,
                primary_date=date_str,
                primary_time=time_str,
                location=venue_name,
                address=address,
                coordinates=coordinates,
                city=geo_address.get("locality"),
                region=geo_address.get("region"),
                category=category,
                category_display=label,
                price="Check event",
                description=item.get("description") or "Sourced from predicthq.com",
                source=self.name,
                rank=float(item["rank"]) if item.get("rank") is not None else None,
            )
        except (ValueError, TypeError, KeyError, AttributeError):
            return None
