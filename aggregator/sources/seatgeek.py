"""SeatGeek events via the public platform API."""

from __future__ import annotations

import os
from typing import Any

from aggregator.base import BaseAdapter, register
from aggregator.classifier import classify, map_taxonomy
from aggregator.dates import split_datetime
from aggregator.models import Coordinates, Event, EventCategory, display_label

_ENDPOINT = "https://api.seatgeek.com/2/events"


@register
class SeatGeekAdapter(BaseAdapter):
    name = "seatgeek"
    id_prefix = "sg_"

    def _base_params(self, since) -> dict[str, Any]:
        client_id = os.environ.get("SEATGEEK_CLIENT_ID")
        if not client_id:
            raise RuntimeError("SEATGEEK_CLIENT_ID environment variable is required")
        return {
            "client_id": client_id,
            "per_page": self.page_size,
            "sort": "datetime_local.asc",
            "datetime_utc.gte": since.strftime("%Y-%m-%dT%H:%M:%S"),
        }

    def location_params(self, origin, radius_miles, since, category_hint):
        params = self._base_params(since)
        params.update(
            lat=origin.latitude, lon=origin.longitude, range=f"{round(radius_miles)}mi"
        )
        if category_hint:
            params["taxonomies.name"] = category_hint
        return params

    def keyword_params(self, keyword, origin, radius_miles, since):
        params = self._base_params(since)
        params["q"] = keyword
        if origin is not None:
            params.update(
                lat=origin.latitude, lon=origin.longitude, range=f"{round(radius_miles)}mi"
            )
        return params

    def place_params(self, place, since):
        params = self._base_params(since)
        params["venue.city"] = place
        return params

    async def _query(self, params: dict[str, Any]) -> list[dict]:
        data = await self.fetch_json(_ENDPOINT, params=params)
        events = data.get("events")
        if not isinstance(events, list):
            raise ValueError("SeatGeek payload has no 'events' list")
        return events

    def transform(self, item: dict) -> Event | None:
        try:
            title = (item.get("title") or item.get("short_title") or "").strip()
            local = item.get("datetime_local")
            if not title or not local:
                return None
            date_str, time_str = split_datetime(local)
            if item.get("time_tbd"):
                time_str = ""

            venue = item.get("venue") or {}
            venue_name = venue.get("name") or ""
            loc = venue.get("location") or {}
            coordinates = None
            if loc.get("lat") is not None and loc.get("lon") is not None:
                coordinates = Coordinates(
                    latitude=float(loc["lat"]), longitude=float(loc["lon"])
                )

            taxonomies = item.get("taxonomies") or []
            primary = taxonomies[0].get("name") if taxonomies else None
            mapped = map_taxonomy(primary)
            if mapped is not None and mapped is not EventCategory.OTHER:
                category, label = mapped, display_label(mapped)
            else:
                category, label = classify(title, venue_name, primary)

            score = item.get("score")
            return Event(
                id=f"{self.id_prefix}{item['id']}",
                title=title,
                primary_date=date_str,
                primary_time=time_str,
                location=venue_name,
                address=venue.get("address") or "",
                coordinates=coordinates,
                city=venue.get("city"),
                region=venue.get("state"),
                category=category,
                category_display=label,
                price=self._price(item.get("stats") or {}),
                image=self._image(item.get("performers") or []),
                ticket_url=item.get("url") or "",
                description=item.get("description") or "",
                source=self.name,
                rank=round(float(score) * 100, 2) if score is not None else None,
            )
        except (ValueError, TypeError, KeyError, AttributeError):
            return None

    @staticmethod
    def _image(performers: list[dict]) -> str:
        for performer in performers:
            if performer.get("image"):
                return performer["image"]
            images = performer.get("images") or {}
            if images.get("huge") or images.get("large"):
                return images.get("huge") or images["large"]
        return ""

    @staticmethod
    def _price(stats: dict) -> str:
        low = stats.get("lowest_price")
        if not low:
            return "See tickets"
        high = stats.get("highest_price")
        if high and high != low:
            return f"${low} - ${high}"
        return f"${low}"
