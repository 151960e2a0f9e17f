"""Ticketmaster events via the Discovery API v2."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

from aggregator.base import BaseAdapter, register
from aggregator.classifier import classify, map_taxonomy
from aggregator.dates import normalize_date, normalize_time, split_datetime
from aggregator.models import Coordinates, Event, EventCategory, display_label

_ENDPOINT = "https://app.ticketmaster.com/discovery/v2/events.json"
_MAX_PAGES = 2


@register
class TicketmasterAdapter(BaseAdapter):
    name = "ticketmaster"
    id_prefix = "tm_"

    def _base_params(self, since: datetime) -> dict[str, Any]:
        api_key = os.environ.get("TICKETMASTER_API_KEY")
        if not api_key:
            raise RuntimeError("TICKETMASTER_API_KEY environment variable is required")
        return {
            "apikey": api_key,
            "size": self.page_size,
            "sort": "date,asc",
            "startDateTime": since.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        }

    def location_params(self, origin, radius_miles, since, category_hint):
        params = self._base_params(since)
        params.update(
            latlong=f"{origin.latitude},{origin.longitude}",
            radius=str(round(radius_miles)),
            unit="miles",
        )
        if category_hint:
            params["classificationName"] = category_hint
        return params

    def keyword_params(self, keyword, origin, radius_miles, since):
        params = self._base_params(since)
        params["keyword"] = keyword
        if origin is not None:
            params.update(
                latlong=f"{origin.latitude},{origin.longitude}",
                radius=str(round(radius_miles)),
                unit="miles",
            )
        return params

    def place_params(self, place, since):
        params = self._base_params(since)
        params["city"] = place
        return params

    async def _query(self, params: dict[str, Any]) -> list[dict]:
        items: list[dict] = []
        page = 0
        while page < _MAX_PAGES:
            data = await self.fetch_json(_ENDPOINT, params={**params, "page": page})
            embedded = data.get("_embedded")
            if not embedded or "events" not in embedded:
                break
            items.extend(embedded["events"])

            total_pages = data.get("page", {}).get("totalPages", 0)
            page += 1
            if page >= total_pages:
                break
        return items

    def transform(self, item: dict) -> Event | None:
        try:
            title = (item.get("name") or "").strip()
            if not title:
                return None

            start = item.get("dates", {}).get("start", {})
            if start.get("localDate"):
                date_str = normalize_date(start["localDate"])
                time_str = normalize_time(start.get("localTime"))
            elif start.get("dateTime"):
                date_str, time_str = split_datetime(
                    start["dateTime"], item.get("dates", {}).get("timezone")
                )
            else:
                return None

            venue_name = ""
            address = ""
            city = region = None
            coordinates = None
            venues = item.get("_embedded", {}).get("venues", [])
            if venues:
                v = venues[0]
                venue_name = v.get("name") or ""
                city = v.get("city", {}).get("name")
                region = v.get("state", {}).get("stateCode")
                address = v.get("address", {}).get("line1") or ""
                loc = v.get("location") or {}
                if loc.get("latitude") and loc.get("longitude"):
                    coordinates = Coordinates(
                        latitude=float(loc["latitude"]),
                        longitude=float(loc["longitude"]),
                    )

            category, label = self._categorize(item, title, venue_name)

            return Event(
                id=f"{self.id_prefix}{item['id']}",
                title=title,
                primary_date=date_str,
                primary_time=time_str,
                location=venue_name,
                address=address,
                coordinates=coordinates,
                city=city,
                region=region,
                category=category,
                category_display=label,
                price=self._price(item.get("priceRanges") or []),
                image=self._best_image(item.get("images") or []),
                ticket_url=item.get("url") or "",
                description=item.get("info") or item.get("pleaseNote") or "",
                source=self.name,
            )
        except (ValueError, TypeError, KeyError, AttributeError):
            return None

    @staticmethod
    def _categorize(item: dict, title: str, venue: str) -> tuple[EventCategory, str]:
        """Genre first, then segment; the classifier only when both are vague."""
        classifications = item.get("classifications") or []
        if classifications:
            first = classifications[0]
            for level in ("genre", "segment"):
                mapped = map_taxonomy(first.get(level, {}).get("name"))
                if mapped is not None and mapped is not EventCategory.OTHER:
                    return mapped, display_label(mapped)
            hint = first.get("segment", {}).get("name")
        else:
            hint = None
        return classify(title, venue, hint)

    @staticmethod
    def _best_image(images: list[dict]) -> str:
        if not images:
            return ""
        widest = max(images, key=lambda img: img.get("width") or 0)
        return widest.get("url") or ""

    @staticmethod
    def _price(price_ranges: list[dict]) -> str:
        if not price_ranges:
            return "See tickets"
        pr = price_ranges[0]
        lo = pr.get("min")
        hi = pr.get("max")
        currency = pr.get("currency", "USD")
        if lo is not None and hi is not None and hi != lo:
            return f"{currency} {lo:.0f}-{hi:.0f}"
        if lo is not None:
            return f"{currency} {lo:.0f}"
        return "See tickets"
