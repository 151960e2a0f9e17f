"""EventSwipe discovery API."""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from aggregator import config
from aggregator.base import create_adapters
from aggregator.dates import normalize_time
from aggregator.engine import AggregationEngine
from aggregator.errors import CriteriaValidationError, StoreReadError
from aggregator.geocoder import Geocoder
from aggregator.models import (
    Coordinates,
    Event,
    EventCategory,
    ModerationStatus,
    SELECTABLE_CATEGORIES,
    display_label,
)

from .database import AlreadyReported, SqliteStore, init_db

log = logging.getLogger(__name__)


class EventSubmission(BaseModel):
    title: str = Field(min_length=1)
    date: str
    time: str = ""
    location: str = ""
    address: str = ""
    latitude: float | None = None
    longitude: float | None = None
    category: EventCategory = EventCategory.OTHER
    price: str = ""
    image: str = ""
    ticket_url: str = ""
    description: str = ""
    poster_id: str


class SwipeRequest(BaseModel):
    user_id: str


class ReportRequest(BaseModel):
    reporter_id: str
    reason: str
    details: str | None = None


def create_app(
    store: SqliteStore | None = None,
    engine: AggregationEngine | None = None,
    geocoder: Geocoder | None = None,
) -> FastAPI:
    store = store or SqliteStore()
    geocoder = geocoder or (engine.geocoder if engine else None) or Geocoder()
    engine = engine or AggregationEngine(create_adapters(), store, geocoder)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(level=config.LOG_LEVEL)
        await init_db(store.path)
        yield
        await engine.aclose()

    app = FastAPI(title="EventSwipe", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/discover")
    async def discover(
        lat: float | None = None,
        lon: float | None = None,
        place: str | None = None,
        distance: float = config.DEFAULT_DISTANCE_MILES,
        time_range: str = "month",
        category: list[str] | None = Query(None),
        user_id: str | None = None,
    ):
        """Ordered swipe deck for a location and filter state."""
        criteria = {"distance_miles": distance, "time_range": time_range}
        if category:
            criteria["categories"] = category
        origin = (lat, lon) if lat is not None and lon is not None else None
        try:
            result = await engine.discover(user_id, origin, criteria, place_name=place)
        except CriteriaValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc))
        except StoreReadError as exc:
            raise HTTPException(status_code=503, detail=str(exc))
        return {
            "events": [e.model_dump(mode="json") for e in result.events],
            "total": len(result.events),
            "diagnostics": result.diagnostics,
        }

    @app.get("/api/categories")
    async def list_categories(locale: str = "en"):
        """Selectable categories with their display labels."""
        return [
            {"category": c.value, "label": display_label(c, locale)}
            for c in EventCategory
            if c in SELECTABLE_CATEGORIES
        ]

    @app.get("/api/geocode")
    async def geocode(q: str):
        coords = await geocoder.geocode(q)
        if coords is None:
            raise HTTPException(status_code=404, detail="Address not found")
        return coords.model_dump()

    @app.get("/api/reverse-geocode")
    async def reverse_geocode(lat: float, lon: float):
        try:
            coords = Coordinates(latitude=lat, longitude=lon)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc))
        place = await geocoder.reverse_geocode(coords)
        if place is None:
            raise HTTPException(status_code=404, detail="Location not found")
        return place.model_dump()

    @app.post("/api/events", status_code=201)
    async def submit_event(body: EventSubmission):
        """Create a user-submitted event, geocoding its address if needed."""
        coords = None
        if body.latitude is not None and body.longitude is not None:
            coords = Coordinates(latitude=body.latitude, longitude=body.longitude)
        elif body.address:
            coords = await geocoder.geocode(body.address)
            if coords is None:
                raise HTTPException(status_code=422, detail="Could not locate address")
        try:
            event = Event(
                id=uuid.uuid4().hex,
                title=body.title,
                primary_date=body.date,
                primary_time=normalize_time(body.time),
                location=body.location,
                address=body.address,
                coordinates=coords,
                category=body.category,
                price=body.price,
                image=body.image,
                ticket_url=body.ticket_url,
                description=body.description,
                source="user",
                poster_id=body.poster_id,
                status=ModerationStatus.ACTIVE,
                report_count=0,
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc))
        await store.add_user_event(event)
        log.info("user %s submitted event %s", body.poster_id, event.id)
        return {"id": event.id}

    @app.post("/api/events/{event_id}/pass", status_code=204)
    async def pass_event(event_id: str, body: SwipeRequest):
        await store.record_swipe(body.user_id, event_id, "pass")

    @app.post("/api/events/{event_id}/save", status_code=204)
    async def save_event(event_id: str, body: SwipeRequest):
        await store.record_swipe(body.user_id, event_id, "save")

    @app.post("/api/events/{event_id}/report")
    async def report_event(event_id: str, body: ReportRequest):
        try:
            status = await store.record_report(event_id, body.reporter_id, body.reason, body.details)
        except AlreadyReported:
            raise HTTPException(status_code=409, detail="Already reported")
        if status is not None and status is not ModerationStatus.ACTIVE:
            log.warning("event %s is now %s", event_id, status.value)
        return {"status": status.value if status else None}

    return app


app = create_app()
