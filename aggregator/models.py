"""Canonical event schema shared by adapters, the engine, the API and the CLI."""

from __future__ import annotations

import datetime
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from aggregator import config

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^(?:(?:[01]\d|2[0-3]):[0-5]\d)?$")


class EventCategory(str, Enum):
    MUSIC = "music"
    FOOD = "food"
    SPORTS = "sports"
    ARTS = "arts"
    NIGHTLIFE = "nightlife"
    FITNESS = "fitness"
    COMEDY = "comedy"
    NETWORKING = "networking"
    FAMILY = "family"
    OUTDOOR = "outdoor"
    OTHER = "other"


#: Categories a user can toggle in the filter sheet. ``other`` is never
#: offered, so selecting all of these means "no category filter".
SELECTABLE_CATEGORIES: frozenset[EventCategory] = frozenset(
    c for c in EventCategory if c is not EventCategory.OTHER
)

_LABELS: dict[str, dict[EventCategory, str]] = {
    "en": {
        EventCategory.MUSIC: "Music",
        EventCategory.FOOD: "Food & Drink",
        EventCategory.SPORTS: "Sports",
        EventCategory.ARTS: "Arts & Culture",
        EventCategory.NIGHTLIFE: "Nightlife",
        EventCategory.FITNESS: "Fitness",
        EventCategory.COMEDY: "Comedy",
        EventCategory.NETWORKING: "Networking",
        EventCategory.FAMILY: "Family",
        EventCategory.OUTDOOR: "Outdoor",
        EventCategory.OTHER: "Event",
    },
    "es": {
        EventCategory.MUSIC: "Música",
        EventCategory.FOOD: "Comida y bebida",
        EventCategory.SPORTS: "Deportes",
        EventCategory.ARTS: "Arte y cultura",
        EventCategory.NIGHTLIFE: "Vida nocturna",
        EventCategory.FITNESS: "Fitness",
        EventCategory.COMEDY: "Comedia",
        EventCategory.NETWORKING: "Networking",
        EventCategory.FAMILY: "Familia",
        EventCategory.OUTDOOR: "Aire libre",
        EventCategory.OTHER: "Evento",
    },
    "fr": {
        EventCategory.MUSIC: "Musique",
        EventCategory.FOOD: "Gastronomie",
        EventCategory.SPORTS: "Sports",
        EventCategory.ARTS: "Arts et culture",
        EventCategory.NIGHTLIFE: "Vie nocturne",
        EventCategory.FITNESS: "Fitness",
        EventCategory.COMEDY: "Humour",
        EventCategory.NETWORKING: "Networking",
        EventCategory.FAMILY: "Famille",
        EventCategory.OUTDOOR: "Plein air",
        EventCategory.OTHER: "Événement",
    },
    "de": {
        EventCategory.MUSIC: "Musik",
        EventCategory.FOOD: "Essen & Trinken",
        EventCategory.SPORTS: "Sport",
        EventCategory.ARTS: "Kunst & Kultur",
        EventCategory.NIGHTLIFE: "Nachtleben",
        EventCategory.FITNESS: "Fitness",
        EventCategory.COMEDY: "Comedy",
        EventCategory.NETWORKING: "Networking",
        EventCategory.FAMILY: "Familie",
        EventCategory.OUTDOOR: "Outdoor",
        EventCategory.OTHER: "Veranstaltung",
    },
}


def display_label(category: EventCategory | str, locale: str = "en") -> str:
    """Human-readable label for *category*; unknown locales fall back to English."""
    labels = _LABELS.get(locale.split("-")[0].lower(), _LABELS["en"])
    return labels[EventCategory(category)]


class TimeRange(str, Enum):
    TODAY = "today"
    TOMORROW = "tomorrow"
    WEEK = "week"
    WEEKEND = "weekend"
    MONTH = "month"
    THREE_MONTHS = "3months"
    YEAR = "year"


class ModerationStatus(str, Enum):
    ACTIVE = "active"
    HIDDEN_REVIEW = "hidden_review"
    REMOVED = "removed"


def moderation_status_for(report_count: int) -> ModerationStatus:
    """Status a user-submitted event holds after *report_count* reports."""
    if report_count >= config.REPORTS_TO_REMOVE:
        return ModerationStatus.REMOVED
    if report_count >= config.REPORTS_TO_HIDE:
        return ModerationStatus.HIDDEN_REVIEW
    return ModerationStatus.ACTIVE


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class Place(BaseModel):
    """Result of a reverse geocode."""

    city: str
    region: str = ""


class Occurrence(BaseModel):
    """One dated instance of an event. ``time`` is empty when unknown."""

    model_config = ConfigDict(frozen=True)

    date: str
    time: str = ""

    @field_validator("date")
    @classmethod
    def _check_date(cls, v: str) -> str:
        if not _DATE_RE.match(v):
            raise ValueError(f"date must be YYYY-MM-DD, got {v!r}")
        try:
            datetime.date.fromisoformat(v)
        except ValueError:
            raise ValueError(f"{v!r} is not a calendar date") from None
        return v

    @field_validator("time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        if not _TIME_RE.match(v):
            raise ValueError(f"time must be HH:MM, got {v!r}")
        return v

    def sort_key(self) -> tuple[str, str]:
        return (self.date, self.time)


class Event(BaseModel):
    """Canonical event record every source is normalized into.

    ``occurrences`` is kept sorted and de-duplicated, and ``primary_date`` /
    ``primary_time`` always mirror its first entry. Callers may pass only
    the primary fields; the occurrence list is then derived from them.
    """

    id: str
    title: str = Field(min_length=1)
    primary_date: str = ""
    primary_time: str = ""
    occurrences: list[Occurrence] = Field(default_factory=list)
    location: str = ""
    address: str = ""
    coordinates: Coordinates | None = None
    city: str | None = None
    region: str | None = None
    category: EventCategory = EventCategory.OTHER
    category_display: str = ""
    price: str = ""
    image: str = ""
    ticket_url: str = ""
    description: str = ""
    source: str
    #: Provider importance score, higher sorts first within a day.
    rank: float | None = None
    #: Ids of records folded into this one by the merge step.
    merged_ids: list[str] = Field(default_factory=list)
    poster_id: str | None = None
    report_count: int | None = None
    status: ModerationStatus | None = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be empty")
        return v

    @model_validator(mode="after")
    def _normalize_occurrences(self) -> Event:
        occurrences = set(self.occurrences)
        if not occurrences:
            if not self.primary_date:
                raise ValueError("an event needs at least one occurrence")
            occurrences.add(Occurrence(date=self.primary_date, time=self.primary_time))
        self.occurrences = sorted(occurrences, key=Occurrence.sort_key)
        first = self.occurrences[0]
        self.primary_date = first.date
        self.primary_time = first.time
        if not self.category_display:
            self.category_display = display_label(self.category)
        if not self.image:
            self.image = config.placeholder_image(self.id)
        return self

    @property
    def is_active(self) -> bool:
        return self.status is None or self.status is ModerationStatus.ACTIVE

    @property
    def all_ids(self) -> set[str]:
        return {self.id, *self.merged_ids}


class FilterCriteria(BaseModel):
    """User preferences for one discovery request, passed by value."""

    model_config = ConfigDict(frozen=True)

    distance_miles: float = Field(default=config.DEFAULT_DISTANCE_MILES, gt=0)
    time_range: TimeRange = TimeRange.MONTH
    categories: frozenset[EventCategory] = SELECTABLE_CATEGORIES
    origin: Coordinates | None = None

    @property
    def filters_categories(self) -> bool:
        """False when no category or every selectable category is chosen."""
        return bool(self.categories) and not SELECTABLE_CATEGORIES <= self.categories
