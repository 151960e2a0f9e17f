"""Filter predicate and ordering derived from a user's FilterCriteria.

Everything here is pure: feed it canned events and a fixed ``today``.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Callable, Iterable

from aggregator.geo import distance_miles
from aggregator.models import Coordinates, Event, FilterCriteria, TimeRange

_ROLLING_DAYS = {
    TimeRange.WEEK: 7,
    TimeRange.MONTH: 30,
    TimeRange.THREE_MONTHS: 90,
    TimeRange.YEAR: 365,
}

SATURDAY = 5
SUNDAY = 6


def resolve_window(time_range: TimeRange, today: date) -> tuple[date, date]:
    """Inclusive first and last calendar day covered by *time_range*."""
    time_range = TimeRange(time_range)
    if time_range is TimeRange.TODAY:
        return today, today
    if time_range is TimeRange.TOMORROW:
        tomorrow = today + timedelta(days=1)
        return tomorrow, tomorrow
    if time_range is TimeRange.WEEKEND:
        if today.weekday() == SUNDAY:
            # the weekend already under way
            return today, today
        saturday = today + timedelta(days=(SATURDAY - today.weekday()) % 7)
        return saturday, saturday + timedelta(days=1)
    return today, today + timedelta(days=_ROLLING_DAYS[time_range])


def within_distance(event: Event, origin: Coordinates, miles: float) -> bool:
    """Events without coordinates never pass a distance bound."""
    if event.coordinates is None:
        return False
    return distance_miles(origin, event.coordinates) <= miles


def build_predicate(
    criteria: FilterCriteria,
    today: date,
    origin: Coordinates | None = None,
) -> Callable[[Event], bool]:
    """Predicate accepting events that satisfy every active filter."""
    origin = origin or criteria.origin
    start, end = resolve_window(criteria.time_range, today)
    first_day, last_day = start.isoformat(), end.isoformat()
    categories = criteria.categories if criteria.filters_categories else None

    def accept(event: Event) -> bool:
        if origin is not None and not within_distance(event, origin, criteria.distance_miles):
            return False
        if not first_day <= event.primary_date <= last_day:
            return False
        if categories is not None and event.category not in categories:
            return False
        return True

    return accept


def rank_key(event: Event) -> tuple:
    """Soonest first; within the same slot higher provider rank, then title."""
    return (
        event.primary_date,
        event.primary_time,
        -(event.rank or 0.0),
        event.title.casefold(),
        event.id,
    )


def apply(
    events: Iterable[Event],
    criteria: FilterCriteria,
    today: date,
    origin: Coordinates | None = None,
) -> list[Event]:
    """Filter then order *events* for presentation."""
    accept = build_predicate(criteria, today, origin)
    return sorted((e for e in events if accept(e)), key=rank_key)
