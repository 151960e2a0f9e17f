"""Cross-source duplicate detection and merging.

Two records describe the same happening when their normalized titles are
similar, they share a venue (by name or by position) and their dates are
close. Records from one source with the same title and venue are treated
as a run of one recurring event and folded together whatever their dates.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from datetime import date
from difflib import SequenceMatcher
from typing import Iterable

from aggregator import config
from aggregator.geo import distance_meters
from aggregator.models import Event, EventCategory, Occurrence

log = logging.getLogger(__name__)

_PUNCT_RE = re.compile(r"[^\w\s]")
_SPACE_RE = re.compile(r"\s+")
_PRICE_RE = re.compile(r"\d|free", re.IGNORECASE)


def normalize_text(text: str | None) -> str:
    """Lower-case, strip accents and punctuation, collapse whitespace."""
    if not text:
        return ""
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _PUNCT_RE.sub(" ", text.lower())
    return _SPACE_RE.sub(" ", text).strip()


def normalize_title(title: str) -> str:
    text = normalize_text(title)
    return text[4:] if text.startswith("the ") else text


def _similar(a: str, b: str, threshold: float) -> bool:
    if not a or not b:
        return False
    if a == b:
        return True
    matcher = SequenceMatcher(None, a, b)
    return (
        matcher.real_quick_ratio() >= threshold
        and matcher.quick_ratio() >= threshold
        and matcher.ratio() >= threshold
    )


def same_venue(a: Event, b: Event) -> bool:
    """Venue names match, or both records sit within the coordinate tolerance."""
    if _similar(
        normalize_title(a.location), normalize_title(b.location), config.MERGE_VENUE_SIMILARITY
    ):
        return True
    if a.coordinates is not None and b.coordinates is not None:
        return distance_meters(a.coordinates, b.coordinates) <= config.MERGE_COORDINATE_TOLERANCE_M
    return False


def dates_close(a: Event, b: Event, tolerance_days: int | None = None) -> bool:
    """Some occurrence of *a* lies within *tolerance_days* of one of *b*."""
    tolerance = config.MERGE_DATE_TOLERANCE_DAYS if tolerance_days is None else tolerance_days
    days_a = {date.fromisoformat(o.date) for o in a.occurrences}
    days_b = {date.fromisoformat(o.date) for o in b.occurrences}
    return any(abs((da - db).days) <= tolerance for da in days_a for db in days_b)


def is_same_event(a: Event, b: Event, *, collapse_series: bool = True) -> bool:
    """Whether *a* and *b* should be merged into one record."""
    if a.all_ids & b.all_ids:
        return True
    series = collapse_series and a.source == b.source
    if not series and not dates_close(a, b):
        return False
    if not same_venue(a, b):
        return False
    title_a, title_b = normalize_title(a.title), normalize_title(b.title)
    if series:
        return title_a == title_b
    return _similar(title_a, title_b, config.MERGE_TITLE_SIMILARITY)


def upcoming(occurrences: Iterable[Occurrence], today: date | None) -> list[Occurrence]:
    """Sorted occurrences from *today* on; all of them if none are upcoming."""
    distinct = set(occurrences)
    timed_days = {o.date for o in distinct if o.time}
    # a date-only entry adds nothing when the same day is known with a time
    ordered = sorted(
        (o for o in distinct if o.time or o.date not in timed_days),
        key=Occurrence.sort_key,
    )
    if today is None:
        return ordered
    cutoff = today.isoformat()
    future = [o for o in ordered if o.date >= cutoff]
    return future or ordered


def drop_past_occurrences(event: Event, today: date) -> Event:
    occurrences = upcoming(event.occurrences, today)
    if occurrences == event.occurrences:
        return event
    return _rebuild(event, occurrences=occurrences)


def _rebuild(event: Event, **changes) -> Event:
    data = event.model_dump()
    data.update(changes)
    first = data["occurrences"][0]
    first = first if isinstance(first, Occurrence) else Occurrence(**first)
    data["primary_date"], data["primary_time"] = first.date, first.time
    return Event.model_validate(data)


def _has_price(price: str) -> bool:
    return bool(_PRICE_RE.search(price or ""))


def merge_pair(a: Event, b: Event, today: date | None = None) -> Event:
    """Fold two records of the same happening into one.

    The record with a direct ticket link becomes the base (ties keep *a*);
    the richer description and image win, and occurrences are unioned.
    """
    base, other = (b, a) if b.ticket_url and not a.ticket_url else (a, b)

    description = max((base.description, other.description), key=lambda d: len(d.strip()))
    image = base.image
    if config.is_placeholder_image(image) and not config.is_placeholder_image(other.image):
        image = other.image

    category, category_display = base.category, base.category_display
    if category is EventCategory.OTHER and other.category is not EventCategory.OTHER:
        category, category_display = other.category, other.category_display

    ranks = [r for r in (base.rank, other.rank) if r is not None]
    user_side = base if base.status is not None else other

    return _rebuild(
        base,
        occurrences=upcoming([*base.occurrences, *other.occurrences], today),
        description=description,
        image=image,
        ticket_url=base.ticket_url or other.ticket_url,
        location=base.location or other.location,
        address=base.address or other.address,
        coordinates=base.coordinates or other.coordinates,
        city=base.city or other.city,
        region=base.region or other.region,
        price=base.price if _has_price(base.price) or not _has_price(other.price) else other.price,
        category=category,
        category_display=category_display,
        rank=max(ranks) if ranks else None,
        merged_ids=sorted((base.all_ids | other.all_ids) - {base.id}),
        poster_id=user_side.poster_id,
        report_count=user_side.report_count,
        status=user_side.status,
    )


def _absorb(merged: list[Event], i: int, today: date | None, collapse_series: bool) -> None:
    """Fold every other cluster that now matches ``merged[i]`` into it."""
    j = 0
    while j < len(merged):
        if j != i and is_same_event(merged[i], merged[j], collapse_series=collapse_series):
            first, second = sorted((i, j))
            log.debug("joining %s and %s", merged[first].id, merged[second].id)
            merged[first] = merge_pair(merged[first], merged[second], today)
            del merged[second]
            i, j = first, 0
            continue
        j += 1


def merge_events(
    events: Iterable[Event],
    today: date | None = None,
    *,
    collapse_series: bool = True,
) -> list[Event]:
    """Collapse duplicates across (and recurring runs within) sources.

    Input order does not affect the result: records are clustered in id
    order, so concurrent adapter completion cannot change the outcome.
    """
    ordered = sorted(events, key=lambda e: (e.id, e.source))
    merged: list[Event] = []
    for event in ordered:
        for i, existing in enumerate(merged):
            if is_same_event(existing, event, collapse_series=collapse_series):
                log.debug("merging %s into %s", event.id, existing.id)
                merged[i] = merge_pair(existing, event, today)
                # the grown cluster may now bridge two earlier ones
                _absorb(merged, i, today, collapse_series)
                break
        else:
            merged.append(event)
    log.info("merged %d record(s) into %d event(s)", len(ordered), len(merged))
    return merged
