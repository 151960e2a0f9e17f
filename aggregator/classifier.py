"""Keyword-based category classifier for sources without a usable taxonomy.

The rule table is static and evaluated in priority order: the first group
with a keyword present in the title/venue text wins. Keywords match on word
boundaries so that e.g. ``run`` does not fire on "brunch".
"""

from __future__ import annotations

import re
from typing import NamedTuple

from aggregator.models import EventCategory, display_label

C = EventCategory

#: (category, keywords) in evaluation order. Music sits ahead of outdoor so
#: "Summer Concert in the Park" stays music.
KEYWORD_GROUPS: list[tuple[EventCategory, tuple[str, ...]]] = [
    (C.MUSIC, (
        "live", "concert", "band", "music", "dj", "dj set", "symphony", "orchestra",
        "singer", "songwriter", "tour", "acoustic", "jazz", "hip hop", "hip-hop",
        "rap", "r&b", "edm", "techno", "karaoke", "choir", "recital",
        "philharmonic", "listening party", "jam session", "bluegrass", "rave",
    )),
    (C.COMEDY, (
        "comedy", "comedian", "comedians", "stand-up", "stand up", "standup",
        "improv", "laugh", "roast", "sketch comedy", "open mic comedy",
    )),
    (C.FOOD, (
        "wine", "tasting", "brewery", "food", "dinner", "culinary", "chef",
        "restaurant", "vineyard", "winery", "brunch", "cocktail", "supper club",
        "cooking class", "food truck", "craft beer", "happy hour", "distillery",
    )),
    (C.FITNESS, (
        "run", "marathon", "yoga", "fitness", "workout", "5k", "10k", "race",
        "pilates", "crossfit", "bootcamp", "boot camp", "zumba", "hiit",
        "meditation", "sound bath", "breathwork", "tai chi",
    )),
    (C.SPORTS, (
        "game day", "playoff", "championship", "tournament", "baseball",
        "basketball", "football", "soccer", "hockey", "tennis", "golf", "boxing",
        "mma", "ufc", "wrestling", "rugby", "volleyball", "nba", "nfl", "mlb",
        "nhl", "mls", "wnba", "stadium", "ballpark",
    )),
    (C.OUTDOOR, (
        "festival", "fair", "outdoor", "park", "market", "farmers", "hike",
        "hiking", "camping", "kayak", "picnic", "street fair", "block party",
        "garden tour", "stargazing", "nature walk", "cleanup",
    )),
    (C.NETWORKING, (
        "conference", "summit", "networking", "expo", "workshop", "seminar",
        "meetup", "meet up", "mixer", "webinar", "panel discussion", "hackathon",
        "startup", "career fair", "job fair", "tech talk",
    )),
    (C.ARTS, (
        "theater", "theatre", "play", "musical", "ballet", "opera", "gallery",
        "art show", "exhibition", "museum", "broadway", "film screening",
        "screening", "poetry", "spoken word", "book signing", "pottery",
        "paint and sip", "dance performance",
    )),
    (C.FAMILY, (
        "family", "kids", "children", "storytime", "story time", "celebration",
        "kwanzaa", "christmas", "hanukkah", "easter", "holiday", "toddler",
        "puppet show", "petting zoo", "all ages",
    )),
    (C.NIGHTLIFE, (
        "club", "nightlife", "drag", "burlesque", "cabaret", "party",
        "nightclub", "silent disco", "bar crawl", "pub crawl", "lounge",
    )),
]

#: Provider taxonomy names (lower-cased) mapped to internal codes. Shared by
#: every adapter so a hint from any source lands in the same bucket.
PROVIDER_TAXONOMY: dict[str, EventCategory] = {
    # PredictHQ
    "concerts": C.MUSIC,
    "festivals": C.OUTDOOR,
    "sports": C.SPORTS,
    "performing-arts": C.ARTS,
    "community": C.FAMILY,
    "expos": C.NETWORKING,
    "conferences": C.NETWORKING,
    "school-holidays": C.FAMILY,
    "public-holidays": C.OTHER,
    "observances": C.OTHER,
    "academic": C.OTHER,
    "politics": C.OTHER,
    # Ticketmaster segments / genres
    "music": C.MUSIC,
    "arts & theatre": C.ARTS,
    "film": C.ARTS,
    "miscellaneous": C.OTHER,
    "comedy": C.COMEDY,
    "rock": C.MUSIC,
    "pop": C.MUSIC,
    "hip-hop/rap": C.MUSIC,
    "r&b": C.MUSIC,
    "country": C.MUSIC,
    "jazz": C.MUSIC,
    "classical": C.MUSIC,
    "electronic": C.MUSIC,
    "alternative": C.MUSIC,
    "metal": C.MUSIC,
    "folk": C.MUSIC,
    "latin": C.MUSIC,
    "reggae": C.MUSIC,
    "blues": C.MUSIC,
    "soul": C.MUSIC,
    "punk": C.MUSIC,
    "world": C.MUSIC,
    "basketball": C.SPORTS,
    "football": C.SPORTS,
    "baseball": C.SPORTS,
    "hockey": C.SPORTS,
    "soccer": C.SPORTS,
    "tennis": C.SPORTS,
    "golf": C.SPORTS,
    "boxing": C.SPORTS,
    "mma": C.SPORTS,
    "wrestling": C.SPORTS,
    "motorsports": C.SPORTS,
    "theatre": C.ARTS,
    "theater": C.ARTS,
    "broadway": C.ARTS,
    "musical": C.ARTS,
    "opera": C.ARTS,
    "ballet": C.ARTS,
    "dance": C.ARTS,
    "magic": C.ARTS,
    "nightlife": C.NIGHTLIFE,
    "club": C.NIGHTLIFE,
    "family": C.FAMILY,
    "children": C.FAMILY,
    "kids": C.FAMILY,
    "fitness": C.FITNESS,
    "marathon": C.FITNESS,
    "yoga": C.FITNESS,
    "food & drink": C.FOOD,
    "food": C.FOOD,
    "wine": C.FOOD,
    "beer": C.FOOD,
    "networking": C.NETWORKING,
    "conference": C.NETWORKING,
    "seminar": C.NETWORKING,
    "outdoor": C.OUTDOOR,
    "festival": C.OUTDOOR,
    "fair": C.OUTDOOR,
    # SeatGeek taxonomies
    "concert": C.MUSIC,
    "music_festival": C.MUSIC,
    "nfl": C.SPORTS,
    "mlb": C.SPORTS,
    "nba": C.SPORTS,
    "nhl": C.SPORTS,
    "mls": C.SPORTS,
    "ncaa_football": C.SPORTS,
    "ncaa_basketball": C.SPORTS,
    "racing": C.SPORTS,
    "literary": C.ARTS,
    "circus": C.FAMILY,
}

#: Provider-specific labels kept when the hint, not a keyword, decided.
HINT_DISPLAY: dict[str, str] = {
    "festivals": "Festival",
    "performing-arts": "Arts & Theatre",
    "community": "Community",
    "expos": "Expo",
    "conferences": "Conference",
    "public-holidays": "Holiday",
    "school-holidays": "School Holiday",
}

_PATTERNS: list[tuple[EventCategory, re.Pattern[str]]] = [
    (
        category,
        re.compile(
            r"(?<![\w])(?:"
            + "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
            + r")(?![\w])"
        ),
    )
    for category, keywords in KEYWORD_GROUPS
]


class Classification(NamedTuple):
    category: EventCategory
    display_label: str


def map_taxonomy(name: str | None) -> EventCategory | None:
    """Look a provider taxonomy name up in the static table."""
    if not name:
        return None
    return PROVIDER_TAXONOMY.get(name.strip().lower())


def classify(
    title: str,
    venue_name: str | None = None,
    provider_hint: str | None = None,
) -> Classification:
    """Assign an internal category to an event from its title and venue."""
    text = f"{title or ''} {venue_name or ''}".lower()
    for category, pattern in _PATTERNS:
        if pattern.search(text):
            return Classification(category, display_label(category))

    mapped = map_taxonomy(provider_hint)
    if mapped is not None:
        hint = provider_hint.strip().lower()
        return Classification(mapped, HINT_DISPLAY.get(hint, display_label(mapped)))

    return Classification(EventCategory.OTHER, display_label(EventCategory.OTHER))
