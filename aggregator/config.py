"""Runtime settings read from the environment.

Provider credentials are not read here; each adapter looks its own key up
at request time so a missing key only disables that source.
"""

from __future__ import annotations

import os
from pathlib import Path


def _float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


def _optional_float(name: str) -> float | None:
    raw = os.environ.get(name)
    return float(raw) if raw else None


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------
ADAPTER_TIMEOUT_S: float = _float("ADAPTER_TIMEOUT_S", 10.0)
DISCOVER_TIMEOUT_S: float | None = _optional_float("DISCOVER_TIMEOUT_S")
ADAPTER_PAGE_SIZE: int = int(os.environ.get("ADAPTER_PAGE_SIZE", "50"))
GEOCODER_TIMEOUT_S: float = _float("GEOCODER_TIMEOUT_S", 5.0)
NOMINATIM_USER_AGENT: str = os.environ.get("NOMINATIM_USER_AGENT", "EventSwipe/1.0")

# ---------------------------------------------------------------------------
# Merge heuristic
# ---------------------------------------------------------------------------
MERGE_TITLE_SIMILARITY: float = _float("MERGE_TITLE_SIMILARITY", 0.85)
MERGE_VENUE_SIMILARITY: float = _float("MERGE_VENUE_SIMILARITY", 0.8)
MERGE_DATE_TOLERANCE_DAYS: int = int(os.environ.get("MERGE_DATE_TOLERANCE_DAYS", "1"))
MERGE_COORDINATE_TOLERANCE_M: float = _float("MERGE_COORDINATE_TOLERANCE_M", 300.0)

# ---------------------------------------------------------------------------
# Presentation defaults
# ---------------------------------------------------------------------------
PLACEHOLDER_IMAGE_URL: str = os.environ.get(
    "PLACEHOLDER_IMAGE_URL", "https://picsum.photos/400/300?random={seed}"
)
DEFAULT_DISTANCE_MILES: float = _float("DEFAULT_DISTANCE_MILES", 25.0)

# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------
REPORTS_TO_HIDE: int = int(os.environ.get("REPORTS_TO_HIDE", "3"))
REPORTS_TO_REMOVE: int = int(os.environ.get("REPORTS_TO_REMOVE", "5"))

# ---------------------------------------------------------------------------
# Storage / logging
# ---------------------------------------------------------------------------
DATABASE_PATH: Path = Path(
    os.environ.get("DATABASE_PATH", Path(__file__).parent.parent / "events.db")
)
LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")


def placeholder_image(seed: object) -> str:
    """Return the placeholder image URL for a record without artwork."""
    return PLACEHOLDER_IMAGE_URL.format(seed=seed)


def is_placeholder_image(url: str) -> bool:
    return not url or url.startswith(PLACEHOLDER_IMAGE_URL.split("{", 1)[0])
