"""Great-circle distance helpers."""

from __future__ import annotations

import math

from aggregator.models import Coordinates

EARTH_RADIUS_MILES = 3959.0
METERS_PER_MILE = 1609.344


def distance_miles(a: Coordinates, b: Coordinates) -> float:
    """Haversine distance between two points in statute miles."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distance_meters(a: Coordinates, b: Coordinates) -> float:
    return distance_miles(a, b) * METERS_PER_MILE
