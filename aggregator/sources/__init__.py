"""Auto-import all provider adapters to trigger @register decorators."""

from aggregator.sources import (  # noqa: F401
    ticketmaster,
    seatgeek,
    predicthq,
    eventbrite,
)
