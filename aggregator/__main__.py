"""CLI entry-point: python -m aggregator [discover|list|geocode]."""

from __future__ import annotations

import asyncio
import logging

import typer

from aggregator import config
from aggregator.base import create_adapters, get_adapters
from aggregator.engine import AggregationEngine
from aggregator.errors import CriteriaValidationError
from aggregator.geocoder import Geocoder
from aggregator.models import Coordinates, EventCategory, FilterCriteria, TimeRange
from aggregator.store import InMemoryStore

app = typer.Typer(help="EventSwipe – event aggregation CLI")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.command()
def discover(
    lat: float | None = typer.Option(None, help="Origin latitude"),
    lon: float | None = typer.Option(None, help="Origin longitude"),
    place: str | None = typer.Option(None, "--place", "-p", help="Place name when no coordinates"),
    distance: float = typer.Option(config.DEFAULT_DISTANCE_MILES, "--distance", "-d"),
    time_range: TimeRange = typer.Option(TimeRange.MONTH, "--time-range", "-t"),
    category: list[EventCategory] | None = typer.Option(
        None, "--category", "-c", help="Category code(s). Omit for all."
    ),
    source: list[str] | None = typer.Option(
        None, "--source", "-s", help="Adapter name(s) to query. Omit for all."
    ),
) -> None:
    """Aggregate events around a location and print the ordered deck."""
    origin = Coordinates(latitude=lat, longitude=lon) if lat is not None and lon is not None else None
    try:
        criteria = FilterCriteria(
            distance_miles=distance,
            time_range=time_range,
            categories=frozenset(category) if category else FilterCriteria().categories,
        )
    except ValueError as exc:
        typer.echo(f"Invalid filters: {exc}", err=True)
        raise typer.Exit(2)

    async def _run():
        engine = AggregationEngine(create_adapters(source or None), InMemoryStore(), Geocoder())
        try:
            return await engine.discover(None, origin, criteria, place_name=place)
        finally:
            await engine.aclose()

    try:
        result = asyncio.run(_run())
    except CriteriaValidationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(2)

    for event in result.events:
        when = f"{event.primary_date} {event.primary_time}".strip()
        extra = f" (+{len(event.occurrences) - 1} more dates)" if len(event.occurrences) > 1 else ""
        typer.echo(f"{when}  [{event.category.value}] {event.title} @ {event.location or '?'}{extra}")
    for line in result.diagnostics:
        typer.echo(f"warning: {line}", err=True)
    typer.echo(f"{len(result.events)} event(s).")


@app.command(name="list")
def list_adapters() -> None:
    """List registered provider adapters."""
    import aggregator.sources  # noqa: F401

    for name in sorted(get_adapters()):
        typer.echo(f"  {name}")


@app.command()
def geocode(query: str = typer.Argument(help="Address or place name")) -> None:
    """Forward-geocode QUERY and print its coordinates and city."""

    async def _run():
        geocoder = Geocoder()
        try:
            coords = await geocoder.geocode(query)
            place = await geocoder.reverse_geocode(coords) if coords else None
            return coords, place
        finally:
            await geocoder.aclose()

    coords, place = asyncio.run(_run())
    if coords is None:
        typer.echo("Not found.")
        raise typer.Exit(1)
    typer.echo(f"{coords.latitude:.5f},{coords.longitude:.5f}")
    if place is not None:
        typer.echo(f"{place.city}, {place.region}".rstrip(", "))


if __name__ == "__main__":
    app()
