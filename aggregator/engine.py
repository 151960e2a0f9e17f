"""Discovery: fan out to every adapter and the local store, merge, filter, rank."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Sequence

from pydantic import ValidationError

from aggregator import config, policy
from aggregator.base import AdapterResult, BaseAdapter
from aggregator.dedup import drop_past_occurrences, merge_events
from aggregator.errors import CriteriaValidationError, StoreReadError
from aggregator.geocoder import Geocoder
from aggregator.models import Coordinates, Event, FilterCriteria
from aggregator.store import LocalStore

log = logging.getLogger(__name__)

#: Upper bound on user submissions geocoded in one request.
MAX_GEOCODE_LOOKUPS = 10


@dataclass
class DiscoveryResult:
    """Ordered events plus non-fatal diagnostics from degraded sources."""

    events: list[Event] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)

    def __iter__(self):
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)


def parse_criteria(criteria: FilterCriteria | Mapping[str, Any] | None) -> FilterCriteria:
    if criteria is None:
        return FilterCriteria()
    if isinstance(criteria, FilterCriteria):
        return criteria
    try:
        return FilterCriteria.model_validate(criteria)
    except ValidationError as exc:
        raise CriteriaValidationError(f"invalid filter criteria: {exc}") from exc


def parse_origin(origin: Coordinates | Mapping[str, Any] | Sequence[float] | None) -> Coordinates | None:
    if origin is None or isinstance(origin, Coordinates):
        return origin
    try:
        if isinstance(origin, Mapping):
            return Coordinates.model_validate(origin)
        lat, lon = origin
        return Coordinates(latitude=lat, longitude=lon)
    except (ValidationError, ValueError, TypeError) as exc:
        raise CriteriaValidationError(f"invalid origin coordinates: {origin!r}") from exc


class AggregationEngine:
    """Entry point the presentation layer calls for a swipe deck."""

    def __init__(
        self,
        adapters: Sequence[BaseAdapter],
        store: LocalStore,
        geocoder: Geocoder | None = None,
        *,
        adapter_timeout: float = config.ADAPTER_TIMEOUT_S,
        overall_timeout: float | None = config.DISCOVER_TIMEOUT_S,
    ) -> None:
        self.adapters = list(adapters)
        self.store = store
        self.geocoder = geocoder
        self.adapter_timeout = adapter_timeout
        self.overall_timeout = overall_timeout

    async def aclose(self) -> None:
        for adapter in self.adapters:
            await adapter.aclose()
        if self.geocoder is not None:
            await self.geocoder.aclose()

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def _guarded(self, adapter: BaseAdapter, call: Awaitable[AdapterResult]) -> AdapterResult:
        try:
            return await asyncio.wait_for(call, timeout=self.adapter_timeout)
        except asyncio.TimeoutError:
            log.warning("%s timed out after %.1fs", adapter.name, self.adapter_timeout)
            return AdapterResult.failure(adapter.name, f"timed out after {self.adapter_timeout}s")
        except Exception as exc:  # noqa: BLE001
            log.exception("%s raised unexpectedly", adapter.name)
            return AdapterResult.failure(adapter.name, f"unexpected error: {exc}")

    def _adapter_calls(
        self,
        origin: Coordinates | None,
        place_name: str | None,
        criteria: FilterCriteria,
        now: datetime,
    ) -> list[tuple[BaseAdapter, Awaitable[AdapterResult]]]:
        calls = []
        for adapter in self.adapters:
            if origin is not None:
                call = adapter.fetch_events(origin, criteria.distance_miles, since=now)
            elif place_name:
                call = adapter.fetch_events_by_place(place_name, since=now)
            else:
                continue
            calls.append((adapter, call))
        if not calls and self.adapters:
            log.info("no origin or place given; reading local submissions only")
        return calls

    async def _join(self, tasks: list[tuple[str, asyncio.Task]]) -> list[AdapterResult]:
        if not tasks:
            return []
        if self.overall_timeout is None:
            return list(await asyncio.gather(*(t for _, t in tasks)))

        _, pending = await asyncio.wait([t for _, t in tasks], timeout=self.overall_timeout)
        results = []
        for name, task in tasks:
            if task in pending:
                task.cancel()
                log.warning("%s still running at the %.1fs ceiling", name, self.overall_timeout)
                results.append(AdapterResult.failure(name, "cut off by discovery deadline"))
            else:
                results.append(task.result())
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        return results

    async def _read_store(self, user_id: str | None) -> tuple[list[Event], set[str]]:
        if user_id:
            submitted, passed, saved = await asyncio.gather(
                self.store.get_user_submitted_events(),
                self.store.get_user_pass_history(user_id),
                self.store.get_user_save_history(user_id),
            )
            return submitted, set(passed) | set(saved)
        return await self.store.get_user_submitted_events(), set()

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    async def _locate_submissions(self, events: list[Event]) -> list[Event]:
        """Fill coordinates for submissions that only carry an address."""
        missing = [e for e in events if e.coordinates is None and e.address][:MAX_GEOCODE_LOOKUPS]
        if not missing or self.geocoder is None:
            return events
        found = await asyncio.gather(*(self.geocoder.geocode(e.address) for e in missing))
        located = {
            e.id: e.model_copy(update={"coordinates": coords})
            for e, coords in zip(missing, found)
            if coords is not None
        }
        return [located.get(e.id, e) for e in events]

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def discover(
        self,
        user_id: str | None,
        origin: Coordinates | Mapping[str, Any] | Sequence[float] | None,
        criteria: FilterCriteria | Mapping[str, Any] | None = None,
        *,
        place_name: str | None = None,
        today: date | None = None,
        now: datetime | None = None,
    ) -> DiscoveryResult:
        """Return the ordered deck of events for one user and filter state.

        Provider failures and timeouts shrink the result and are listed in
        ``diagnostics``; only an unreadable store or invalid input raises.
        """
        criteria = parse_criteria(criteria)
        origin = parse_origin(origin) or criteria.origin
        now = now or datetime.now(timezone.utc)
        today = today or now.astimezone().date()

        if origin is None and place_name and self.geocoder is not None:
            origin = await self.geocoder.geocode(place_name)
            if origin is None:
                log.info("could not geocode %r; using place-name lookups", place_name)

        calls = self._adapter_calls(origin, place_name, criteria, now)
        tasks = [
            (adapter.name, asyncio.create_task(self._guarded(adapter, call)))
            for adapter, call in calls
        ]

        try:
            submitted, swiped = await self._read_store(user_id)
        except Exception as exc:
            for _, task in tasks:
                task.cancel()
            await asyncio.gather(*(t for _, t in tasks), return_exceptions=True)
            log.error("local store read failed: %s", exc)
            raise StoreReadError(f"local store unavailable: {exc}") from exc

        results = await self._join(tasks)

        diagnostics = [f"{r.source}: {r.error}" for r in results if not r.ok]
        candidates = [e for e in submitted if e.is_active]
        if origin is not None:
            candidates = await self._locate_submissions(candidates)
        for result in results:
            candidates.extend(result.events)

        merged = [drop_past_occurrences(e, today) for e in merge_events(candidates, today)]
        unseen = [e for e in merged if e.is_active and not (e.all_ids & swiped)]
        events = policy.apply(unseen, criteria, today, origin)

        log.info(
            "discover user=%s: %d candidate(s), %d after merge, %d unseen, %d returned, %d source failure(s)",
            user_id, len(candidates), len(merged), len(unseen), len(events), len(diagnostics),
        )
        return DiscoveryResult(events=events, diagnostics=diagnostics)
