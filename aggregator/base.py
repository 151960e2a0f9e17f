"""Abstract provider adapter with httpx, retries, and a source registry."""

from __future__ import annotations

import abc
import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from aggregator import config
from aggregator.errors import AdapterError
from aggregator.models import Coordinates, Event

log = logging.getLogger(__name__)

_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_5) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/18.0 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64; rv:132.0) Gecko/20100101 Firefox/132.0",
]

KM_PER_MILE = 1.60934


@dataclass
class AdapterResult:
    """Outcome of one adapter call: events on success, a reason on failure."""

    source: str
    events: list[Event] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, source: str, reason: str) -> AdapterResult:
        return cls(source=source, error=reason)


class BaseAdapter(abc.ABC):
    """Base class every provider adapter subclasses.

    Subclasses build request parameters, pull raw items (``_query``) and
    convert each one with the pure ``transform``. Public ``fetch_*`` methods
    never raise for provider problems; they return a failed ``AdapterResult``.
    """

    #: Unique source identifier, e.g. "ticketmaster".
    name: str = ""

    #: Prefix for event ids so they never collide with user submissions.
    id_prefix: str = ""

    #: Maximum attempts per request.
    max_retries: int = 2

    #: Backoff factor for retries (seconds multiplied by attempt number).
    retry_backoff: float = 0.5

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        page_size: int | None = None,
    ) -> None:
        if not self.name:
            raise ValueError("Adapter subclass must set 'name'")
        self._client = client
        self.page_size = page_size or config.ADAPTER_PAGE_SIZE

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": random.choice(_USER_AGENTS)},
                follow_redirects=True,
                timeout=config.ADAPTER_TIMEOUT_S,
            )
        return self._client

    async def fetch(self, url: str, **kwargs: Any) -> httpx.Response:
        """GET *url* with retries; raises ``AdapterError`` when exhausted."""
        client = await self._ensure_client()
        last_exc: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                resp = await client.get(url, **kwargs)
                resp.raise_for_status()
                return resp
            except httpx.HTTPStatusError as exc:
                last_exc = exc
                # 4xx other than throttling will not improve on retry
                if exc.response.status_code < 500 and exc.response.status_code != 429:
                    break
            except httpx.TransportError as exc:
                last_exc = exc
            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_backoff * attempt)
        raise AdapterError(self.name, f"{url} failed: {last_exc}") from last_exc

    async def fetch_json(self, url: str, **kwargs: Any) -> Any:
        resp = await self.fetch(url, **kwargs)
        try:
            return resp.json()
        except ValueError as exc:
            raise AdapterError(self.name, "response is not JSON") from exc

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Provider contract
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def location_params(
        self,
        origin: Coordinates,
        radius_miles: float,
        since: datetime,
        category_hint: str | None,
    ) -> dict[str, Any]:
        """Request parameters for a coordinate-bounded search."""

    @abc.abstractmethod
    def keyword_params(
        self,
        keyword: str,
        origin: Coordinates | None,
        radius_miles: float,
        since: datetime,
    ) -> dict[str, Any]:
        """Request parameters for a free-text keyword search."""

    @abc.abstractmethod
    def place_params(self, place: str, since: datetime) -> dict[str, Any]:
        """Request parameters for a search by place name."""

    @abc.abstractmethod
    async def _query(self, params: dict[str, Any]) -> list[dict]:
        """Issue the request(s) and return the provider's raw items."""

    @abc.abstractmethod
    def transform(self, item: dict) -> Event | None:
        """Convert one raw item into a canonical Event, or ``None`` if unusable."""

    # ------------------------------------------------------------------
    # Public fetch API
    # ------------------------------------------------------------------

    async def fetch_events(
        self,
        origin: Coordinates,
        radius_miles: float,
        since: datetime | None = None,
        category_hint: str | None = None,
    ) -> AdapterResult:
        """Events within *radius_miles* of *origin* starting after *since*."""
        if radius_miles <= 0:
            raise ValueError("radius_miles must be positive")
        since = since or datetime.now(timezone.utc)
        try:
            params = self.location_params(origin, radius_miles, since, category_hint)
        except RuntimeError as exc:
            return self._failed(str(exc))
        return await self._collect(params)

    async def fetch_events_by_keyword(
        self,
        keyword: str,
        origin: Coordinates | None = None,
        radius_miles: float = config.DEFAULT_DISTANCE_MILES,
        since: datetime | None = None,
    ) -> AdapterResult:
        since = since or datetime.now(timezone.utc)
        try:
            params = self.keyword_params(keyword, origin, radius_miles, since)
        except RuntimeError as exc:
            return self._failed(str(exc))
        return await self._collect(params)

    async def fetch_events_by_place(
        self, place: str, since: datetime | None = None
    ) -> AdapterResult:
        since = since or datetime.now(timezone.utc)
        try:
            params = self.place_params(place, since)
        except RuntimeError as exc:
            return self._failed(str(exc))
        return await self._collect(params)

    def _failed(self, reason: str) -> AdapterResult:
        log.warning("%s unavailable: %s", self.name, reason)
        return AdapterResult.failure(self.name, reason)

    async def _collect(self, params: dict[str, Any]) -> AdapterResult:
        try:
            items = await self._query(params)
        except AdapterError as exc:
            return self._failed(exc.reason)
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            return self._failed(f"malformed payload: {exc}")

        events: list[Event] = []
        for item in items:
            if not isinstance(item, dict):
                log.debug("%s skipped non-object item %r", self.name, item)
                continue
            event = self.transform(item)
            if event is None:
                log.debug("%s dropped unusable item %r", self.name, item.get("id"))
                continue
            events.append(event)
        log.info("%s returned %d event(s)", self.name, len(events))
        return AdapterResult(source=self.name, events=events)


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------

_registry: dict[str, type[BaseAdapter]] = {}


def register(cls: type[BaseAdapter]) -> type[BaseAdapter]:
    """Class decorator that registers an adapter by its *name*."""
    _registry[cls.name] = cls
    return cls


def get_adapters() -> dict[str, type[BaseAdapter]]:
    """Return a copy of the adapter registry."""
    return dict(_registry)


def get_adapter(name: str) -> type[BaseAdapter]:
    """Look up a registered adapter by name."""
    try:
        return _registry[name]
    except KeyError:
        raise KeyError(f"Unknown adapter: {name!r}. Available: {list(_registry)}")


def create_adapters(names: list[str] | None = None) -> list[BaseAdapter]:
    """Instantiate registered adapters (all, or *names*) in registry order."""
    import aggregator.sources  # noqa: F401

    registry = get_adapters()
    selected = names or list(registry)
    return [get_adapter(name)() for name in selected]
