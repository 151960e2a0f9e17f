"""Read contract the engine needs from the persistence layer."""

from __future__ import annotations

from typing import Iterable, Protocol

from aggregator.models import Event, ModerationStatus, moderation_status_for


class LocalStore(Protocol):
    async def get_user_submitted_events(self) -> list[Event]: ...

    async def get_user_pass_history(self, user_id: str) -> set[str]: ...

    async def get_user_save_history(self, user_id: str) -> set[str]: ...


class InMemoryStore:
    """Dict-backed store for the CLI and tests."""

    def __init__(
        self,
        events: Iterable[Event] = (),
        passed: dict[str, set[str]] | None = None,
        saved: dict[str, set[str]] | None = None,
    ) -> None:
        self.events: dict[str, Event] = {e.id: e for e in events}
        self.passed = passed or {}
        self.saved = saved or {}

    async def get_user_submitted_events(self) -> list[Event]:
        return list(self.events.values())

    async def get_user_pass_history(self, user_id: str) -> set[str]:
        return set(self.passed.get(user_id, ()))

    async def get_user_save_history(self, user_id: str) -> set[str]:
        return set(self.saved.get(user_id, ()))

    def report(self, event_id: str) -> ModerationStatus:
        """Count one report against a submitted event and return its new status."""
        event = self.events[event_id]
        count = (event.report_count or 0) + 1
        status = moderation_status_for(count)
        self.events[event_id] = event.model_copy(
            update={"report_count": count, "status": status}
        )
        return status
