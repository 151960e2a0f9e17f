"""SQLite-backed local store: user submissions, swipe history and reports."""

from __future__ import annotations

import json
from pathlib import Path

import aiosqlite

from aggregator import config
from aggregator.models import Event, ModerationStatus, moderation_status_for


class AlreadyReported(Exception):
    """The reporter has already flagged this event."""


async def get_db(path: Path | str = config.DATABASE_PATH) -> aiosqlite.Connection:
    """Get a database connection with row factory enabled."""
    db = await aiosqlite.connect(path)
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA foreign_keys=ON")
    return db


async def init_db(path: Path | str = config.DATABASE_PATH) -> None:
    """Initialize the schema."""
    async with aiosqlite.connect(path) as db:
        await db.executescript("""
            CREATE TABLE IF NOT EXISTS user_events (
                id TEXT PRIMARY KEY,
                poster_id TEXT NOT NULL,
                payload TEXT NOT NULL,
                report_count INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'active',
                created_at TEXT DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS swipes (
                user_id TEXT NOT NULL,
                event_id TEXT NOT NULL,
                kind TEXT NOT NULL CHECK (kind IN ('pass', 'save')),
                created_at TEXT DEFAULT (datetime('now')),
                PRIMARY KEY (user_id, event_id, kind)
            );

            CREATE TABLE IF NOT EXISTS reports (
                event_id TEXT NOT NULL,
                reporter_id TEXT NOT NULL,
                reason TEXT NOT NULL,
                details TEXT,
                created_at TEXT DEFAULT (datetime('now')),
                PRIMARY KEY (event_id, reporter_id)
            );

            CREATE INDEX IF NOT EXISTS idx_user_events_status ON user_events(status);
            CREATE INDEX IF NOT EXISTS idx_swipes_user ON swipes(user_id, kind);
        """)
        await db.commit()


class SqliteStore:
    """``LocalStore`` implementation plus the writes the API exposes."""

    def __init__(self, path: Path | str = config.DATABASE_PATH) -> None:
        self.path = path

    # ------------------------------------------------------------------
    # Reads used by discovery
    # ------------------------------------------------------------------

    async def get_user_submitted_events(self) -> list[Event]:
        db = await get_db(self.path)
        try:
            cursor = await db.execute(
                "SELECT payload, report_count, status FROM user_events "
                "WHERE status = ? ORDER BY created_at DESC",
                (ModerationStatus.ACTIVE.value,),
            )
            rows = await cursor.fetchall()
        finally:
            await db.close()
        return [
            Event.model_validate(
                {
                    **json.loads(row["payload"]),
                    "report_count": row["report_count"],
                    "status": row["status"],
                }
            )
            for row in rows
        ]

    async def _history(self, user_id: str, kind: str) -> set[str]:
        db = await get_db(self.path)
        try:
            cursor = await db.execute(
                "SELECT event_id FROM swipes WHERE user_id = ? AND kind = ?",
                (user_id, kind),
            )
            rows = await cursor.fetchall()
        finally:
            await db.close()
        return {row["event_id"] for row in rows}

    async def get_user_pass_history(self, user_id: str) -> set[str]:
        return await self._history(user_id, "pass")

    async def get_user_save_history(self, user_id: str) -> set[str]:
        return await self._history(user_id, "save")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_user_event(self, event: Event) -> None:
        payload = event.model_dump(
            mode="json", exclude={"report_count", "status", "merged_ids", "rank"}
        )
        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                "INSERT INTO user_events (id, poster_id, payload) VALUES (?, ?, ?)",
                (event.id, event.poster_id or "", json.dumps(payload)),
            )
            await db.commit()

    async def record_swipe(self, user_id: str, event_id: str, kind: str) -> None:
        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                "INSERT OR IGNORE INTO swipes (user_id, event_id, kind) VALUES (?, ?, ?)",
                (user_id, event_id, kind),
            )
            await db.commit()

    async def record_report(
        self,
        event_id: str,
        reporter_id: str,
        reason: str,
        details: str | None = None,
    ) -> ModerationStatus | None:
        """Store a report and re-derive the submission's moderation status.

        Returns the new status for user submissions, ``None`` for provider
        events (which are only logged). Raises ``AlreadyReported`` on a
        second report by the same user.
        """
        async with aiosqlite.connect(self.path) as db:
            try:
                await db.execute(
                    "INSERT INTO reports (event_id, reporter_id, reason, details) "
                    "VALUES (?, ?, ?, ?)",
                    (event_id, reporter_id, reason, details),
                )
            except aiosqlite.IntegrityError as exc:
                raise AlreadyReported(event_id) from exc

            cursor = await db.execute(
                "SELECT COUNT(*) FROM reports WHERE event_id = ?", (event_id,)
            )
            count = (await cursor.fetchone())[0]
            status = moderation_status_for(count)
            cursor = await db.execute(
                "UPDATE user_events SET report_count = ?, status = ? WHERE id = ?",
                (count, status.value, event_id),
            )
            await db.commit()
            return status if cursor.rowcount else None
