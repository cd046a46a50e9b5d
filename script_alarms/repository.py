"""TriggerRepository — aiosqlite persistence for registered schedules."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiosqlite

from script_alarms.config import settings
from script_alarms.models import Schedule, name_key

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS alarm_triggers (
    key TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    timing_class TEXT NOT NULL,
    interval_seconds REAL NOT NULL,
    first_fire_time REAL NOT NULL,
    wake_device INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
)
"""


class TriggerRepository:
    """Persists schedules in SQLite so they survive a restart.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.commit()
            self._initialised = True
        return db

    # -- CRUD ------------------------------------------------------------------

    async def save(self, schedule: Schedule) -> Schedule:
        """Insert a schedule, replacing any stored under the same name."""
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT OR REPLACE INTO alarm_triggers
                    (key, name, timing_class, interval_seconds, first_fire_time,
                     wake_device, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                schedule.to_row(),
            )
            await db.commit()
            logger.debug("Saved trigger: %s", schedule.name)
            return schedule
        finally:
            await db.close()

    async def get(self, name: str) -> Schedule | None:
        """Fetch a schedule by name (case-insensitive), or None if not found."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT * FROM alarm_triggers WHERE key = ?", (name_key(name),)
            )
            row = await cursor.fetchone()
            return Schedule.from_row(row) if row else None
        finally:
            await db.close()

    async def list_all(self) -> list[Schedule]:
        """Return every stored schedule, oldest first."""
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT * FROM alarm_triggers ORDER BY created_at")
            rows = await cursor.fetchall()
            return [Schedule.from_row(row) for row in rows]
        finally:
            await db.close()

    async def delete(self, name: str) -> bool:
        """Delete a schedule by name. Returns True if a row was removed."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "DELETE FROM alarm_triggers WHERE key = ?", (name_key(name),)
            )
            await db.commit()
            deleted = cursor.rowcount > 0
            if deleted:
                logger.debug("Deleted trigger: %s", name)
            return deleted
        finally:
            await db.close()
