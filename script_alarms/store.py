"""TriggerStore — in-memory registry of active schedules."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from script_alarms.models import name_key

if TYPE_CHECKING:
    from collections.abc import Callable

    from script_alarms.models import Schedule

logger = logging.getLogger(__name__)


class TriggerStore:
    """Holds the active schedules, keyed by case-insensitive name.

    Every method takes an internal lock, so the store can be read from the
    alarm backend's worker threads while callers add or remove schedules.
    """

    def __init__(self) -> None:
        self._schedules: dict[str, Schedule] = {}
        self._lock = threading.RLock()

    def add(self, schedule: Schedule) -> Schedule | None:
        """Insert or replace a schedule. Returns the replaced one, if any."""
        with self._lock:
            previous = self._schedules.get(schedule.key)
            self._schedules[schedule.key] = schedule
        if previous is not None:
            logger.debug("Replaced schedule: %s", schedule.name)
        return previous

    def remove_where(self, predicate: Callable[[Schedule], bool]) -> list[Schedule]:
        """Remove every schedule matching *predicate* and return them."""
        with self._lock:
            removed = [s for s in self._schedules.values() if predicate(s)]
            for schedule in removed:
                del self._schedules[schedule.key]
        return removed

    def get(self, name: str) -> Schedule | None:
        """Look up a schedule by name, or None if not found."""
        with self._lock:
            return self._schedules.get(name_key(name))

    def all(self) -> tuple[Schedule, ...]:
        """Return a snapshot of all schedules in registration order."""
        with self._lock:
            return tuple(self._schedules.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._schedules)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        with self._lock:
            return name_key(name) in self._schedules
