"""Scheduler — keeps named script alarms armed and runs scripts when they fire."""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
from typing import TYPE_CHECKING

from script_alarms.clock import SystemClock
from script_alarms.errors import BackendUnavailableError
from script_alarms.models import Schedule, TimingClass, seconds_to_ms
from script_alarms.store import TriggerStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from script_alarms.backend import AlarmBackend
    from script_alarms.clock import Clock
    from script_alarms.repository import TriggerRepository
    from script_alarms.runner import ScriptRunner

logger = logging.getLogger(__name__)

# Schedule kinds that cancel() is allowed to remove.
_ALARM_KINDS = frozenset(TimingClass)


class Scheduler:
    """Registers repeating alarms per script name and dispatches firings.

    ``schedule_*`` and ``cancel`` may be called while the backend delivers
    ``on_fire`` callbacks on its own threads; all access to the store goes
    through one lock.

    Args:
        backend: AlarmBackend that arms the timers.
        runner: ScriptRunner invoked with the script name on every firing.
        clock: Source of "now" (default: system wall clock).
        store: TriggerStore holding the active schedules.
        repository: Optional TriggerRepository for persistence across restarts.
        on_error: Called as ``on_error(name, exc)`` when dispatching a firing
            fails. Errors never propagate into the backend.
    """

    def __init__(
        self,
        backend: AlarmBackend,
        runner: ScriptRunner,
        clock: Clock | None = None,
        store: TriggerStore | None = None,
        repository: TriggerRepository | None = None,
        on_error: Callable[[str, Exception], None] | None = None,
    ) -> None:
        self._backend = backend
        self._runner = runner
        self._clock = clock or SystemClock()
        self._store = store if store is not None else TriggerStore()
        self._repository = repository
        self._on_error = on_error
        self._lock = threading.RLock()
        # Orders in-memory changes with their repository writes
        self._write_lock = asyncio.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def store(self) -> TriggerStore:
        return self._store

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Start the backend and arm every known schedule.

        Persisted schedules are loaded first. INEXACT schedules restart from
        now. A schedule the backend refuses to arm is logged and skipped.
        """
        self._backend.start()
        self._running = True
        restored = await self._restore()
        armed = self._arm_all()
        logger.info("Scheduler started with %d schedule(s) (%d restored)", armed, restored)

    async def stop(self) -> None:
        """Stop the backend. Registered schedules stay in the store."""
        if self._running:
            self._backend.shutdown()
            self._running = False
            logger.info("Scheduler stopped")

    # -- Scheduling ------------------------------------------------------------

    async def schedule_inexact_repeating(
        self,
        name: str,
        interval_seconds: float,
        wake_device: bool = False,
    ) -> Schedule:
        """Run *name* every *interval_seconds*, starting now.

        The backend may delay or batch firings to save power.
        Raises ``InvalidScheduleError`` or ``BackendUnavailableError``.
        """
        now = self._clock.now()
        schedule = Schedule(
            name=name,
            interval_seconds=interval_seconds,
            first_fire_time=now,
            timing_class=TimingClass.INEXACT,
            wake_device=wake_device,
        )
        return await self._schedule(schedule)

    async def schedule_exact_repeating(
        self,
        name: str,
        interval_seconds: float,
        first_fire_time: float,
        wake_device: bool = False,
    ) -> Schedule:
        """Run *name* at *first_fire_time*, then every *interval_seconds*.

        A first fire time in the past fires right away.
        Raises ``InvalidScheduleError`` or ``BackendUnavailableError``.
        """
        schedule = Schedule(
            name=name,
            interval_seconds=interval_seconds,
            first_fire_time=first_fire_time,
            timing_class=TimingClass.EXACT,
            wake_device=wake_device,
        )
        return await self._schedule(schedule)

    async def cancel(self, name: str) -> list[Schedule]:
        """Stop future firings of *name* (case-insensitive).

        Unknown names are ignored. Scripts already running are not killed.
        Returns the removed schedules.
        """
        async with self._write_lock:
            with self._lock:
                removed = self._store.remove_where(
                    lambda s: s.timing_class in _ALARM_KINDS and s.matches(name)
                )
                for schedule in removed:
                    self._backend.disarm(schedule.alarm_id)

            if self._repository is not None:
                await self._repository.delete(name)
        if removed:
            logger.info("Cancelled schedule: %s", name)
        else:
            logger.debug("Cancel requested for unknown schedule: %s", name)
        return removed

    def get(self, name: str) -> Schedule | None:
        return self._store.get(name)

    def list_schedules(self) -> list[Schedule]:
        return list(self._store.all())

    # -- Firing ----------------------------------------------------------------

    def on_fire(self, name: str) -> None:
        """Callback invoked by the backend when the alarm for *name* fires."""
        with self._lock:
            schedule = self._store.get(name)
        if schedule is None:
            # Timer outlived its schedule (cancel raced the firing)
            logger.debug("Ignoring firing for unscheduled alarm: %s", name)
            return

        logger.info("Alarm fired: %s (%s)", schedule.name, schedule.timing_class.value)
        try:
            self._runner.run(schedule.name)
        except Exception as exc:
            logger.exception("Failed to dispatch script: %s", schedule.name)
            self._report_error(schedule.name, exc)

    # -- Internal --------------------------------------------------------------

    async def _schedule(self, schedule: Schedule) -> Schedule:
        """Replace any schedule under the same name, arm, store, and persist."""
        async with self._write_lock:
            try:
                self._register(schedule)
            except BackendUnavailableError:
                # The previous timer is already disarmed; drop it from storage too
                if self._repository is not None:
                    await self._repository.delete(schedule.name)
                raise
            if self._repository is not None:
                await self._repository.save(schedule)
        logger.info(
            "Scheduled %s alarm: %s every %ss",
            schedule.timing_class.value,
            schedule.name,
            schedule.interval_seconds,
        )
        return schedule

    def _register(self, schedule: Schedule) -> None:
        """Disarm the previous timer for this name, then arm and store the new one.

        If arming fails the name is left unscheduled and the error propagates.
        """
        with self._lock:
            replaced = self._store.remove_where(lambda s: s.key == schedule.key)
            for previous in replaced:
                self._backend.disarm(previous.alarm_id)
            self._arm(schedule)
            self._store.add(schedule)

    def _arm(self, schedule: Schedule, base_time: float | None = None) -> None:
        if base_time is None:
            base_time = schedule.first_fire_time
        self._backend.arm(
            schedule.alarm_id,
            schedule.timing_class,
            seconds_to_ms(base_time),
            schedule.interval_ms,
            functools.partial(self.on_fire, schedule.name),
            wake_device=schedule.wake_device,
        )

    async def _restore(self) -> int:
        """Load persisted schedules that are not in the store yet."""
        if self._repository is None:
            return 0
        restored = 0
        for schedule in await self._repository.list_all():
            with self._lock:
                if schedule.name in self._store:
                    continue
                self._store.add(schedule)
            restored += 1
        return restored

    def _arm_all(self) -> int:
        """Arm every stored schedule, dropping the ones the backend refuses."""
        armed = 0
        for schedule in self._store.all():
            base_time = None if schedule.is_exact else self._clock.now()
            with self._lock:
                if self._store.get(schedule.name) is not schedule:
                    continue
                try:
                    self._arm(schedule, base_time)
                except BackendUnavailableError:
                    logger.exception("Could not re-arm schedule, skipping: %s", schedule.name)
                    self._store.remove_where(lambda s: s is schedule)
                    continue
            armed += 1
        return armed

    def _report_error(self, name: str, exc: Exception) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(name, exc)
        except Exception:
            logger.exception("Error handler failed for alarm: %s", name)
