"""AlarmBackend protocol and its APScheduler implementation."""

from __future__ import annotations

import logging
import zoneinfo
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from script_alarms.config import settings
from script_alarms.errors import BackendUnavailableError
from script_alarms.models import TimingClass

if TYPE_CHECKING:
    from collections.abc import Callable

    from apscheduler.events import JobExecutionEvent

logger = logging.getLogger(__name__)


@runtime_checkable
class AlarmBackend(Protocol):
    """Arms and disarms repeating timers that call back into the scheduler."""

    def arm(
        self,
        alarm_id: str,
        timing_class: TimingClass,
        base_time_ms: int,
        period_ms: int,
        callback: Callable[[], None],
        *,
        wake_device: bool = False,
    ) -> None:
        """Arm (or re-arm) the timer *alarm_id*.

        The first firing is at *base_time_ms*, or right away if that time has
        already passed, then every *period_ms*.
        Raises ``BackendUnavailableError`` if the timer cannot be armed.
        """
        ...

    def disarm(self, alarm_id: str) -> bool:
        """Cancel the timer. Returns False if no such timer was armed."""
        ...

    def start(self) -> None: ...

    def shutdown(self) -> None: ...


class APSchedulerBackend:
    """AlarmBackend running each alarm as an APScheduler interval job.

    Synchronous callbacks run on APScheduler's thread pool, so they may be
    invoked concurrently with callers of ``arm``/``disarm``.

    A base time that is not in the future fires right away. EXACT alarms
    then fire once per period and every missed run is delivered.
    INEXACT alarms get up to ``inexact_window_seconds`` of random jitter
    (capped at half the period) and late runs are coalesced into one.
    Alarms without ``wake_device`` are dropped if they are more than
    ``misfire_grace_seconds`` late (e.g. the host was suspended); wake alarms
    always run, however late.

    Args:
        timezone: IANA timezone string (default from settings).
        inexact_window_seconds: Max jitter for INEXACT alarms.
        misfire_grace_seconds: Lateness tolerated for non-wake alarms.
    """

    def __init__(
        self,
        timezone: str | None = None,
        inexact_window_seconds: float | None = None,
        misfire_grace_seconds: int | None = None,
    ) -> None:
        self._timezone = timezone or settings.scheduler_timezone
        self._tz = zoneinfo.ZoneInfo(self._timezone)
        self._inexact_window = (
            settings.inexact_window_seconds
            if inexact_window_seconds is None
            else inexact_window_seconds
        )
        self._misfire_grace = misfire_grace_seconds or settings.misfire_grace_seconds
        self._scheduler = self._new_scheduler()
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    # -- Lifecycle -------------------------------------------------------------

    def start(self) -> None:
        if not self._started:
            self._scheduler.start()
            self._started = True
            logger.info("Alarm backend started (tz=%s)", self._timezone)

    def shutdown(self) -> None:
        """Stop firing and drop every armed alarm.

        AsyncIOScheduler may finish its shutdown later on the event loop, so a
        fresh scheduler is prepared for the next ``start()``.
        """
        if self._started:
            self._scheduler.shutdown(wait=False)
            self._scheduler = self._new_scheduler()
            self._started = False
            logger.info("Alarm backend stopped")

    # -- Timers ----------------------------------------------------------------

    def arm(
        self,
        alarm_id: str,
        timing_class: TimingClass,
        base_time_ms: int,
        period_ms: int,
        callback: Callable[[], None],
        *,
        wake_device: bool = False,
    ) -> None:
        try:
            trigger = self._build_trigger(timing_class, base_time_ms, period_ms)
            now = datetime.now(self._tz)
            # A past base time would otherwise wait for the next period boundary
            next_run_time = max(trigger.start_date, now)
            self._scheduler.add_job(
                callback,
                trigger=trigger,
                next_run_time=next_run_time,
                id=alarm_id,
                name=alarm_id,
                replace_existing=True,
                coalesce=timing_class is TimingClass.INEXACT,
                misfire_grace_time=None if wake_device else self._misfire_grace,
            )
        except Exception as exc:
            msg = f"Could not arm alarm {alarm_id!r}: {exc}"
            raise BackendUnavailableError(msg) from exc
        logger.debug(
            "Armed %s alarm %s (base=%d ms, period=%d ms, wake=%s)",
            timing_class.value,
            alarm_id,
            base_time_ms,
            period_ms,
            wake_device,
        )

    def disarm(self, alarm_id: str) -> bool:
        try:
            self._scheduler.remove_job(alarm_id)
        except JobLookupError:
            logger.debug("Alarm %s not armed (may already be removed)", alarm_id)
            return False
        logger.debug("Disarmed alarm %s", alarm_id)
        return True

    # -- Internal --------------------------------------------------------------

    def _new_scheduler(self) -> AsyncIOScheduler:
        scheduler = AsyncIOScheduler(timezone=self._timezone)
        scheduler.add_listener(self._on_job_event, EVENT_JOB_ERROR | EVENT_JOB_MISSED)
        return scheduler

    def _build_trigger(
        self, timing_class: TimingClass, base_time_ms: int, period_ms: int
    ) -> IntervalTrigger:
        """Convert a base time and period into an APScheduler interval trigger."""
        period_seconds = period_ms / 1000
        jitter = None
        if timing_class is TimingClass.INEXACT and self._inexact_window > 0:
            jitter = min(self._inexact_window, period_seconds / 2) or None
        return IntervalTrigger(
            seconds=period_seconds,
            start_date=datetime.fromtimestamp(base_time_ms / 1000, tz=self._tz),
            timezone=self._tz,
            jitter=jitter,
        )

    def _on_job_event(self, event: JobExecutionEvent) -> None:
        if event.code == EVENT_JOB_MISSED:
            logger.warning("Alarm %s missed its run at %s", event.job_id, event.scheduled_run_time)
        else:
            logger.error("Alarm %s callback raised: %r", event.job_id, event.exception)
