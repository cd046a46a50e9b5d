"""Wiring — build a Scheduler from settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from script_alarms.backend import APSchedulerBackend
from script_alarms.clock import SystemClock
from script_alarms.config import settings
from script_alarms.repository import TriggerRepository
from script_alarms.runner import SubprocessScriptRunner
from script_alarms.scheduler import Scheduler

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


def _log_firing_error(name: str, exc: Exception) -> None:
    logger.error("Alarm '%s' could not run its script: %s", name, exc)


def create_scheduler(
    on_error: Callable[[str, Exception], None] | None = None,
) -> Scheduler:
    """Create the scheduler with the backend, runner, and repository from settings."""
    backend = APSchedulerBackend(
        timezone=settings.scheduler_timezone,
        inexact_window_seconds=settings.inexact_window_seconds,
        misfire_grace_seconds=settings.misfire_grace_seconds,
    )
    runner = SubprocessScriptRunner(
        script_dir=settings.script_dir,
        interpreter=settings.get_interpreter_argv(),
        timeout=settings.script_timeout_seconds,
    )
    repository = TriggerRepository(settings.database_path) if settings.persist_triggers else None
    if repository is None:
        logger.info("Trigger persistence disabled; schedules will not survive a restart")

    return Scheduler(
        backend=backend,
        runner=runner,
        clock=SystemClock(),
        repository=repository,
        on_error=on_error or _log_firing_error,
    )
