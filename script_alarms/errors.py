"""Scheduler error types."""


class ScheduleError(Exception):
    """Base class for all scheduler errors."""


class InvalidScheduleError(ScheduleError, ValueError):
    """A schedule request has an empty name or an unusable interval or time."""


class BackendUnavailableError(ScheduleError):
    """The alarm backend could not arm a timer. Not retried automatically."""
