"""Schedule data model and time helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from script_alarms.errors import InvalidScheduleError

_ALARM_ID_PREFIX = "alarm:"


class TimingClass(StrEnum):
    """How strictly the backend must honour a schedule's fire times."""

    EXACT = "exact"
    INEXACT = "inexact"


def seconds_to_ms(seconds: float) -> int:
    """Convert seconds to whole milliseconds, rounding half up.

    ``1.5 -> 1500``, ``0.0005 -> 1``. Sub-millisecond precision is lost.
    """
    return math.floor(seconds * 1000 + 0.5)


def name_key(name: str) -> str:
    """Return the case-insensitive lookup key for a schedule name."""
    return name.casefold()


def make_alarm_id(name: str) -> str:
    """Derive the backend alarm ID for a schedule name.

    Deterministic, so arming twice under the same name replaces the timer.
    """
    return _ALARM_ID_PREFIX + name_key(name)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True)
class Schedule:
    """One registered recurring script alarm.

    Attributes:
        name: Script name. Unique within a store, compared case-insensitively.
        interval_seconds: Time between firings. Must be finite and positive.
        first_fire_time: Absolute time (epoch seconds) of the first firing.
        timing_class: ``EXACT`` or ``INEXACT``.
        wake_device: Fire even while the host is suspended.
        created_at: ISO 8601 timestamp of registration.
    """

    name: str
    interval_seconds: float
    first_fire_time: float
    timing_class: TimingClass
    wake_device: bool = False
    created_at: str = field(default_factory=_now_iso)

    def __post_init__(self) -> None:
        validate_name(self.name)
        validate_interval(self.interval_seconds)
        if isinstance(self.first_fire_time, bool) or not isinstance(
            self.first_fire_time, (int, float)
        ):
            msg = f"First fire time must be a number, got {self.first_fire_time!r}"
            raise InvalidScheduleError(msg)
        if not math.isfinite(self.first_fire_time):
            msg = f"First fire time must be finite, got {self.first_fire_time!r}"
            raise InvalidScheduleError(msg)
        # Accept plain strings (e.g. from a database row)
        try:
            timing_class = TimingClass(self.timing_class)
        except ValueError as exc:
            msg = f"Unknown timing class: {self.timing_class!r}"
            raise InvalidScheduleError(msg) from exc
        object.__setattr__(self, "timing_class", timing_class)

    # -- Convenience properties ------------------------------------------------

    @property
    def key(self) -> str:
        return name_key(self.name)

    @property
    def alarm_id(self) -> str:
        return make_alarm_id(self.name)

    @property
    def interval_ms(self) -> int:
        return seconds_to_ms(self.interval_seconds)

    @property
    def first_fire_time_ms(self) -> int:
        return seconds_to_ms(self.first_fire_time)

    @property
    def is_exact(self) -> bool:
        return self.timing_class is TimingClass.EXACT

    def matches(self, name: str) -> bool:
        """Return True if *name* refers to this schedule (case-insensitive)."""
        return self.key == name_key(name)

    # -- Serialization ---------------------------------------------------------

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``alarm_triggers`` column order."""
        return (
            self.key,
            self.name,
            self.timing_class.value,
            self.interval_seconds,
            self.first_fire_time,
            int(self.wake_device),
            self.created_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Schedule:
        """Deserialize from a SQLite row tuple."""
        return cls(
            name=row[1],
            timing_class=TimingClass(row[2]),
            interval_seconds=float(row[3]),
            first_fire_time=float(row[4]),
            wake_device=bool(row[5]),
            created_at=row[6],
        )


def validate_name(name: str) -> None:
    """Raise ``InvalidScheduleError`` unless *name* is a non-blank string."""
    if not isinstance(name, str) or not name.strip():
        msg = f"Schedule name must be a non-empty string, got {name!r}"
        raise InvalidScheduleError(msg)


def validate_interval(interval_seconds: float) -> None:
    """Raise ``InvalidScheduleError`` unless the interval is usable by a backend."""
    if isinstance(interval_seconds, bool) or not isinstance(interval_seconds, int | float):
        msg = f"Interval must be a number of seconds, got {interval_seconds!r}"
        raise InvalidScheduleError(msg)
    if not math.isfinite(interval_seconds) or interval_seconds <= 0:
        msg = f"Interval must be a positive number of seconds, got {interval_seconds!r}"
        raise InvalidScheduleError(msg)
    if seconds_to_ms(interval_seconds) < 1:
        msg = f"Interval {interval_seconds!r}s is below the 1 ms backend resolution"
        raise InvalidScheduleError(msg)
