"""Tests for the Schedule data model and time helpers."""

import math

import pytest

from script_alarms.errors import InvalidScheduleError
from script_alarms.models import Schedule, TimingClass, make_alarm_id, seconds_to_ms


def _make_schedule(**kwargs) -> Schedule:
    defaults = {
        "name": "backup.py",
        "interval_seconds": 60.0,
        "first_fire_time": 1_700_000_000.0,
        "timing_class": TimingClass.EXACT,
    }
    defaults.update(kwargs)
    return Schedule(**defaults)


# -- Time conversion -----------------------------------------------------------


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(1.5, 1500), (0.0005, 1), (0.0004, 0), (30.0, 30000), (1_700_000_000.25, 1_700_000_000_250)],
)
def test_seconds_to_ms_rounds_half_up(seconds: float, expected: int) -> None:
    assert seconds_to_ms(seconds) == expected


# -- Construction & validation -------------------------------------------------


def test_defaults() -> None:
    schedule = _make_schedule()
    assert schedule.wake_device is False
    assert "T" in schedule.created_at  # ISO 8601


def test_timing_class_from_string() -> None:
    schedule = _make_schedule(timing_class="inexact")
    assert schedule.timing_class is TimingClass.INEXACT
    assert schedule.is_exact is False


@pytest.mark.parametrize("name", ["", "   ", None])
def test_rejects_empty_name(name) -> None:
    with pytest.raises(InvalidScheduleError):
        _make_schedule(name=name)


@pytest.mark.parametrize("interval", [0, -1.0, math.inf, math.nan, 0.0001, True, "60"])
def test_rejects_bad_interval(interval) -> None:
    with pytest.raises(InvalidScheduleError):
        _make_schedule(interval_seconds=interval)


def test_rejects_non_finite_first_fire_time() -> None:
    with pytest.raises(InvalidScheduleError):
        _make_schedule(first_fire_time=math.nan)


def test_invalid_schedule_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        _make_schedule(interval_seconds=0)


@pytest.mark.parametrize("first_fire_time", ["soon", None, True])
def test_rejects_non_numeric_first_fire_time(first_fire_time) -> None:
    with pytest.raises(InvalidScheduleError):
        _make_schedule(first_fire_time=first_fire_time)


def test_rejects_unknown_timing_class() -> None:
    with pytest.raises(InvalidScheduleError):
        _make_schedule(timing_class="sometimes")


def test_is_frozen() -> None:
    schedule = _make_schedule()
    with pytest.raises(AttributeError):
        schedule.interval_seconds = 5.0  # type: ignore[misc]


# -- Names and IDs -------------------------------------------------------------


def test_matches_is_case_insensitive() -> None:
    schedule = _make_schedule(name="Backup.py")
    assert schedule.matches("BACKUP.PY")
    assert schedule.matches("backup.py")
    assert not schedule.matches("backup.sh")


def test_alarm_id_is_deterministic_and_case_insensitive() -> None:
    assert make_alarm_id("Foo") == make_alarm_id("foo") == "alarm:foo"
    assert _make_schedule(name="FOO").alarm_id == "alarm:foo"


def test_millisecond_properties() -> None:
    schedule = _make_schedule(interval_seconds=1.5, first_fire_time=10.0)
    assert schedule.interval_ms == 1500
    assert schedule.first_fire_time_ms == 10000


# -- Serialization -------------------------------------------------------------


def test_to_row_and_from_row_roundtrip() -> None:
    original = _make_schedule(
        name="Ping",
        timing_class=TimingClass.INEXACT,
        wake_device=True,
        created_at="2025-01-01T00:00:00+00:00",
    )
    row = original.to_row()
    assert row[0] == "ping"
    assert row[2] == "inexact"
    assert row[5] == 1

    assert Schedule.from_row(row) == original
