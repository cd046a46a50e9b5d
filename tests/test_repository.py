"""Tests for TriggerRepository — SQLite persistence of schedules."""

from pathlib import Path

import pytest

from script_alarms.models import Schedule, TimingClass
from script_alarms.repository import TriggerRepository


@pytest.fixture
async def repository(tmp_path: Path) -> TriggerRepository:
    """Create a TriggerRepository backed by a temp database."""
    return TriggerRepository(db_path=tmp_path / "nested" / "test.db")


def _make_schedule(name: str = "backup.py", **kwargs) -> Schedule:
    defaults = {
        "interval_seconds": 3600.0,
        "first_fire_time": 1_700_000_000.0,
        "timing_class": TimingClass.EXACT,
        "created_at": "2025-01-01T00:00:00+00:00",
    }
    defaults.update(kwargs)
    return Schedule(name=name, **defaults)


# -- save / get ----------------------------------------------------------------


async def test_save_and_get(repository: TriggerRepository) -> None:
    schedule = _make_schedule(wake_device=True)
    await repository.save(schedule)

    fetched = await repository.get("backup.py")
    assert fetched == schedule


async def test_get_is_case_insensitive(repository: TriggerRepository) -> None:
    await repository.save(_make_schedule("Backup.py"))

    fetched = await repository.get("BACKUP.PY")
    assert fetched is not None
    assert fetched.name == "Backup.py"


async def test_get_not_found(repository: TriggerRepository) -> None:
    assert await repository.get("nonexistent") is None


async def test_save_replaces_same_name(repository: TriggerRepository) -> None:
    await repository.save(_make_schedule("ping"))
    await repository.save(_make_schedule("PING", timing_class=TimingClass.INEXACT))

    schedules = await repository.list_all()
    assert len(schedules) == 1
    assert schedules[0].name == "PING"
    assert schedules[0].timing_class is TimingClass.INEXACT


# -- list_all ------------------------------------------------------------------


async def test_list_all_ordered_by_created_at(repository: TriggerRepository) -> None:
    await repository.save(_make_schedule("later", created_at="2025-02-01T00:00:00+00:00"))
    await repository.save(_make_schedule("earlier", created_at="2025-01-01T00:00:00+00:00"))

    names = [s.name for s in await repository.list_all()]
    assert names == ["earlier", "later"]


async def test_list_all_empty(repository: TriggerRepository) -> None:
    assert await repository.list_all() == []


# -- delete --------------------------------------------------------------------


async def test_delete(repository: TriggerRepository) -> None:
    await repository.save(_make_schedule("job"))

    assert await repository.delete("JOB") is True
    assert await repository.get("job") is None


async def test_delete_nonexistent_returns_false(repository: TriggerRepository) -> None:
    assert await repository.delete("nonexistent") is False
