"""Shared test fixtures."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from unittest.mock import MagicMock

import pytest

from script_alarms.errors import BackendUnavailableError
from script_alarms.scheduler import Scheduler
from script_alarms.store import TriggerStore

T0 = 1_700_000_000.0


@dataclass
class ArmCall:
    alarm_id: str
    timing_class: object
    base_time_ms: int
    period_ms: int
    callback: object
    wake_device: bool


@dataclass
class FakeBackend:
    """In-memory AlarmBackend that records every arm/disarm."""

    armed: dict[str, ArmCall] = field(default_factory=dict)
    arm_calls: list[ArmCall] = field(default_factory=list)
    disarm_calls: list[str] = field(default_factory=list)
    started: bool = False
    fail_with: Exception | None = None
    fail_ids: set[str] = field(default_factory=set)

    def arm(self, alarm_id, timing_class, base_time_ms, period_ms, callback, *, wake_device=False):
        if self.fail_with is not None:
            raise self.fail_with
        if alarm_id in self.fail_ids:
            msg = f"cannot arm {alarm_id}"
            raise BackendUnavailableError(msg)
        call = ArmCall(alarm_id, timing_class, base_time_ms, period_ms, callback, wake_device)
        self.arm_calls.append(call)
        self.armed[alarm_id] = call

    def disarm(self, alarm_id):
        self.disarm_calls.append(alarm_id)
        return self.armed.pop(alarm_id, None) is not None

    def start(self):
        self.started = True

    def shutdown(self):
        self.started = False
        self.armed.clear()

    def fire(self, alarm_id: str) -> None:
        """Simulate the timer going off."""
        self.armed[alarm_id].callback()


class FakeClock:
    def __init__(self, now: float = T0) -> None:
        self.value = now

    def now(self) -> float:
        return self.value


class RecordingRunner:
    """ScriptRunner that records names instead of launching processes."""

    def __init__(self) -> None:
        self.runs: list[str] = []
        self._lock = threading.Lock()

    def run(self, script_name: str) -> None:
        with self._lock:
            self.runs.append(script_name)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def store() -> TriggerStore:
    return TriggerStore()


@pytest.fixture
def on_error() -> MagicMock:
    return MagicMock()


@pytest.fixture
def scheduler(
    backend: FakeBackend,
    runner: RecordingRunner,
    clock: FakeClock,
    store: TriggerStore,
    on_error: MagicMock,
) -> Scheduler:
    return Scheduler(backend=backend, runner=runner, clock=clock, store=store, on_error=on_error)
