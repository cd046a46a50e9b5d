"""Script alarms — named repeating alarms that run scripts when they fire."""

from script_alarms.backend import AlarmBackend, APSchedulerBackend
from script_alarms.clock import Clock, SystemClock
from script_alarms.errors import BackendUnavailableError, InvalidScheduleError, ScheduleError
from script_alarms.models import Schedule, TimingClass, make_alarm_id, seconds_to_ms
from script_alarms.repository import TriggerRepository
from script_alarms.runner import ScriptRunner, SubprocessScriptRunner
from script_alarms.scheduler import Scheduler
from script_alarms.store import TriggerStore

__all__ = [
    "APSchedulerBackend",
    "AlarmBackend",
    "BackendUnavailableError",
    "Clock",
    "InvalidScheduleError",
    "Schedule",
    "ScheduleError",
    "Scheduler",
    "ScriptRunner",
    "SubprocessScriptRunner",
    "SystemClock",
    "TimingClass",
    "TriggerRepository",
    "TriggerStore",
    "make_alarm_id",
    "seconds_to_ms",
]
