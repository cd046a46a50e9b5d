"""Clock protocol — the scheduler's source of "now"."""

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Anything that can report the current absolute time."""

    def now(self) -> float:
        """Return the current time in epoch seconds."""
        ...


class SystemClock:
    """Wall-clock time from the host."""

    def now(self) -> float:
        return time.time()
