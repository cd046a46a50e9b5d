"""ScriptRunner protocol and a subprocess-based implementation."""

from __future__ import annotations

import logging
import subprocess
import threading
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from script_alarms.config import settings

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


@runtime_checkable
class ScriptRunner(Protocol):
    """Runs a script by name. Fire-and-forget: must not wait for completion."""

    def run(self, script_name: str) -> None: ...


class SubprocessScriptRunner:
    """Launches scripts from a directory as child processes.

    Each run gets its own daemon thread that starts the process and waits for
    it, so ``run()`` returns immediately and a hanging script never delays
    later alarms. Already-started runs are not killed by cancelling a
    schedule.

    Args:
        script_dir: Directory scripts are resolved against (default from settings).
        interpreter: Command prefix, e.g. ``["python3"]``. Empty → execute the
            script file directly.
        timeout: Seconds before a run is killed. ``None`` or 0 → no limit.
    """

    def __init__(
        self,
        script_dir: Path | None = None,
        interpreter: list[str] | None = None,
        timeout: float | None = None,
    ) -> None:
        self._script_dir = (script_dir or settings.script_dir).resolve()
        self._interpreter = (
            settings.get_interpreter_argv() if interpreter is None else list(interpreter)
        )
        if timeout is None:
            timeout = settings.script_timeout_seconds
        self._timeout = timeout or None

    def resolve(self, script_name: str) -> Path:
        """Resolve *script_name* to a file inside the script directory.

        Raises ``ValueError`` on path traversal and ``FileNotFoundError`` if
        the script doesn't exist.
        """
        target = (self._script_dir / script_name).resolve()
        if not target.is_relative_to(self._script_dir):
            msg = f"Script path escapes the script directory: {script_name!r}"
            raise ValueError(msg)
        if not target.is_file():
            msg = f"Script not found: {script_name}"
            raise FileNotFoundError(msg)
        return target

    def build_command(self, script_name: str) -> list[str]:
        return [*self._interpreter, str(self.resolve(script_name))]

    def run(self, script_name: str) -> None:
        """Start *script_name* in the background and return immediately."""
        command = self.build_command(script_name)
        thread = threading.Thread(
            target=self._run_and_wait,
            args=(script_name, command),
            name=f"script-{script_name}",
            daemon=True,
        )
        thread.start()
        logger.info("Dispatched script: %s", script_name)

    def _run_and_wait(self, script_name: str, command: list[str]) -> None:
        try:
            result = subprocess.run(
                command,
                cwd=self._script_dir,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.warning("Script timed out after %ss: %s", self._timeout, script_name)
            return
        except OSError:
            logger.exception("Script failed to start: %s", script_name)
            return

        if result.returncode == 0:
            logger.info("Script finished: %s", script_name)
        else:
            logger.warning(
                "Script exited with code %d: %s (stderr: %s)",
                result.returncode,
                script_name,
                result.stderr.strip()[-500:],
            )
