"""
Supervised Child Processes

External programs (relay pipe, receiver) launched from a shell command
line, with an observable lifecycle: start, is_running, stop.
"""

import os
import signal
import subprocess
from datetime import datetime, timezone

from sdr_monitor.common.logging_setup import get_service_logger

logger = get_service_logger("process")


class SupervisedProcess:
    """A child process launched from a shell command line"""

    STOP_TIMEOUT_SECONDS = 5

    def __init__(self, name: str):
        self.name = name
        self.command: str | None = None
        self.process: subprocess.Popen | None = None
        self.start_count = 0
        self.last_start: datetime | None = None
        self.last_error: str | None = None

    def start(self, command: str) -> bool:
        """Launch the command; True if the process was spawned"""
        if self.is_running():
            logger.warning(f"Process {self.name} already running")
            return True

        try:
            # New session so stop() reaches every process of a shell pipeline
            self.process = subprocess.Popen(
                command,
                shell=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except (OSError, ValueError) as e:
            self.last_error = str(e)
            logger.error(f"Failed to start {self.name}: {e}")
            return False

        self.command = command
        self.start_count += 1
        self.last_start = datetime.now(timezone.utc)
        self.last_error = None
        logger.info(f"Started {self.name} (PID: {self.process.pid})")
        return True

    def stop(self, graceful: bool = True) -> bool:
        """Terminate the process group, escalating to kill after a timeout"""
        if not self.process:
            return True

        try:
            if self.process.poll() is None:
                self._signal(signal.SIGTERM if graceful else signal.SIGKILL)
                try:
                    self.process.wait(timeout=self.STOP_TIMEOUT_SECONDS)
                except subprocess.TimeoutExpired:
                    self._signal(signal.SIGKILL)
                    self.process.wait()

            logger.info(f"Stopped {self.name}")
            self.process = None
            return True

        except OSError as e:
            self.last_error = str(e)
            logger.error(f"Failed to stop {self.name}: {e}")
            return False

    def _signal(self, sig: int) -> None:
        try:
            os.killpg(self.process.pid, sig)
        except ProcessLookupError:
            pass

    def is_running(self) -> bool:
        if not self.process:
            return False
        return self.process.poll() is None

    @property
    def exit_code(self) -> int | None:
        if not self.process:
            return None
        return self.process.poll()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "is_running": self.is_running(),
            "pid": self.process.pid if self.process else None,
            "exit_code": self.exit_code,
            "start_count": self.start_count,
            "last_start": self.last_start.isoformat() if self.last_start else None,
            "last_error": self.last_error,
        }
