"""
Receiver Pipeline Collaborators

The receiver pipeline (device open/close, async read thread) lives
outside the monitor. The monitor drives it through ReceiverPipeline.
ProcessReceiverPipeline covers deployments where the receiver is a
separate program started from a command line.
"""

from typing import Protocol

from sdr_monitor.common.exceptions import DeviceError
from sdr_monitor.common.logging_setup import get_service_logger
from sdr_monitor.common.process import SupervisedProcess

logger = get_service_logger("device.pipeline")


class DeviceHandle(Protocol):
    """Opaque handle to an opened radio"""

    def cancel_async(self) -> None: ...

    def close(self) -> None: ...

    def open(self, index: int) -> None: ...


class ReceiverPipeline(Protocol):
    """Lifecycle commands the monitor issues on connection edges"""

    device: DeviceHandle | None

    def restart_reader(self) -> None: ...

    def notify_reader_exit(self) -> None: ...


class NullReceiverPipeline:
    """Pipeline used when no reader is configured; only logs requests"""

    def __init__(self):
        self.device: DeviceHandle | None = None
        self.restart_count = 0
        self.exit_count = 0

    def restart_reader(self) -> None:
        self.restart_count += 1
        logger.info("Reader restart requested (no reader configured)")

    def notify_reader_exit(self) -> None:
        self.exit_count += 1
        logger.info("Reader exit requested (no reader configured)")


class ProcessReceiverPipeline:
    """
    Receiver running as an external program.

    The command may contain "{index}", replaced with the device index.
    The external program owns the USB handle, so `device` stays None and
    the controller never has to cancel or close anything itself.
    """

    def __init__(self, command: str, device_index: int = 0):
        self.command = command.replace("{index}", str(device_index))
        self.device_index = device_index
        self.device: DeviceHandle | None = None
        self.process = SupervisedProcess("reader")

    def start(self) -> bool:
        """Launch the reader if it is not already running"""
        if self.process.is_running():
            return True
        return self.process.start(self.command)

    def restart_reader(self) -> None:
        if self.process.is_running():
            self.process.stop()
        if not self.process.start(self.command):
            raise DeviceError(
                f"reader failed to start: {self.process.last_error}"
            )

    def notify_reader_exit(self) -> None:
        self.process.stop()

    def stop(self) -> None:
        self.process.stop()

    def to_dict(self) -> dict:
        return {"device_index": self.device_index, **self.process.to_dict()}
