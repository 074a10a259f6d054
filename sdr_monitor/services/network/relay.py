"""
Relay Maintenance

Keeps the outbound relay pipe to the remote collector alive. The relay
command runs under a SupervisedProcess; the only feedback on whether it
worked is the next tick's connection probe.
"""

from sdr_monitor.common.exceptions import RelayError
from sdr_monitor.common.logging_setup import get_service_logger
from sdr_monitor.common.process import SupervisedProcess

from .connectivity import ConnectivityProbe

logger = get_service_logger("network.relay")


class RelayMaintainer:
    """
    Relaunches the relay whenever the collector connection is missing.

    A relay that is running but not yet established gets GRACE_TICKS
    network-loop ticks before it is stopped and relaunched.
    """

    GRACE_TICKS = 3

    def __init__(
        self,
        probe: ConnectivityProbe,
        collector_port: int,
        process: SupervisedProcess | None = None,
    ):
        self.probe = probe
        self.collector_port = collector_port
        self.process = process or SupervisedProcess("relay")
        self._pending_ticks = 0

    def ensure_relay(self, reconnect_command: str) -> None:
        if not reconnect_command:
            return

        if self.probe.is_relay_established(self.collector_port):
            self._pending_ticks = 0
            return

        if self.process.is_running():
            self._pending_ticks += 1
            if self._pending_ticks <= self.GRACE_TICKS:
                logger.debug(
                    f"Relay running but not established ({self._pending_ticks}/{self.GRACE_TICKS})"
                )
                return
            logger.warning("Relay not established within grace period, relaunching")
            self.process.stop(graceful=False)

        exit_code = self.process.exit_code
        if exit_code is not None:
            logger.warning(f"Relay exited with code {exit_code}")

        logger.info("Relay connection not established, launching relay")
        self._pending_ticks = 0
        if not self.process.start(reconnect_command):
            raise RelayError(
                f"relay failed to launch: {self.process.last_error}",
                command=reconnect_command,
            )

    def stop(self) -> None:
        self.process.stop()
