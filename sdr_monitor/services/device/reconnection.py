"""
Reconnection Controller

Edge-triggered state machine between USB presence and the receiver
pipeline. Steady-state ticks do nothing; only a change of presence
fires a recovery action.

Reconnect ordering: cancel async reads, settle, close, settle, restart.
The driver is not safe to close with a transfer outstanding, and
reopening straight after close can race the OS device-node teardown.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable

from sdr_monitor.common.logging_setup import get_service_logger, log_edge
from sdr_monitor.common.state import HealthSnapshot

from .pipeline import ReceiverPipeline

logger = get_service_logger("device.reconnection")


class ReaderState(str, Enum):
    """What the monitor believes about the radio"""
    UNKNOWN = "unknown"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ConnectionEdge(str, Enum):
    """Transition produced by one presence reading"""
    NO_CHANGE = "no_change"
    RECONNECTED = "reconnected"
    DISCONNECTED = "disconnected"


class ReconnectionController:
    """
    Turns presence readings into pipeline lifecycle commands.

    Starts optimistic (CONNECTED) so the first real check does not
    produce a spurious disconnect notification.
    """

    CANCEL_SETTLE_SECONDS = 0.2
    REOPEN_SETTLE_SECONDS = 0.3

    def __init__(
        self,
        pipeline: ReceiverPipeline,
        snapshot: HealthSnapshot,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.pipeline = pipeline
        self.snapshot = snapshot
        self._sleep = sleep

        self.state = ReaderState.CONNECTED
        self.reconnect_count = 0
        self.disconnect_count = 0
        self.last_error: str | None = None

        self.snapshot.set_sdr_connected(True)

    def evaluate(self, present: bool) -> ConnectionEdge:
        """Edge a reading would produce from the current state"""
        if present and self.state != ReaderState.CONNECTED:
            return ConnectionEdge.RECONNECTED
        if not present and self.state != ReaderState.DISCONNECTED:
            return ConnectionEdge.DISCONNECTED
        return ConnectionEdge.NO_CHANGE

    async def process(self, present: bool) -> ConnectionEdge:
        """Apply one presence reading; run recovery on an edge"""
        edge = self.evaluate(present)
        previous = self.state

        if edge == ConnectionEdge.RECONNECTED:
            await self._recover()
            self.state = ReaderState.CONNECTED
            self.reconnect_count += 1
        elif edge == ConnectionEdge.DISCONNECTED:
            await self._notify_exit()
            self.state = ReaderState.DISCONNECTED
            self.disconnect_count += 1

        if edge != ConnectionEdge.NO_CHANGE:
            log_edge(logger, edge.value, previous.value, self.state.value)

        self.snapshot.set_sdr_connected(self.state == ReaderState.CONNECTED)
        return edge

    def reset(self) -> None:
        """Forget the current belief; the next reading always fires an edge"""
        self.state = ReaderState.UNKNOWN

    async def _run_blocking(self, func):
        """Run a pipeline or device call in the default executor"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    async def _recover(self) -> None:
        await self._release_device()
        await self._sleep(self.REOPEN_SETTLE_SECONDS)

        try:
            await self._run_blocking(self.pipeline.restart_reader)
            self.last_error = None
        except Exception as e:
            # Belief stays CONNECTED; the next presence check corrects it
            self.last_error = str(e)
            logger.error(f"Reader restart failed: {e}")

    async def _release_device(self) -> None:
        device = self.pipeline.device
        if device is None:
            return

        try:
            await self._run_blocking(device.cancel_async)
        except Exception as e:
            logger.warning(f"Cancel of async reads failed: {e}")

        await self._sleep(self.CANCEL_SETTLE_SECONDS)

        try:
            await self._run_blocking(device.close)
        except Exception as e:
            logger.warning(f"Device close failed: {e}")

        self.pipeline.device = None

    async def _notify_exit(self) -> None:
        try:
            await self._run_blocking(self.pipeline.notify_reader_exit)
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"Reader exit notification failed: {e}")

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "reconnect_count": self.reconnect_count,
            "disconnect_count": self.disconnect_count,
            "last_error": self.last_error,
        }
