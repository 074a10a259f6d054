"""
System State Monitor

Owns the two polling loops of the appliance:

- Device loop (every 0.5 s): USB presence -> reconnection state
  machine -> UDP heartbeat
- Network loop (every 5 s): wireless association -> relay
  maintenance -> public address registration

The loops share nothing but the HealthSnapshot. Both stop
cooperatively: the running flag is checked every iteration and the
tasks are cancelled and awaited on stop().
"""

import asyncio
import signal
import time
from datetime import datetime, timezone

from aiohttp import web

from sdr_monitor.common.config import MonitorConfig
from sdr_monitor.common.exceptions import RelayError
from sdr_monitor.common.logging_setup import get_service_logger
from sdr_monitor.common.state import HealthSnapshot
from sdr_monitor.services.device.heartbeat import HeartbeatEmitter
from sdr_monitor.services.device.pipeline import (
    NullReceiverPipeline,
    ProcessReceiverPipeline,
    ReceiverPipeline,
)
from sdr_monitor.services.device.presence import PresenceDetector
from sdr_monitor.services.device.reconnection import ReconnectionController
from sdr_monitor.services.network.connectivity import ConnectivityProbe
from sdr_monitor.services.network.registrar import PublicAddressRegistrar
from sdr_monitor.services.network.relay import RelayMaintainer

logger = get_service_logger("system")


class SystemStateMonitor:
    """Orchestrates device and network health loops"""

    DEVICE_LOOP_INTERVAL_SECONDS = 0.5
    NETWORK_LOOP_INTERVAL_SECONDS = 5.0

    def __init__(
        self,
        config: MonitorConfig,
        pipeline: ReceiverPipeline | None = None,
        detector: PresenceDetector | None = None,
        probe: ConnectivityProbe | None = None,
        emitter: HeartbeatEmitter | None = None,
        registrar: PublicAddressRegistrar | None = None,
        relay: RelayMaintainer | None = None,
        snapshot: HealthSnapshot | None = None,
        device_interval: float | None = None,
        network_interval: float | None = None,
    ):
        self.config = config
        self.target = config.target_descriptor()
        self.snapshot = snapshot or HealthSnapshot()

        if pipeline is None:
            if config.reader_command:
                pipeline = ProcessReceiverPipeline(config.reader_command, config.device_index)
            else:
                pipeline = NullReceiverPipeline()
        self.pipeline = pipeline

        self.detector = detector or PresenceDetector()
        self.probe = probe or ConnectivityProbe(config.wifi_interface)
        self.emitter = emitter or HeartbeatEmitter(lambda: self.config.client_ip)
        self.registrar = registrar or PublicAddressRegistrar(config.registry_url)
        self.relay = relay or RelayMaintainer(self.probe, config.relay_port)
        self.controller = ReconnectionController(self.pipeline, self.snapshot)

        self.device_interval = device_interval or self.DEVICE_LOOP_INTERVAL_SECONDS
        self.network_interval = network_interval or self.NETWORK_LOOP_INTERVAL_SECONDS

        self._running = False
        self._device_task: asyncio.Task | None = None
        self._network_task: asyncio.Task | None = None
        self._shutdown_event = asyncio.Event()
        self._started_at: float | None = None

        self._health_app: web.Application | None = None
        self._health_runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start both loops and the health endpoint"""
        if self._running:
            return

        logger.info(
            "Starting system state monitor",
            extra={
                "target": self.target.describe() if self.target else "default",
                "usb_available": self.detector.available,
            },
        )
        self._running = True
        self._started_at = time.monotonic()

        if isinstance(self.pipeline, ProcessReceiverPipeline):
            self.pipeline.start()

        if self.config.health_port:
            await self._start_health_server()

        self._device_task = asyncio.create_task(self._device_loop(), name="device-loop")
        self._network_task = asyncio.create_task(self._network_loop(), name="network-loop")

    async def stop(self) -> None:
        """Stop both loops and release process-lifetime resources"""
        logger.info("Stopping system state monitor")
        self._running = False

        for task in (self._device_task, self._network_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._device_task = None
        self._network_task = None

        await self._stop_health_server()

        await self._run_blocking(self.relay.stop)
        if isinstance(self.pipeline, ProcessReceiverPipeline):
            await self._run_blocking(self.pipeline.stop)
        self.emitter.close()

        logger.info("System state monitor stopped")

    async def run(self) -> None:
        """Start, wait for SIGINT/SIGTERM, then stop"""
        await self.start()
        self._setup_signal_handlers()
        try:
            await self._shutdown_event.wait()
        finally:
            await self.stop()

    def request_shutdown(self) -> None:
        logger.info("Received shutdown signal")
        self._shutdown_event.set()

    def _setup_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except NotImplementedError:
                # Windows doesn't support add_signal_handler
                signal.signal(sig, lambda s, f: self.request_shutdown())

    async def _run_blocking(self, func, *args):
        """Run a blocking probe in a thread to keep the loop cadence"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def _device_loop(self) -> None:
        while self._running:
            try:
                await self.device_tick()
            except Exception as e:
                logger.error(f"Device loop error: {e}")

            await asyncio.sleep(self.device_interval)

    async def _network_loop(self) -> None:
        while self._running:
            try:
                await self.network_tick()
            except Exception as e:
                logger.error(f"Network loop error: {e}")

            await asyncio.sleep(self.network_interval)

    async def device_tick(self) -> None:
        """One device-loop iteration"""
        present = await self._run_blocking(self.detector.is_present, self.target)
        logger.debug(f"SDR present: {present}")

        await self.controller.process(present)
        self.emitter.send(self.snapshot)

    async def network_tick(self) -> None:
        """One network-loop iteration"""
        associated = await self._run_blocking(self.probe.is_network_associated)
        self.snapshot.set_wifi_enabled(associated)

        try:
            await self._run_blocking(self.relay.ensure_relay, self.config.relay_command)
        except RelayError as e:
            logger.error(str(e), extra={"command": e.command})

        await self.registrar.maybe_register(self.config.session_key)

    async def _start_health_server(self) -> None:
        self._health_app = web.Application()
        self._health_app.router.add_get("/health", self._health_handler)

        self._health_runner = web.AppRunner(self._health_app)
        await self._health_runner.setup()

        site = web.TCPSite(self._health_runner, "127.0.0.1", self.config.health_port)
        try:
            await site.start()
        except OSError as e:
            logger.error(f"Health server failed to bind port {self.config.health_port}: {e}")
            await self._health_runner.cleanup()
            self._health_runner = None
            return

        logger.info(f"Health server started on port {self.config.health_port}")

    async def _stop_health_server(self) -> None:
        if self._health_runner:
            await self._health_runner.cleanup()
            self._health_runner = None

    def get_status(self) -> dict:
        uptime = time.monotonic() - self._started_at if self._started_at else 0
        return {
            "status": "healthy" if self._running else "unhealthy",
            "service": "sdr-monitor",
            "uptime": int(uptime),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "health": self.snapshot.to_dict(),
            "reader": self.controller.to_dict(),
            "usb_available": self.detector.available,
            "relay": self.relay.process.to_dict(),
            "heartbeat": {
                "sent": self.emitter.sent_count,
                "failed": self.emitter.failed_count,
            },
            "components": {
                "device_loop": "running" if self._device_task and not self._device_task.done() else "stopped",
                "network_loop": "running" if self._network_task and not self._network_task.done() else "stopped",
            },
        }

    async def _health_handler(self, request: web.Request) -> web.Response:
        return web.json_response(self.get_status())
