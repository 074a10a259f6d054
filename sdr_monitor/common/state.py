"""
Shared Health State

The only state shared between the device loop and the network loop.
Each loop owns one field: the device loop writes sdr_connected, the
network loop writes wifi_enabled. Readers get a consistent copy.
"""

import threading
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class HealthFlags:
    """Point-in-time copy of the shared health flags"""
    sdr_connected: bool
    wifi_enabled: bool
    updated_at: float


class HealthSnapshot:
    """Thread-safe single-writer-per-field health record"""

    def __init__(self, sdr_connected: bool = True, wifi_enabled: bool = False):
        self._lock = threading.Lock()
        self._sdr_connected = sdr_connected
        self._wifi_enabled = wifi_enabled
        self._updated_at = time.time()

    def set_sdr_connected(self, value: bool) -> None:
        with self._lock:
            self._sdr_connected = bool(value)
            self._updated_at = time.time()

    def set_wifi_enabled(self, value: bool) -> None:
        with self._lock:
            self._wifi_enabled = bool(value)
            self._updated_at = time.time()

    @property
    def sdr_connected(self) -> bool:
        with self._lock:
            return self._sdr_connected

    @property
    def wifi_enabled(self) -> bool:
        with self._lock:
            return self._wifi_enabled

    def read(self) -> HealthFlags:
        """Return both flags captured under one lock"""
        with self._lock:
            return HealthFlags(
                sdr_connected=self._sdr_connected,
                wifi_enabled=self._wifi_enabled,
                updated_at=self._updated_at,
            )

    def to_dict(self) -> dict:
        flags = self.read()
        return {
            "sdr_connected": flags.sdr_connected,
            "wifi_enabled": flags.wifi_enabled,
            "updated_at": flags.updated_at,
        }
