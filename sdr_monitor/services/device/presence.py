"""
USB Presence Detection

Answers "is the radio plugged in?" by enumerating the USB bus through
pyusb. Results are debounced: a call within DEBOUNCE_SECONDS of the last
enumeration returns the cached answer without touching the bus.
"""

import time
from dataclasses import dataclass
from typing import Callable, Iterable

import usb.backend.libusb1
import usb.core
import usb.util

from sdr_monitor.common.exceptions import ConfigError
from sdr_monitor.common.logging_setup import get_service_logger

logger = get_service_logger("device.presence")

# Realtek RTL2832U, the stock RTL-SDR dongle
DEFAULT_VENDOR_ID = 0x0BDA
DEFAULT_PRODUCT_ID = 0x2832


@dataclass(frozen=True)
class ById:
    """Match a device by exact vendor/product id"""
    vendor_id: int
    product_id: int

    def __post_init__(self):
        for label, value in (("vendor_id", self.vendor_id), ("product_id", self.product_id)):
            if not 0 <= value <= 0xFFFF:
                raise ConfigError(f"{label} out of range: {value}")

    def describe(self) -> str:
        return f"{self.vendor_id:04x}:{self.product_id:04x}"


@dataclass(frozen=True)
class ByName:
    """Match a device whose product string contains a keyword (case-insensitive)"""
    keyword: str

    def __post_init__(self):
        if not self.keyword or not self.keyword.strip():
            raise ConfigError("device name keyword must not be empty")

    def describe(self) -> str:
        return f"name~{self.keyword!r}"


TargetDescriptor = ById | ByName

DEFAULT_TARGET = ById(DEFAULT_VENDOR_ID, DEFAULT_PRODUCT_ID)


@dataclass
class DeviceState:
    """Result of the most recent bus enumeration"""
    present: bool = False
    last_checked_at: float | None = None


class PresenceDetector:
    """
    Debounced USB presence check.

    The libusb backend is acquired once. If it cannot be loaded the
    detector runs degraded and reports the device absent on every call.
    """

    DEBOUNCE_SECONDS = 0.5

    def __init__(
        self,
        backend=None,
        clock: Callable[[], float] = time.monotonic,
        debounce_seconds: float | None = None,
    ):
        self._backend = backend if backend is not None else self._init_backend()
        self._clock = clock
        self.debounce_seconds = (
            self.DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        self.state = DeviceState()
        self.enumeration_count = 0

    @staticmethod
    def _init_backend():
        """Load the libusb1 backend, None on failure"""
        try:
            backend = usb.backend.libusb1.get_backend()
        except Exception as e:
            logger.error(f"Failed to initialize libusb: {e}")
            return None

        if backend is None:
            logger.error("Failed to initialize libusb: backend not available")
        return backend

    @property
    def available(self) -> bool:
        """False when running degraded without a USB backend"""
        return self._backend is not None

    def is_present(self, target: TargetDescriptor | None = None) -> bool:
        """Return whether the target radio is attached"""
        if self._backend is None:
            return False

        now = self._clock()
        last = self.state.last_checked_at
        if last is not None and now - last < self.debounce_seconds:
            return self.state.present

        present = self._scan(target or DEFAULT_TARGET)

        self.state.present = present
        self.state.last_checked_at = now
        self.enumeration_count += 1
        return present

    def _scan(self, target: TargetDescriptor) -> bool:
        try:
            devices = list(self._enumerate())
        except usb.core.USBError as e:
            logger.warning(f"USB enumeration failed: {e}")
            return False

        if isinstance(target, ById):
            return any(self._matches_id(dev, target) for dev in devices)
        return self._find_by_name(devices, target.keyword.lower())

    def _enumerate(self) -> Iterable:
        return usb.core.find(find_all=True, backend=self._backend) or []

    @staticmethod
    def _matches_id(dev, target: ById) -> bool:
        try:
            return dev.idVendor == target.vendor_id and dev.idProduct == target.product_id
        except (AttributeError, usb.core.USBError):
            return False

    def _find_by_name(self, devices: list, keyword: str) -> bool:
        for dev in devices:
            product = self._read_product_name(dev)
            if product is None:
                continue
            logger.debug(f"USB product: {product}")
            if keyword in product.lower():
                return True
        return False

    @staticmethod
    def _read_product_name(dev) -> str | None:
        """Read the product string descriptor; None if unreadable"""
        try:
            index = dev.iProduct
        except (AttributeError, usb.core.USBError):
            return None
        if not index:
            return None

        try:
            return usb.util.get_string(dev, index)
        except (usb.core.USBError, ValueError, NotImplementedError) as e:
            logger.debug(f"Skipping device {getattr(dev, 'address', '?')}: {e}")
            return None
        finally:
            try:
                usb.util.dispose_resources(dev)
            except usb.core.USBError:
                pass
