"""
Custom Exception Classes for the SDR Monitor

Hierarchical exception structure for error handling across services.
"""


class MonitorError(Exception):
    """Base exception for all monitor errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(MonitorError):
    """Configuration-related errors"""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(f"Config Error: {message}", recoverable)


class DeviceError(MonitorError):
    """USB device or receiver pipeline errors"""

    def __init__(
        self,
        message: str,
        vendor_id: int | None = None,
        product_id: int | None = None,
        recoverable: bool = True,
    ):
        self.vendor_id = vendor_id
        self.product_id = product_id
        super().__init__(f"Device Error: {message}", recoverable)


class HeartbeatFormatError(MonitorError):
    """Heartbeat datagram could not be decoded"""

    def __init__(self, message: str, size: int | None = None):
        self.size = size
        super().__init__(f"Heartbeat Error: {message}", recoverable=True)


class RelayError(MonitorError):
    """Relay process lifecycle errors"""

    def __init__(self, message: str, command: str | None = None):
        self.command = command
        super().__init__(f"Relay Error: {message}", recoverable=True)


class RegistrationError(MonitorError):
    """Public address registration errors"""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(f"Registration Error: {message}", recoverable=True)
