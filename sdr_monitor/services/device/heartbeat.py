"""
Heartbeat Module

Sends a fixed-size UDP status datagram to the supervising client on
every device-loop tick. Best effort: no acknowledgment, no retry. A
lost datagram is corrected by the next tick.

Wire format (64 bytes, versionless):
    byte 0      sdr_connected (0/1)
    byte 1      wifi_enabled  (0/1)
    bytes 2-63  reserved, zero
"""

import ipaddress
import socket
import struct
from dataclasses import dataclass
from typing import Callable

from sdr_monitor.common.exceptions import HeartbeatFormatError
from sdr_monitor.common.logging_setup import get_service_logger
from sdr_monitor.common.state import HealthFlags, HealthSnapshot

logger = get_service_logger("device.heartbeat")

HEARTBEAT_PORT = 55555
HEARTBEAT_SIZE = 64

_FORMAT = struct.Struct("<BB62x")


@dataclass(frozen=True)
class HeartbeatMessage:
    """Decoded heartbeat datagram"""
    sdr_connected: bool
    wifi_enabled: bool

    def encode(self) -> bytes:
        return _FORMAT.pack(int(self.sdr_connected), int(self.wifi_enabled))

    @classmethod
    def decode(cls, data: bytes) -> "HeartbeatMessage":
        """Parse a datagram; reserved bytes are ignored"""
        if len(data) != HEARTBEAT_SIZE:
            raise HeartbeatFormatError(
                f"expected {HEARTBEAT_SIZE} bytes, got {len(data)}", size=len(data)
            )
        sdr, wifi = struct.unpack_from("<BB", data)
        return cls(sdr_connected=sdr != 0, wifi_enabled=wifi != 0)

    @classmethod
    def from_flags(cls, flags: HealthFlags) -> "HeartbeatMessage":
        return cls(sdr_connected=flags.sdr_connected, wifi_enabled=flags.wifi_enabled)


@dataclass(frozen=True)
class ClientEndpoint:
    """Where heartbeats go"""
    ip: str
    port: int = HEARTBEAT_PORT


def resolve_endpoint(client_ip: str | None) -> ClientEndpoint | None:
    """Validate a configured client address; None if empty or malformed"""
    if not client_ip or not client_ip.strip():
        return None
    try:
        address = ipaddress.IPv4Address(client_ip.strip())
    except ValueError:
        return None
    return ClientEndpoint(ip=str(address))


class HeartbeatEmitter:
    """Fire-and-forget UDP heartbeat sender"""

    def __init__(self, client_ip_provider: Callable[[], str | None]):
        self._client_ip_provider = client_ip_provider
        self._endpoint: ClientEndpoint | None = None
        self._sock: socket.socket | None = self._open_socket()
        self._unresolved_logged: str | None = None

        self.sent_count = 0
        self.failed_count = 0

    @staticmethod
    def _open_socket() -> socket.socket | None:
        try:
            return socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as e:
            logger.error(f"Failed to create UDP socket: {e}")
            return None

    @property
    def endpoint(self) -> ClientEndpoint | None:
        return self._endpoint

    def reset_endpoint(self) -> None:
        """Re-read the client address on the next send"""
        self._endpoint = None

    def send(self, snapshot: HealthSnapshot) -> bool:
        """Send the current flags; False if skipped or failed"""
        if self._sock is None:
            return False

        if self._endpoint is None:
            client_ip = self._client_ip_provider()
            self._endpoint = resolve_endpoint(client_ip)
            if self._endpoint is None:
                self._log_unresolved(client_ip)
                return False
            self._unresolved_logged = None
            logger.info(f"Heartbeat target {self._endpoint.ip}:{self._endpoint.port}")

        payload = HeartbeatMessage.from_flags(snapshot.read()).encode()

        try:
            self._sock.sendto(payload, (self._endpoint.ip, self._endpoint.port))
        except OSError as e:
            self.failed_count += 1
            logger.warning(f"Failed to send heartbeat: {e}")
            return False

        self.sent_count += 1
        logger.debug("Heartbeat sent", extra={"bytes": len(payload)})
        return True

    def _log_unresolved(self, client_ip: str | None) -> None:
        """Report an unusable client address once per distinct value"""
        value = (client_ip or "").strip()
        if value == self._unresolved_logged:
            logger.debug("Heartbeat skipped, no usable client address")
            return
        self._unresolved_logged = value

        if not value:
            logger.warning("Client IP address not configured, heartbeat skipped")
        else:
            logger.error(f"Invalid client IP address: {client_ip}")

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
