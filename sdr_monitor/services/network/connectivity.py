"""
Connectivity Probe

Point-in-time checks of local network state. Nothing is cached;
callers re-probe every network-loop tick.
"""

import subprocess

import psutil

from sdr_monitor.common.logging_setup import get_service_logger

logger = get_service_logger("network.connectivity")


class ConnectivityProbe:
    """Wireless association and relay connection checks"""

    COMMAND_TIMEOUT_SECONDS = 5

    def __init__(self, wifi_interface: str | None = None):
        self.wifi_interface = wifi_interface or None
        self._tool_missing_logged = False

    def is_network_associated(self) -> bool:
        """True if the wireless interface is associated with a network"""
        cmd = ["iwgetid", "-r"]
        if self.wifi_interface:
            cmd.insert(1, self.wifi_interface)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.COMMAND_TIMEOUT_SECONDS,
            )
        except FileNotFoundError:
            if not self._tool_missing_logged:
                logger.warning("iwgetid not available, reporting wifi as disabled")
                self._tool_missing_logged = True
            return False
        except subprocess.TimeoutExpired:
            logger.warning("iwgetid timed out")
            return False

        ssid = result.stdout.strip()
        associated = result.returncode == 0 and bool(ssid)
        logger.debug(f"Wireless association: {associated}", extra={"ssid": ssid})
        return associated

    def is_relay_established(self, port: int) -> bool:
        """True if an established outbound connection to `port` exists"""
        try:
            connections = psutil.net_connections(kind="inet")
        except psutil.AccessDenied:
            logger.warning("Not permitted to read the connection table")
            return False

        for conn in connections:
            if conn.status != psutil.CONN_ESTABLISHED or not conn.raddr:
                continue
            if conn.raddr.port == port:
                return True
        return False
