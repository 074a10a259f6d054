"""
Configuration

Typed configuration for the monitor, loaded from a YAML file with a few
environment overrides for addresses and secrets.
"""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .exceptions import ConfigError
from .logging_setup import get_service_logger

logger = get_service_logger("config")

CONFIG_SEARCH_PATHS = [
    "/etc/sdr-monitor/config.yaml",
    "/opt/sdr-monitor/config.yaml",
    Path(__file__).parent.parent.parent / "config.yaml",
]

ENV_OVERRIDES = {
    "SDR_MONITOR_CLIENT_IP": "client_ip",
    "SDR_MONITOR_SESSION_KEY": "session_key",
    "SDR_MONITOR_RELAY_COMMAND": "relay_command",
}


@dataclass
class MonitorConfig:
    """Everything the monitor reads from configuration"""
    # Heartbeat
    client_ip: str = ""

    # Device identity: vendor/product pair or a product-name keyword
    device_index: int = 0
    vendor_id: int | None = None
    product_id: int | None = None
    device_name: str = ""

    # Receiver program, "{index}" is replaced with device_index
    reader_command: str = ""

    # Relay to the remote collector
    relay_command: str = ""
    relay_port: int = 30005

    # Public address registry
    session_key: str = ""
    registry_url: str = ""

    # Local health endpoint, 0 disables it
    health_port: int = 8091

    wifi_interface: str = ""

    def validate(self) -> None:
        """Raise ConfigError on inconsistent settings"""
        has_vid = self.vendor_id is not None
        has_pid = self.product_id is not None
        if has_vid != has_pid:
            raise ConfigError("device.vendor_id and device.product_id must be set together")
        if has_vid and self.device_name:
            raise ConfigError("set either device.vendor_id/product_id or device.name, not both")
        if self.device_index < 0:
            raise ConfigError(f"device.index must be >= 0, got {self.device_index}")
        for label, port in (("relay.port", self.relay_port), ("health.port", self.health_port)):
            if not 0 <= port <= 0xFFFF:
                raise ConfigError(f"{label} out of range: {port}")
        if self.session_key and not self.registry_url:
            raise ConfigError("registry.url is required when registry.session_key is set")

    def target_descriptor(self):
        """ById/ByName for the configured device, None for the built-in default"""
        # Deferred import: presence loads pyusb
        from sdr_monitor.services.device.presence import ById, ByName

        if self.vendor_id is not None and self.product_id is not None:
            return ById(self.vendor_id, self.product_id)
        if self.device_name:
            return ByName(self.device_name)
        return None


def _as_int(value, label: str) -> int | None:
    if value is None or value == "":
        return None
    try:
        # Accepts 3029, "3029" and "0x0bda"
        return int(value, 0) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{label} is not an integer: {value!r}")


def load_monitor_config(data: dict) -> MonitorConfig:
    """Build MonitorConfig from a parsed YAML dictionary"""
    heartbeat = data.get("heartbeat") or {}
    device = data.get("device") or {}
    reader = data.get("reader") or {}
    relay = data.get("relay") or {}
    registry = data.get("registry") or {}
    health = data.get("health") or {}
    wifi = data.get("wifi") or {}

    health_port = _as_int(health.get("port"), "health.port")

    config = MonitorConfig(
        client_ip=str(heartbeat.get("client_ip") or ""),
        device_index=_as_int(device.get("index"), "device.index") or 0,
        vendor_id=_as_int(device.get("vendor_id"), "device.vendor_id"),
        product_id=_as_int(device.get("product_id"), "device.product_id"),
        device_name=str(device.get("name") or ""),
        reader_command=str(reader.get("command") or ""),
        relay_command=str(relay.get("command") or ""),
        relay_port=_as_int(relay.get("port"), "relay.port") or 30005,
        session_key=str(registry.get("session_key") or ""),
        registry_url=str(registry.get("url") or ""),
        health_port=8091 if health_port is None else health_port,
        wifi_interface=str(wifi.get("interface") or ""),
    )

    for env_name, attr in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            setattr(config, attr, value)

    config.validate()
    return config


def find_config_path() -> str:
    """First existing config file, or the first search path"""
    for path in CONFIG_SEARCH_PATHS:
        path = Path(path)
        if path.exists():
            return str(path)

    return str(CONFIG_SEARCH_PATHS[0])


def load_config_file(config_path: str | None = None) -> MonitorConfig:
    """Load and validate configuration from a YAML file"""
    config_path = config_path or find_config_path()

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Config file not found: {config_path}, using defaults")
        data = {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing {config_path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")

    return load_monitor_config(data)
