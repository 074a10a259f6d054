"""
Common Utilities

Shared modules used across all services:
- config.py - Configuration loading and validation
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
- process.py - Supervised child processes
- state.py - Health snapshot shared by the loops
"""

from .state import HealthFlags, HealthSnapshot
from .config import MonitorConfig, load_config_file, load_monitor_config
from .exceptions import (
    MonitorError,
    ConfigError,
    DeviceError,
    HeartbeatFormatError,
    RelayError,
    RegistrationError,
)
from .logging_setup import setup_logging, get_service_logger
from .process import SupervisedProcess

__all__ = [
    # State
    "HealthFlags",
    "HealthSnapshot",
    # Config
    "MonitorConfig",
    "load_config_file",
    "load_monitor_config",
    # Exceptions
    "MonitorError",
    "ConfigError",
    "DeviceError",
    "HeartbeatFormatError",
    "RelayError",
    "RegistrationError",
    # Logging
    "setup_logging",
    "get_service_logger",
    # Processes
    "SupervisedProcess",
]
