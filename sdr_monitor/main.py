#!/usr/bin/env python3
"""
SDR Monitor - Entry Point

Usage:
    sdr-monitor                      # Start with default config search
    sdr-monitor --config my.yaml     # Use custom config file
    sdr-monitor --dry-run            # Validate config and exit
    sdr-monitor --verbose            # Enable debug logging
"""

import argparse
import asyncio
import os
import sys

from sdr_monitor import __version__
from sdr_monitor.common.config import MonitorConfig, find_config_path, load_config_file
from sdr_monitor.common.exceptions import ConfigError
from sdr_monitor.common.logging_setup import get_service_logger, reconfigure_all


def print_startup_banner(config: MonitorConfig, config_path: str):
    """Print startup information."""
    target = config.target_descriptor()

    print()
    print("=" * 60)
    print(f"  SDR MONITOR v{__version__}")
    print("=" * 60)
    print()
    print(f"  Config:        {config_path}")
    print(f"  Target device: {target.describe() if target else 'default (0bda:2832)'}")
    print(f"  Device index:  {config.device_index}")
    print(f"  Heartbeat to:  {config.client_ip or 'not set'}:55555")
    print(f"  Reader:        {config.reader_command or 'external'}")
    print(f"  Relay:         {'port ' + str(config.relay_port) if config.relay_command else 'disabled'}")
    print(f"  Registry:      {'enabled' if config.session_key else 'disabled'}")
    if config.health_port:
        print(f"  Health:        http://127.0.0.1:{config.health_port}/health")
    print()
    print("=" * 60)
    print()


async def main_async(config: MonitorConfig) -> None:
    """Run the monitor until SIGINT/SIGTERM"""
    from sdr_monitor.services.system.service import SystemStateMonitor

    logger = get_service_logger("main")
    monitor = SystemStateMonitor(config)

    try:
        await monitor.run()
    except Exception as e:
        logger.critical(f"Monitor failed: {e}")
        raise


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="SDR appliance health monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    sdr-monitor                      # Start with default config
    sdr-monitor --config my.yaml     # Use custom config file
    sdr-monitor --dry-run            # Validate config and exit
    sdr-monitor -v                   # Enable debug logging
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to configuration file (default: first of /etc/sdr-monitor, /opt/sdr-monitor)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and exit without starting"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (debug) logging in plain text"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"SDR Monitor v{__version__}"
    )

    args = parser.parse_args()

    if args.verbose:
        # Loggers created from here on read the environment
        os.environ["SDR_MONITOR_LOG_LEVEL"] = "DEBUG"
        os.environ["SDR_MONITOR_LOG_FORMAT"] = "text"
        reconfigure_all("DEBUG", json_format=False)

    config_path = args.config or find_config_path()
    try:
        config = load_config_file(config_path)
    except ConfigError as e:
        print(e.message)
        sys.exit(1)

    print_startup_banner(config, config_path)

    if args.dry_run:
        print("Dry run mode - configuration valid")
        sys.exit(0)

    print("Press Ctrl+C to stop")
    print()

    try:
        asyncio.run(main_async(config))
    except KeyboardInterrupt:
        print("\nShutdown complete")


if __name__ == "__main__":
    main()
