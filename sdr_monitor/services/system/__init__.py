"""
System Service

Runs the device loop and the network loop and exposes a local
/health endpoint.
"""

from .service import SystemStateMonitor

__all__ = ["SystemStateMonitor"]
