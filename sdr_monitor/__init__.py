"""
SDR Appliance Health Monitor

Watches the USB radio, restarts the receiver pipeline across
unplug/replug, reports health over a UDP heartbeat and keeps the
network bridge (relay + public address registration) alive.
"""

__version__ = "1.2.0"
