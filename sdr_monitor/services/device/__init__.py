"""
Device Loop Components

Responsibilities:
- Debounced USB presence detection
- Edge-triggered receiver pipeline recovery
- Fixed-size UDP heartbeat
"""

from .heartbeat import HeartbeatEmitter, HeartbeatMessage
from .presence import ById, ByName, PresenceDetector
from .reconnection import ConnectionEdge, ReaderState, ReconnectionController

__all__ = [
    "ById",
    "ByName",
    "ConnectionEdge",
    "HeartbeatEmitter",
    "HeartbeatMessage",
    "PresenceDetector",
    "ReaderState",
    "ReconnectionController",
]
