"""
Network Loop Components

Responsibilities:
- Wireless association and relay connection probes
- Relay process maintenance
- Public address registration
"""

from .connectivity import ConnectivityProbe
from .registrar import PublicAddressRegistrar, RegistrationState
from .relay import RelayMaintainer

__all__ = [
    "ConnectivityProbe",
    "PublicAddressRegistrar",
    "RegistrationState",
    "RelayMaintainer",
]
