"""
Monitor Services

- device  - USB presence, reconnection state machine, UDP heartbeat
- network - Connectivity probe, relay maintenance, address registration
- system  - Orchestrator owning the device and network loops
"""
