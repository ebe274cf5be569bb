"""
Core agent package.

Capability provider interface, reference providers and album art
normalization. Nothing here knows about sockets or framing.

Consumers should import from the specific module they need
(e.g. `airfoil_agent.core.provider`).
"""
