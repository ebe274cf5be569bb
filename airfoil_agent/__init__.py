"""
Airfoil Metadata Agent - exposes "now playing" metadata and remote control
to Rogue Amoeba's Airfoil.

Airfoil connects to the agent over a byte stream and asks for track
title, artist, album and album art, and sends play/pause and track
skip commands. A host application supplies the answers by implementing
`CapabilityProvider`.
"""

__version__ = "0.1.0"
__license__ = "GPL-2.0"

from airfoil_agent.core.provider import (
    CapabilityProvider,
    MetadataKind,
    RemoteControlKind,
)
from airfoil_agent.server import AgentServer

__all__ = [
    "AgentServer",
    "CapabilityProvider",
    "MetadataKind",
    "RemoteControlKind",
    "__version__",
]
