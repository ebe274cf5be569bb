"""
Airfoil agent protocol implementation.

This package contains the protocol engine:
- framing: length-prefixed message reassembly
- encoder: response framing
- dispatcher: command handling against a capability provider
- session / engine: per-connection state behind a transport boundary
"""

from airfoil_agent.protocol.dispatcher import ProtocolDispatcher
from airfoil_agent.protocol.encoder import encode_response
from airfoil_agent.protocol.engine import ProtocolEngine
from airfoil_agent.protocol.framing import MessageFramer
from airfoil_agent.protocol.session import ConnectionSession

__all__ = [
    "ConnectionSession",
    "MessageFramer",
    "ProtocolDispatcher",
    "ProtocolEngine",
    "encode_response",
]
