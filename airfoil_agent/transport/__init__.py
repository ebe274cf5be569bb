"""
Transports for the Airfoil agent.

- server: asyncio Unix socket / TCP listener driving the protocol engine
"""

from airfoil_agent.transport.server import AgentTransportServer

__all__ = ["AgentTransportServer"]
