"""
Airfoil Metadata Agent - Main Server Module

This module contains the AgentServer class that wires configuration,
the capability provider and the socket transport together and manages
the application lifecycle.
"""

import asyncio
import logging
import signal

from airfoil_agent.config import AgentConfig, TransportKind, get_agent_config
from airfoil_agent.core.now_playing import build_provider
from airfoil_agent.core.provider import CapabilityProvider
from airfoil_agent.transport.server import AgentTransportServer

logger = logging.getLogger(__name__)


class AgentServer:
    """
    Main agent server.

    The server manages:
    - The capability provider answering Airfoil's requests
    - The socket transport Airfoil connects to
    - Shutdown on SIGINT/SIGTERM

    Host applications embedding the agent pass their own provider; the
    standalone agent builds one from the configuration.
    """

    def __init__(
        self,
        config: AgentConfig | None = None,
        provider: CapabilityProvider | None = None,
    ) -> None:
        """
        Initialize the agent server.

        Args:
            config: Agent configuration (bundled defaults if not provided).
            provider: Capability provider (built from config if not provided).
        """
        self.config = config if config is not None else get_agent_config()
        self.provider = provider if provider is not None else build_provider(self.config)

        self.transport = AgentTransportServer(
            self.provider,
            self.config.transport,
            max_message_bytes=self.config.protocol.max_message_bytes,
        )

        self._running = False
        self._shutdown_event: asyncio.Event | None = None

    async def start(self) -> None:
        """Start the agent."""
        self._running = True
        self._shutdown_event = asyncio.Event()

        await self.transport.start()

        logger.info(
            "Airfoil agent started (remote control: %s, track data: %s)",
            "yes" if self.provider.supports_remote_control else "no",
            "yes" if self.provider.supports_metadata else "no",
        )
        if self.config.transport.kind is TransportKind.UNIX:
            logger.info("Socket: %s", self.transport.socket_path)

    async def stop(self) -> None:
        """Stop the agent. Open connections are dropped immediately."""
        if not self._running:
            return

        logger.info("Stopping Airfoil agent...")
        self._running = False

        await self.transport.stop()

        if self._shutdown_event:
            self._shutdown_event.set()

        logger.info("Airfoil agent stopped")

    async def run(self) -> None:
        """
        Run the agent until shutdown is requested.

        This method starts the agent and waits for a shutdown signal
        (SIGINT or SIGTERM).
        """
        await self.start()

        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            logger.info("Received shutdown signal")
            if self._shutdown_event:
                self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, handle_signal)
            except NotImplementedError:
                # Signal handlers not supported on Windows
                pass

        if self._shutdown_event:
            await self._shutdown_event.wait()

        await self.stop()

    @property
    def is_running(self) -> bool:
        """Check if the agent is currently running."""
        return self._running

    @property
    def connected_sessions(self) -> int:
        """Get the number of live protocol sessions."""
        return len(self.transport.engine)
