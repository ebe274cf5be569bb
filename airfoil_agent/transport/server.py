"""
Socket transport for the Airfoil agent.

Airfoil for Windows connects to a per-process named pipe. On POSIX the
equivalent is a Unix domain socket with the same name; a TCP listener is
available for setups that bridge the connection over the network.

Each connection is read by its own task, so deliveries for one
connection never overlap and arrive in order. Responses are written
without waiting for completion.
"""

import asyncio
import contextlib
import itertools
import logging
from collections.abc import Hashable
from pathlib import Path

from airfoil_agent.config import TransportConfig, TransportKind
from airfoil_agent.core.artwork import ImageNormalizer
from airfoil_agent.core.provider import CapabilityProvider
from airfoil_agent.exceptions import ProtocolError
from airfoil_agent.protocol.engine import ProtocolEngine
from airfoil_agent.protocol.framing import DEFAULT_MAX_MESSAGE_BYTES

logger = logging.getLogger(__name__)

# Bytes requested per read; Airfoil messages are small except album art
READ_CHUNK_SIZE = 4096

# Longest payload preview written to the debug log
_TX_PREVIEW_BYTES = 64


def _preview(data: bytes, limit: int = _TX_PREVIEW_BYTES) -> str:
    """Return a printable preview of the first N bytes."""
    text = repr(data[:limit])
    if len(data) > limit:
        return f"{text} … (+{len(data) - limit} bytes)"
    return text


class AgentTransportServer:
    """
    Listens for Airfoil connections and drives the protocol engine.

    The server implements the engine's transport interface: connection
    handles are integers, and `write()` queues bytes on the matching
    stream writer.

    Attributes:
        config: Listening socket configuration.
        engine: Protocol engine receiving connection callbacks.
    """

    def __init__(
        self,
        provider: CapabilityProvider,
        config: TransportConfig | None = None,
        *,
        max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES,
        normalizer: ImageNormalizer | None = None,
    ) -> None:
        self.config = config if config is not None else TransportConfig()
        self.engine = ProtocolEngine(
            provider,
            self,
            normalizer=normalizer,
            max_message_bytes=max_message_bytes,
        )

        self._server: asyncio.Server | None = None
        self._socket_path: Path | None = None
        self._running = False
        self._handle_ids = itertools.count(1)
        self._writers: dict[Hashable, asyncio.StreamWriter] = {}
        self._client_tasks: dict[int, asyncio.Task[None]] = {}

    async def start(self) -> None:
        """Start listening for connections."""
        if self._running:
            logger.warning("Agent transport already running")
            return

        if self.config.kind is TransportKind.UNIX:
            path = self.config.socket_path
            path.parent.mkdir(parents=True, exist_ok=True)
            # A socket file left behind by a crashed agent blocks bind()
            if path.is_socket():
                path.unlink()

            self._server = await asyncio.start_unix_server(
                self._handle_connection,
                path=str(path),
            )
            self._socket_path = path
            logger.info("Agent listening on %s", path)
        else:
            self._server = await asyncio.start_server(
                self._handle_connection,
                host=self.config.host,
                port=self.config.port,
                reuse_address=True,
            )
            logger.info("Agent listening on %s:%d", self.config.host, self.port)

        self._running = True

    async def stop(self) -> None:
        """
        Stop listening and drop every connection.

        Buffered partial messages are discarded; nothing is flushed.
        """
        if not self._running:
            return

        logger.info("Stopping agent transport...")
        self._running = False

        if self._server:
            self._server.close()

        # Cancel all connection tasks
        for task in self._client_tasks.values():
            task.cancel()

        if self._client_tasks:
            await asyncio.gather(*self._client_tasks.values(), return_exceptions=True)
            self._client_tasks.clear()

        self.engine.reset()

        if self._server:
            await self._server.wait_closed()
            self._server = None

        if self._socket_path is not None:
            with contextlib.suppress(FileNotFoundError):
                self._socket_path.unlink()
            self._socket_path = None

        logger.info("Agent transport stopped")

    @property
    def is_running(self) -> bool:
        """Check if the server is running."""
        return self._running

    @property
    def connection_count(self) -> int:
        """Number of open connections."""
        return len(self._writers)

    @property
    def socket_path(self) -> Path | None:
        """Path of the listening Unix socket, if any."""
        return self._socket_path

    @property
    def port(self) -> int:
        """Bound TCP port (useful when configured with port 0)."""
        if self._server and self._server.sockets and self.config.kind is TransportKind.TCP:
            return self._server.sockets[0].getsockname()[1]
        return self.config.port

    def write(self, handle: Hashable, data: bytes) -> None:
        """Queue bytes on a connection. Data for closed connections is dropped."""
        writer = self._writers.get(handle)
        if writer is None or writer.is_closing():
            logger.debug("Dropping %d bytes for closed connection %s", len(data), handle)
            return

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("TX to %s (%d bytes): %s", handle, len(data), _preview(data))
        writer.write(data)

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """
        Handle one connection until it closes.

        This is called by asyncio for each new client connection.
        """
        if len(self._writers) >= self.config.max_connections:
            logger.warning(
                "Refusing connection: %d of %d allowed connections in use",
                len(self._writers),
                self.config.max_connections,
            )
            await self._close_writer(writer)
            return

        handle = next(self._handle_ids)
        self._writers[handle] = writer
        if task := asyncio.current_task():
            self._client_tasks[handle] = task

        logger.info("Airfoil connected (connection %d)", handle)
        self.engine.on_connect(handle)

        try:
            await self._read_loop(handle, reader, writer)
        except asyncio.CancelledError:
            logger.debug("Connection handler cancelled for %d", handle)
        except (ConnectionResetError, BrokenPipeError):
            logger.info("Connection %d reset by peer", handle)
        except ProtocolError as e:
            logger.warning("Closing connection %d after protocol error: %s", handle, e)
        except Exception as e:
            logger.exception("Error handling connection %d: %s", handle, e)
        finally:
            self._writers.pop(handle, None)
            self._client_tasks.pop(handle, None)
            self.engine.on_disconnect(handle)
            await self._close_writer(writer)
            logger.info("Airfoil disconnected (connection %d)", handle)

    async def _read_loop(
        self,
        handle: int,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """Deliver chunks to the engine until EOF."""
        while self._running:
            data = await reader.read(READ_CHUNK_SIZE)
            if not data:
                logger.debug("Connection %d closed by peer", handle)
                break

            logger.debug("RX from %d (%d bytes)", handle, len(data))
            self.engine.on_data(handle, data)

            # Flow control only; responses were already queued
            await writer.drain()

    @staticmethod
    async def _close_writer(writer: asyncio.StreamWriter) -> None:
        writer.close()
        with contextlib.suppress(ConnectionError, OSError):
            await writer.wait_closed()
