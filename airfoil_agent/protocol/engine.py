"""
Protocol engine - the boundary between a transport and the agent protocol.

The transport reports connection events keyed by an opaque handle; the
engine keeps one ConnectionSession per live handle and writes responses
back through the transport.
"""

import logging
from collections.abc import Hashable, Iterator
from typing import Protocol

from airfoil_agent.core.artwork import ImageNormalizer
from airfoil_agent.core.provider import CapabilityProvider
from airfoil_agent.exceptions import UnknownSessionError
from airfoil_agent.protocol.dispatcher import ProtocolDispatcher
from airfoil_agent.protocol.framing import DEFAULT_MAX_MESSAGE_BYTES
from airfoil_agent.protocol.session import ConnectionSession

logger = logging.getLogger(__name__)


class SessionTransport(Protocol):
    """What the engine needs from a transport."""

    def write(self, handle: Hashable, data: bytes) -> None:
        """Submit bytes for writing on a connection without waiting."""
        ...


class ProtocolEngine:
    """
    Routes transport callbacks to per-connection sessions.

    State is independent per connection; the only shared object is the
    dispatcher, which never mutates the provider.

    Example:
        engine = ProtocolEngine(provider, transport)
        engine.on_connect(1)
        engine.on_data(1, b"21;supportsRemoteControl")
        engine.on_disconnect(1)
    """

    def __init__(
        self,
        provider: CapabilityProvider,
        transport: SessionTransport,
        *,
        normalizer: ImageNormalizer | None = None,
        max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES,
    ) -> None:
        self.dispatcher = ProtocolDispatcher(provider, normalizer=normalizer)
        self.transport = transport
        self.max_message_bytes = max_message_bytes

        self._sessions: dict[Hashable, ConnectionSession] = {}

    @property
    def provider(self) -> CapabilityProvider:
        return self.dispatcher.provider

    def on_connect(self, handle: Hashable) -> ConnectionSession:
        """
        Create the session for a new connection.

        A handle that is still registered gets a fresh session; the old one
        is discarded.
        """
        old_session = self._sessions.pop(handle, None)
        if old_session is not None:
            logger.info("Session %s reconnected (replacing old session)", handle)
            old_session.on_disconnect()

        session = ConnectionSession(
            handle,
            self.dispatcher,
            write=lambda data: self.transport.write(handle, data),
            max_message_bytes=self.max_message_bytes,
        )
        self._sessions[handle] = session
        logger.debug("Session opened: %s", handle)
        return session

    def on_data(self, handle: Hashable, data: bytes) -> int:
        """
        Feed bytes received on a connection.

        Returns:
            Number of messages answered.

        Raises:
            UnknownSessionError: No session exists for `handle`.
            ProtocolError: The stream is malformed. The session is discarded
                before the error propagates; the transport should close the
                connection.
        """
        session = self._sessions.get(handle)
        if session is None:
            raise UnknownSessionError(f"No session for connection {handle!r}")

        try:
            return session.on_data(data)
        except Exception:
            self.on_disconnect(handle)
            raise

    def on_disconnect(self, handle: Hashable) -> None:
        """Discard the session for a closed connection. Unknown handles are ignored."""
        session = self._sessions.pop(handle, None)
        if session is None:
            return

        session.on_disconnect()
        logger.debug("Session closed: %s (%d messages)", handle, session.messages_handled)

    def reset(self) -> None:
        """Drop every session without flushing anything."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            session.on_disconnect()

        if sessions:
            logger.info("Discarded %d session(s)", len(sessions))

    def get(self, handle: Hashable) -> ConnectionSession | None:
        return self._sessions.get(handle)

    def __len__(self) -> int:
        """Return the number of live sessions."""
        return len(self._sessions)

    def __contains__(self, handle: object) -> bool:
        return handle in self._sessions

    def __iter__(self) -> Iterator[Hashable]:
        """Iterate over live connection handles."""
        return iter(self._sessions)

    def __bool__(self) -> bool:
        """An engine is always truthy, even with no sessions."""
        return True
