"""
Per-connection protocol session.

A session owns the framer for one connection. Raw chunks go in, and one
encoded response per completed message comes out through the write
callback, in message order.
"""

import codecs
import logging
from collections.abc import Callable, Hashable

from airfoil_agent.exceptions import ProtocolError, SessionClosedError
from airfoil_agent.protocol.dispatcher import ProtocolDispatcher
from airfoil_agent.protocol.encoder import encode_response
from airfoil_agent.protocol.framing import DEFAULT_MAX_MESSAGE_BYTES, MessageFramer

logger = logging.getLogger(__name__)

# Write callback type: submits bytes to the transport without waiting
WriteCallback = Callable[[bytes], None]


class ConnectionSession:
    """
    Binds one connection to one MessageFramer.

    The caller must not deliver data for the same session concurrently;
    asyncio transports guarantee this by reading each connection from a
    single task.
    """

    def __init__(
        self,
        handle: Hashable,
        dispatcher: ProtocolDispatcher,
        write: WriteCallback,
        max_message_bytes: int = DEFAULT_MAX_MESSAGE_BYTES,
    ) -> None:
        self.handle = handle
        self.dispatcher = dispatcher
        self.framer = MessageFramer(max_message_bytes=max_message_bytes)
        self.messages_handled = 0

        self._write = write
        # Multi-byte characters may be split across chunks
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def on_data(self, data: bytes) -> int:
        """
        Process one chunk of bytes received on the connection.

        Returns:
            Number of messages completed and answered.

        Raises:
            SessionClosedError: The session was already disconnected.
            ProtocolError: The stream is malformed; the framer has been reset
                and the connection should be closed.
        """
        if self._closed:
            raise SessionClosedError(f"Session {self.handle} is closed")

        handled = 0
        for char in self._decoder.decode(data):
            try:
                message = self.framer.feed(char)
            except ProtocolError as e:
                logger.warning("Protocol error on session %s: %s", self.handle, e)
                raise

            if message is None:
                continue

            response = self.dispatcher.handle(message)
            self._write(encode_response(response))
            handled += 1

        self.messages_handled += handled
        return handled

    def on_disconnect(self) -> None:
        """Discard buffered state. Nothing is flushed."""
        if self._closed:
            return

        if not self.framer.is_idle:
            logger.debug("Session %s closed mid-message; partial message dropped", self.handle)
        self.framer.reset()
        self._decoder.reset()
        self._closed = True

    def __repr__(self) -> str:
        return (
            f"ConnectionSession(handle={self.handle!r}, "
            f"messages={self.messages_handled}, closed={self._closed})"
        )
