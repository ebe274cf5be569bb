"""
Command dispatch for the Airfoil agent protocol.

Maps a completed inbound message to the capability provider and produces
the response text (before wire encoding). The dispatcher holds no
per-connection state, so one instance serves every session.
"""

import logging
from collections.abc import Callable

from airfoil_agent.core.artwork import ImageNormalizer
from airfoil_agent.core.provider import CapabilityProvider, MetadataKind, RemoteControlKind
from airfoil_agent.protocol.commands import (
    METADATA_REQUESTS,
    PROVIDES_TRACK_DATA,
    REMOTE_CONTROL_COMMANDS,
    RESPONSE_EMPTY,
    RESPONSE_OK,
    SUPPORTS_REMOTE_CONTROL,
    bool_response,
)

logger = logging.getLogger(__name__)

# Message handler type
CommandHandler = Callable[[], str]

# Longest message preview written to the log
_LOG_PREVIEW_CHARS = 64


def _preview(text: str) -> str:
    if len(text) > _LOG_PREVIEW_CHARS:
        return f"{text[:_LOG_PREVIEW_CHARS]!r}… (+{len(text) - _LOG_PREVIEW_CHARS} chars)"
    return repr(text)


class ProtocolDispatcher:
    """
    Answers Airfoil commands using a capability provider.

    Unknown commands get an empty response. So does any request that makes
    the provider raise: a misbehaving host degrades to "unsupported"
    rather than breaking the connection.

    Attributes:
        provider: The host application's capability provider.
        normalizer: Converts album art to PNG.
    """

    def __init__(
        self,
        provider: CapabilityProvider,
        normalizer: ImageNormalizer | None = None,
    ) -> None:
        if provider is None:
            raise TypeError("ProtocolDispatcher requires a capability provider")

        self.provider = provider
        self.normalizer = normalizer if normalizer is not None else ImageNormalizer()

        self._handlers: dict[str, CommandHandler] = {
            SUPPORTS_REMOTE_CONTROL: self._handle_supports_remote_control,
            PROVIDES_TRACK_DATA: self._handle_provides_track_data,
        }
        for token, rc_kind in REMOTE_CONTROL_COMMANDS.items():
            self._handlers[token] = self._remote_control_handler(rc_kind)
        for token, md_kind in METADATA_REQUESTS.items():
            self._handlers[token] = self._metadata_handler(md_kind)

    @property
    def commands(self) -> frozenset[str]:
        """All command tokens this dispatcher recognizes."""
        return frozenset(self._handlers)

    def handle(self, message: str) -> str:
        """
        Produce the response text for one inbound message.

        Never raises for provider failures; returns "" instead.
        """
        handler = self._handlers.get(message)
        if handler is None:
            logger.debug("Unknown command: %s", _preview(message))
            return RESPONSE_EMPTY

        try:
            response = handler()
        except Exception as e:
            logger.warning("Capability provider failed on %s: %s", message, e)
            logger.debug("Provider traceback for %s", message, exc_info=True)
            return RESPONSE_EMPTY

        logger.debug("%s -> %s", message, _preview(response))
        return response

    # -------------------------------------------------------------------------
    # Command Handlers
    # -------------------------------------------------------------------------

    def _handle_supports_remote_control(self) -> str:
        return bool_response(self.provider.supports_remote_control)

    def _handle_provides_track_data(self) -> str:
        return bool_response(self.provider.supports_metadata)

    def _remote_control_handler(self, kind: RemoteControlKind) -> CommandHandler:
        return lambda: self._handle_remote_control(kind)

    def _metadata_handler(self, kind: MetadataKind) -> CommandHandler:
        return lambda: self._handle_metadata(kind)

    def _handle_remote_control(self, kind: RemoteControlKind) -> str:
        if not self.provider.supports_remote_control:
            return RESPONSE_EMPTY

        if self.provider.handle_remote_control(kind):
            return RESPONSE_OK

        logger.info("Remote control %s not handled by provider", kind.name)
        return RESPONSE_EMPTY

    def _handle_metadata(self, kind: MetadataKind) -> str:
        if not self.provider.supports_metadata:
            return RESPONSE_EMPTY

        value = self.provider.handle_metadata(kind) or RESPONSE_EMPTY
        if kind is MetadataKind.ALBUM_ART and value:
            return self.normalizer.normalize(value)
        return value
