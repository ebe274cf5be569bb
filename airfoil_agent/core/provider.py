"""
Capability provider interface.

The host application plugs into the agent by implementing
`CapabilityProvider`. One provider instance is shared by every
connection and is only ever read by the agent.
"""

from abc import ABC, abstractmethod
from enum import Enum


class RemoteControlKind(Enum):
    """Playback actions Airfoil can ask the host application to perform."""

    PLAY_PAUSE = "play_pause"
    NEXT_TRACK = "next_track"
    PREVIOUS_TRACK = "previous_track"


class MetadataKind(Enum):
    """Now-playing fields Airfoil can request."""

    TRACK_TITLE = "title"
    TRACK_ARTIST = "artist"
    TRACK_ALBUM = "album"
    ALBUM_ART = "album_art"


class CapabilityProvider(ABC):
    """
    Answers Airfoil's remote control and metadata requests.

    Implementations may be called from the event loop for every request,
    so they should return quickly.
    """

    @property
    @abstractmethod
    def supports_remote_control(self) -> bool:
        """Whether the host accepts remote control commands."""
        ...

    @abstractmethod
    def handle_remote_control(self, kind: RemoteControlKind) -> bool:
        """
        Perform a playback action.

        Returns:
            True if the action was handled and succeeded.
        """
        ...

    @property
    @abstractmethod
    def supports_metadata(self) -> bool:
        """Whether the host provides now-playing metadata."""
        ...

    @abstractmethod
    def handle_metadata(self, kind: MetadataKind) -> str | None:
        """
        Return now-playing metadata.

        Album art is a base64 string of the image; PNG is preferred but
        any format Pillow can read is converted.

        Returns:
            The requested value, or None/"" if it is unavailable.
        """
        ...


class NullProvider(CapabilityProvider):
    """Provider that supports nothing."""

    @property
    def supports_remote_control(self) -> bool:
        return False

    def handle_remote_control(self, kind: RemoteControlKind) -> bool:
        return False

    @property
    def supports_metadata(self) -> bool:
        return False

    def handle_metadata(self, kind: MetadataKind) -> str | None:
        return None
