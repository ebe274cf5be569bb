"""
Airfoil command vocabulary.

Inbound message bodies are matched exactly against these tokens. Every
response is a string; an empty string means "unsupported" or "failed".

Reference: http://weblog.rogueamoeba.com/2014/05/16/developer-note-integrating-with-airfoil-for-windows/
"""

from airfoil_agent.core.provider import MetadataKind, RemoteControlKind

# Capability queries
SUPPORTS_REMOTE_CONTROL = "supportsRemoteControl"
PROVIDES_TRACK_DATA = "providesTrackData"

# Remote control commands
REMOTE_PLAY_PAUSE = "remotePlayPause"
REMOTE_TRACK_NEXT = "remoteTrackNext"
REMOTE_TRACK_PREVIOUS = "remoteTrackPrevious"

# Metadata requests. Album art is answered with base64 PNG data.
REQUEST_TRACK_TITLE = "requestTrackTitle"
REQUEST_TRACK_ARTIST = "requestTrackArtist"
REQUEST_TRACK_ALBUM = "requestTrackAlbum"
REQUEST_ALBUM_ART = "requestAlbumArt"

# Responses
RESPONSE_TRUE = "true"
RESPONSE_FALSE = "false"
RESPONSE_OK = "OK"  # Anything else is read by Airfoil as a failed remote command
RESPONSE_EMPTY = ""

REMOTE_CONTROL_COMMANDS: dict[str, RemoteControlKind] = {
    REMOTE_PLAY_PAUSE: RemoteControlKind.PLAY_PAUSE,
    REMOTE_TRACK_NEXT: RemoteControlKind.NEXT_TRACK,
    REMOTE_TRACK_PREVIOUS: RemoteControlKind.PREVIOUS_TRACK,
}

METADATA_REQUESTS: dict[str, MetadataKind] = {
    REQUEST_TRACK_TITLE: MetadataKind.TRACK_TITLE,
    REQUEST_TRACK_ARTIST: MetadataKind.TRACK_ARTIST,
    REQUEST_TRACK_ALBUM: MetadataKind.TRACK_ALBUM,
    REQUEST_ALBUM_ART: MetadataKind.ALBUM_ART,
}


def bool_response(value: bool) -> str:
    """Format a capability flag as Airfoil expects it."""
    return RESPONSE_TRUE if value else RESPONSE_FALSE
