"""
Reference capability providers.

How a host application learns what is playing is up to the host. These
providers cover the standalone agent: static values from configuration,
or the tags of an audio file that some other program keeps pointing at
the current track. Remote control actions run configured commands
(e.g. `playerctl play-pause`).
"""

from __future__ import annotations

import base64
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from mutagen import File as mutagen_file
from mutagen import MutagenError
from mutagen.flac import FLAC, Picture
from mutagen.id3 import ID3
from mutagen.mp4 import MP4

from airfoil_agent.core.provider import CapabilityProvider, MetadataKind, RemoteControlKind

if TYPE_CHECKING:
    from airfoil_agent.config import AgentConfig

logger = logging.getLogger(__name__)

# ID3 APIC picture type for the front cover
_FRONT_COVER = 3


@dataclass
class NowPlaying:
    """Now-playing values. Empty strings mean "unavailable"."""

    title: str = ""
    artist: str = ""
    album: str = ""
    album_art: str = ""  # base64 image data

    def get(self, kind: MetadataKind) -> str:
        if kind is MetadataKind.TRACK_TITLE:
            return self.title
        if kind is MetadataKind.TRACK_ARTIST:
            return self.artist
        if kind is MetadataKind.TRACK_ALBUM:
            return self.album
        return self.album_art


class RemoteCommands:
    """
    Runs a configured command for each remote control action.

    An action succeeds when its command exits with status 0 within the
    timeout. Actions without a command fail.

    Commands run synchronously because providers answer synchronously.
    When the agent serves Airfoil from an asyncio loop, a slow command
    stalls every connection (and signal handling) for up to `timeout`
    seconds, so keep the timeout short.
    """

    def __init__(
        self,
        commands: dict[RemoteControlKind, list[str]],
        timeout: float = 1.0,
    ) -> None:
        self.commands = {kind: argv for kind, argv in commands.items() if argv}
        self.timeout = timeout

    def __bool__(self) -> bool:
        return bool(self.commands)

    def run(self, kind: RemoteControlKind) -> bool:
        argv = self.commands.get(kind)
        if not argv:
            logger.debug("No command configured for %s", kind.name)
            return False

        logger.info("Remote control %s: running %s", kind.name, argv[0])
        try:
            result = subprocess.run(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.warning("Remote control %s timed out after %.1fs", kind.name, self.timeout)
            return False
        except OSError as e:
            logger.warning("Remote control %s failed to start: %s", kind.name, e)
            return False

        if result.returncode != 0:
            logger.warning(
                "Remote control %s exited with status %d: %s",
                kind.name,
                result.returncode,
                result.stderr.decode("utf-8", errors="replace").strip(),
            )
            return False
        return True


class _CommandRemoteMixin:
    """Remote control backed by RemoteCommands."""

    remote: RemoteCommands | None

    @property
    def supports_remote_control(self) -> bool:
        return bool(self.remote)

    def handle_remote_control(self, kind: RemoteControlKind) -> bool:
        if not self.remote:
            return False
        return self.remote.run(kind)


class StaticProvider(_CommandRemoteMixin, CapabilityProvider):
    """
    Serves fixed now-playing values.

    The album art file, if any, is read on every request so it can be
    swapped while the agent runs.
    """

    def __init__(
        self,
        now_playing: NowPlaying,
        remote: RemoteCommands | None = None,
        *,
        album_art_file: Path | None = None,
        supports_metadata: bool = True,
    ) -> None:
        self.now_playing = now_playing
        self.remote = remote
        self.album_art_file = album_art_file
        self._supports_metadata = supports_metadata

    @property
    def supports_metadata(self) -> bool:
        return self._supports_metadata

    def handle_metadata(self, kind: MetadataKind) -> str | None:
        if kind is MetadataKind.ALBUM_ART and self.album_art_file is not None:
            return read_image_file(self.album_art_file)
        return self.now_playing.get(kind)


class TrackFileProvider(_CommandRemoteMixin, CapabilityProvider):
    """
    Serves the tags of an audio file as now-playing metadata.

    The file is re-read on every request, so replacing or re-pointing it
    (e.g. a symlink to the current track) updates what Airfoil shows.
    """

    def __init__(self, track_file: Path, remote: RemoteCommands | None = None) -> None:
        self.track_file = track_file
        self.remote = remote

    @property
    def supports_metadata(self) -> bool:
        return True

    def handle_metadata(self, kind: MetadataKind) -> str | None:
        if kind is MetadataKind.ALBUM_ART:
            art = extract_artwork(self.track_file)
            return base64.b64encode(art).decode("ascii") if art else None
        return read_tags(self.track_file).get(kind)


def read_image_file(path: Path) -> str | None:
    """Return a file's bytes as base64, or None if it cannot be read."""
    try:
        return base64.b64encode(path.read_bytes()).decode("ascii")
    except OSError as e:
        logger.warning("Failed to read album art %s: %s", path, e)
        return None


def read_tags(path: Path) -> NowPlaying:
    """Read title, artist and album from an audio file's tags."""
    try:
        audio = mutagen_file(path, easy=True)
    except (MutagenError, OSError) as e:
        logger.debug("Tag read failed for %s: %s", path, e)
        return NowPlaying()

    if audio is None or not audio.tags:
        return NowPlaying()

    def first(key: str) -> str:
        values = audio.tags.get(key) or [""]
        return str(values[0])

    return NowPlaying(title=first("title"), artist=first("artist"), album=first("album"))


def extract_artwork(path: Path) -> bytes | None:
    """Extract embedded cover art bytes from an audio file."""
    try:
        audio = mutagen_file(path)
        if audio is None:
            return None

        # MP4 (m4a, m4b)
        if isinstance(audio, MP4):
            covers = audio.tags.get("covr") if audio.tags else None
            return bytes(covers[0]) if covers else None

        # FLAC picture blocks
        if isinstance(audio, FLAC):
            return audio.pictures[0].data if audio.pictures else None

        # ID3 (mp3) APIC frames, front cover preferred
        tags = audio if isinstance(audio, ID3) else getattr(audio, "tags", None)
        if isinstance(tags, ID3):
            apic_frames = tags.getall("APIC")
            if not apic_frames:
                return None
            cover = next((f for f in apic_frames if f.type == _FRONT_COVER), apic_frames[0])
            return cover.data

        # Vorbis comments (ogg, opus) carry base64 FLAC picture blocks
        if tags:
            for key in ("metadata_block_picture", "METADATA_BLOCK_PICTURE"):
                if key in tags:
                    return Picture(base64.b64decode(tags[key][0])).data

    except (MutagenError, OSError, ValueError) as e:
        logger.debug("Artwork extraction failed for %s: %s", path, e)

    return None


def build_provider(config: AgentConfig) -> CapabilityProvider:
    """Create the provider described by the configuration."""
    remote = RemoteCommands(config.remote.commands, timeout=config.remote.timeout)
    provider_config = config.provider

    if provider_config.supports_metadata and provider_config.track_file is not None:
        logger.info("Reporting tags of %s as now playing", provider_config.track_file)
        return TrackFileProvider(provider_config.track_file, remote or None)

    return StaticProvider(
        NowPlaying(
            title=provider_config.title,
            artist=provider_config.artist,
            album=provider_config.album,
        ),
        remote or None,
        album_art_file=provider_config.album_art_file,
        supports_metadata=provider_config.supports_metadata,
    )
