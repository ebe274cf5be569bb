"""
Configuration management for the Airfoil metadata agent.

This module loads agent settings from TOML files. The bundled
`agent.toml` holds the defaults; a user file only needs the keys it
changes.
"""

from __future__ import annotations

import logging
import os
import shlex
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from airfoil_agent.core.provider import RemoteControlKind
from airfoil_agent.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Path to the config directory
CONFIG_DIR = Path(__file__).parent

DEFAULT_CONFIG_FILE = CONFIG_DIR / "agent.toml"


class TransportKind(Enum):
    """Listening socket types."""

    UNIX = "unix"
    TCP = "tcp"


@dataclass
class TransportConfig:
    """Where the agent listens for Airfoil."""

    kind: TransportKind = TransportKind.UNIX
    socket_dir: Path = Path("/tmp")
    socket_name: str = "{pid}_airfoil_metadata"
    host: str = "127.0.0.1"
    port: int = 5021
    max_connections: int = 1

    @property
    def socket_path(self) -> Path:
        """Unix socket path, with {pid} replaced by this process id."""
        return self.socket_dir / self.socket_name.format(pid=os.getpid())


@dataclass
class ProtocolConfig:
    """Protocol limits."""

    max_message_bytes: int = 1024 * 1024


@dataclass
class ProviderConfig:
    """Now-playing source for the bundled providers."""

    supports_metadata: bool = True
    track_file: Path | None = None
    title: str = ""
    artist: str = ""
    album: str = ""
    album_art_file: Path | None = None


@dataclass
class RemoteConfig:
    """Command lines run for remote control actions."""

    play_pause: str = ""
    next_track: str = ""
    previous_track: str = ""
    timeout: float = 1.0

    @property
    def commands(self) -> dict[RemoteControlKind, list[str]]:
        """Configured actions as argv lists, keyed by kind."""
        lines = {
            RemoteControlKind.PLAY_PAUSE: self.play_pause,
            RemoteControlKind.NEXT_TRACK: self.next_track,
            RemoteControlKind.PREVIOUS_TRACK: self.previous_track,
        }
        return {kind: shlex.split(line) for kind, line in lines.items() if line.strip()}


@dataclass
class AgentConfig:
    """Loaded agent configuration."""

    transport: TransportConfig = field(default_factory=TransportConfig)
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    source: Path | None = None


def _get(section: dict[str, Any], name: str, key: str, expected: type | tuple[type, ...]) -> Any:
    """Fetch a required key and check its TOML type."""
    if key not in section:
        raise ConfigError(f"[{name}] is missing '{key}'")

    value = section[key]
    expected_types = expected if isinstance(expected, tuple) else (expected,)
    # bool is an int subclass
    if isinstance(value, bool) and bool not in expected_types:
        raise ConfigError(f"[{name}] {key} must not be a boolean")
    if not isinstance(value, expected):
        raise ConfigError(f"[{name}] {key} has invalid type {type(value).__name__}")
    return value


def _optional_path(value: str) -> Path | None:
    return Path(value).expanduser() if value else None


def _parse_transport(data: dict[str, Any]) -> TransportConfig:
    kind_str = _get(data, "transport", "kind", str)
    try:
        kind = TransportKind(kind_str.lower())
    except ValueError:
        raise ConfigError(f"[transport] unknown kind {kind_str!r} (expected 'unix' or 'tcp')") from None

    port = _get(data, "transport", "port", int)
    if not 0 <= port <= 65535:
        raise ConfigError(f"[transport] port out of range: {port}")

    max_connections = _get(data, "transport", "max_connections", int)
    if max_connections < 1:
        raise ConfigError(f"[transport] max_connections must be at least 1, got {max_connections}")

    socket_name = _get(data, "transport", "socket_name", str)
    if not socket_name or "/" in socket_name:
        raise ConfigError(f"[transport] invalid socket_name {socket_name!r}")

    return TransportConfig(
        kind=kind,
        socket_dir=Path(_get(data, "transport", "socket_dir", str)).expanduser(),
        socket_name=socket_name,
        host=_get(data, "transport", "host", str),
        port=port,
        max_connections=max_connections,
    )


def _parse_protocol(data: dict[str, Any]) -> ProtocolConfig:
    max_message_bytes = _get(data, "protocol", "max_message_bytes", int)
    if max_message_bytes < 1:
        raise ConfigError(f"[protocol] max_message_bytes must be positive, got {max_message_bytes}")
    return ProtocolConfig(max_message_bytes=max_message_bytes)


def _parse_provider(data: dict[str, Any]) -> ProviderConfig:
    return ProviderConfig(
        supports_metadata=_get(data, "provider", "supports_metadata", bool),
        track_file=_optional_path(_get(data, "provider", "track_file", str)),
        title=_get(data, "provider", "title", str),
        artist=_get(data, "provider", "artist", str),
        album=_get(data, "provider", "album", str),
        album_art_file=_optional_path(_get(data, "provider", "album_art_file", str)),
    )


def _parse_remote(data: dict[str, Any]) -> RemoteConfig:
    timeout = float(_get(data, "remote", "timeout", (int, float)))
    if timeout <= 0:
        raise ConfigError(f"[remote] timeout must be positive, got {timeout}")

    remote = RemoteConfig(
        play_pause=_get(data, "remote", "play_pause", str),
        next_track=_get(data, "remote", "next_track", str),
        previous_track=_get(data, "remote", "previous_track", str),
        timeout=timeout,
    )
    try:
        for line in (remote.play_pause, remote.next_track, remote.previous_track):
            shlex.split(line)
    except ValueError as e:
        raise ConfigError(f"[remote] cannot parse command line: {e}") from e
    return remote


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e


def _merge(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Merge user sections over the defaults, one level deep."""
    merged = {name: dict(section) for name, section in defaults.items()}
    for name, section in overrides.items():
        if name not in merged:
            logger.warning("Ignoring unknown config section [%s]", name)
            continue
        if not isinstance(section, dict):
            raise ConfigError(f"[{name}] must be a table")
        for key in section:
            if key not in merged[name]:
                logger.warning("Ignoring unknown config key %s.%s", name, key)
        merged[name].update({k: v for k, v in section.items() if k in merged[name]})
    return merged


def load_agent_config(config_path: Path | None = None) -> AgentConfig:
    """
    Load agent configuration from TOML.

    Args:
        config_path: User config file merged over the bundled defaults.
            If None, only the defaults are used.

    Returns:
        Loaded AgentConfig instance.

    Raises:
        ConfigError: The file is missing, unreadable, or holds invalid values.
    """
    data = _read_toml(DEFAULT_CONFIG_FILE)

    if config_path is not None:
        logger.debug("Loading agent config from %s", config_path)
        data = _merge(data, _read_toml(config_path))

    return AgentConfig(
        transport=_parse_transport(data["transport"]),
        protocol=_parse_protocol(data["protocol"]),
        provider=_parse_provider(data["provider"]),
        remote=_parse_remote(data["remote"]),
        source=config_path,
    )


# Global singleton instance (lazy loaded)
_agent_config: AgentConfig | None = None


def get_agent_config() -> AgentConfig:
    """
    Get the global agent configuration (lazy loaded singleton).

    Returns:
        The AgentConfig instance.
    """
    global _agent_config

    if _agent_config is None:
        _agent_config = load_agent_config()

    return _agent_config


def reload_agent_config(config_path: Path | None = None) -> AgentConfig:
    """
    Force reload of agent configuration.

    Returns:
        The newly loaded AgentConfig instance.
    """
    global _agent_config
    _agent_config = load_agent_config(config_path)
    return _agent_config
