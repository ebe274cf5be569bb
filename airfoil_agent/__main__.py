"""
Airfoil Metadata Agent - Entry Point

Run with: python -m airfoil_agent
"""

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path

from airfoil_agent import __version__
from airfoil_agent.config import AgentConfig, TransportKind, load_agent_config
from airfoil_agent.exceptions import ConfigError
from airfoil_agent.server import AgentServer


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="airfoil-agent",
        description="Airfoil Metadata Agent - exposes now-playing data and remote control to Airfoil",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="TOML config file merged over the bundled defaults",
    )

    parser.add_argument(
        "--tcp",
        action="store_true",
        help="Listen on TCP instead of a Unix socket",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="TCP host address to bind to (default from config: 127.0.0.1)",
    )

    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=None,
        help="TCP port (default from config: 5021)",
    )

    parser.add_argument(
        "--socket-dir",
        type=Path,
        default=None,
        help="Directory for the Unix socket (default from config: /tmp)",
    )

    parser.add_argument(
        "--track-file",
        type=Path,
        default=None,
        help="Audio file whose tags are reported as now playing",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def apply_overrides(config: AgentConfig, args: argparse.Namespace) -> AgentConfig:
    """Apply command line overrides to a loaded configuration."""
    transport = config.transport
    if args.tcp:
        transport = dataclasses.replace(transport, kind=TransportKind.TCP)
    if args.host is not None:
        transport = dataclasses.replace(transport, host=args.host)
    if args.port is not None:
        if not 0 <= args.port <= 65535:
            raise ConfigError(f"Port out of range: {args.port}")
        transport = dataclasses.replace(transport, port=args.port)
    if args.socket_dir is not None:
        transport = dataclasses.replace(transport, socket_dir=args.socket_dir.expanduser())

    provider = config.provider
    if args.track_file is not None:
        provider = dataclasses.replace(provider, track_file=args.track_file.expanduser())

    return dataclasses.replace(config, transport=transport, provider=provider)


async def run_agent(config: AgentConfig) -> None:
    """Start and run the agent."""
    server = AgentServer(config)
    await server.run()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)

    try:
        config = apply_overrides(load_agent_config(args.config), args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    logger.info("Starting Airfoil Metadata Agent...")

    try:
        asyncio.run(run_agent(config))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1

    logger.info("Agent stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
