"""Entry point for godot-build-mcp server."""

import argparse
import asyncio
import dataclasses
import logging
import os
import sys

from .config import BuildPanelConfig, load_config, parse_address
from .server import create_build_context, create_server


def configure_logging() -> None:
    """Configure logging based on environment."""
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Godot Build MCP Server - build Godot C# projects and hot-reload via MCP"
    )
    parser.add_argument(
        "--project",
        type=str,
        default=None,
        help="Godot project root. Defaults to searching upward from CWD "
        "for project.godot, .sln or .git markers.",
    )
    parser.add_argument(
        "--configuration",
        type=str,
        default=None,
        help="Build configuration (default: Debug).",
    )
    parser.add_argument(
        "--dotnet",
        type=str,
        default=None,
        help="Path to the dotnet executable.",
    )
    parser.add_argument(
        "--debounce",
        type=float,
        default=None,
        help="Seconds before a debounced assembly reload fires (default: 0.5).",
    )
    parser.add_argument(
        "--game",
        type=str,
        default=None,
        help="host:port of a running game's debug channel to notify after builds.",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> BuildPanelConfig:
    """Apply command line overrides on top of environment configuration."""
    config = load_config()
    overrides = {
        "project_root": args.project,
        "configuration": args.configuration,
        "dotnet_path": args.dotnet,
        "debounce_seconds": args.debounce,
        "game_address": parse_address(args.game) if args.game else None,
    }
    return dataclasses.replace(
        config, **{key: value for key, value in overrides.items() if value is not None}
    )


async def main() -> None:
    """Main entry point."""
    configure_logging()
    logger = logging.getLogger(__name__)

    try:
        config = build_config(parse_args())
    except ValueError as e:
        logger.error(str(e))
        sys.exit(2)

    build = create_build_context(config)
    logger.info(
        f"Starting Godot Build MCP Server (solution: {build.panel.project.descriptor_path}, "
        f"configuration: {config.configuration})..."
    )

    if config.game_address:
        host, port = config.game_address
        try:
            await build.notifier.connect(host, port)
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Could not attach to running game at {host}:{port}: {e}")

    mcp = create_server(config, build)

    try:
        await mcp.run_stdio_async()
    except Exception:
        logger.exception("Server error")
        raise
    finally:
        build.timer.stop()
        await build.notifier.close()
        logger.info("Server stopped")


def run() -> None:
    """Run the server."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
