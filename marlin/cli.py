"""Command-line entry points for the node service and the terminal viewer."""
from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any, Dict

from marlin import __version__, build_info
from marlin.config import get_settings, get_viewer_settings
from marlin.observability import configure_logging

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _log_level(value: str) -> str:
    level = value.strip().upper()
    if level not in LOG_LEVELS:
        raise argparse.ArgumentTypeError(f"log level must be one of {', '.join(LOG_LEVELS)}")
    return level


def build_node_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="marlin-node", description="Sample sensors and stream snapshots over WebSocket")
    parser.add_argument("--host", help="Bind address (default from MARLIN_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Listen port (default from MARLIN_PORT or 5000)")
    parser.add_argument("--simulate", action="store_true", help="Use simulated sensors instead of the I2C HAT")
    parser.add_argument("--log-level", type=_log_level, help="Override MARLIN_LOG_LEVEL")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_viewer_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="marlin-viewer", description="Live acceleration chart for a Marlin node")
    parser.add_argument("host", nargs="?", help="Node hostname or IP (default from MARLIN_VIEWER_HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Node port (default 5000)")
    parser.add_argument("--log-level", type=_log_level, help="Override MARLIN_VIEWER_LOG_LEVEL")
    parser.add_argument("--log-file", help="Write logs to this file instead of stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def node_main(argv: list[str] | None = None) -> int:
    parser = build_node_parser()
    args = parser.parse_args(argv)
    if args.simulate and build_info.BUILD_FLAVOR == "prod":
        parser.error("--simulate is not allowed in production builds")

    settings = get_settings()
    update: Dict[str, Any] = {}
    if args.host:
        update["host"] = args.host
    if args.port:
        update["port"] = args.port
    if args.log_level:
        update["log_level"] = args.log_level
    if args.simulate:
        update["simulation"] = settings.simulation.model_copy(update={"enabled": True})
    if update:
        settings = settings.model_copy(update=update)

    import uvicorn

    from marlin.main import create_app

    configure_logging(settings.service_name, settings.log_level, fmt=settings.log_format)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)
    return 0


def viewer_main(argv: list[str] | None = None) -> int:
    parser = build_viewer_parser()
    args = parser.parse_args(argv)

    settings = get_viewer_settings()
    update: Dict[str, Any] = {}
    if args.host:
        update["host"] = args.host
    if args.port:
        update["port"] = args.port
    if args.log_level:
        update["log_level"] = args.log_level
    if args.log_file:
        update["log_file"] = args.log_file
    if update:
        settings = settings.model_copy(update=update)

    configure_logging(
        "marlin-viewer",
        settings.log_level,
        fmt="text",
        stream=sys.stderr,
        log_file=settings.log_file,
    )

    from marlin.viewer.session import ViewerSession

    return asyncio.run(ViewerSession(settings).run())


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(node_main())
