"""Command-line entry point.

Usage:
    claudesidebar                       # same as ``serve``
    claudesidebar serve --port 8765
    claudesidebar reset source|guidance|all
    claudesidebar paths
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from claudesidebar.config import Config, load_config
from claudesidebar.logging import get_logger, setup_logging

log = get_logger()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="claudesidebar",
        description="Assistant sessions in terminals, with a UI the assistant can edit",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=None,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Extra config file, merged over the system and user configs",
    )

    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the sidebar (default)")
    serve_parser.add_argument("--host", help="Interface to bind")
    serve_parser.add_argument("--port", type=int, help="Port to bind")
    serve_parser.add_argument(
        "--no-watch",
        action="store_true",
        help="Disable hot reload of the overlay",
    )

    reset_parser = subparsers.add_parser("reset", help="Restore overlay files from the bundle")
    reset_parser.add_argument(
        "target",
        choices=["source", "guidance", "all"],
        help="source: editable files; guidance: the guidance doc; all: everything, plugins included",
    )

    subparsers.add_parser("paths", help="Print data, overlay, and state locations")

    return parser


def _load(parsed: argparse.Namespace) -> Config:
    config = load_config(parsed.config)
    if parsed.verbose is not None:
        config.logging.verbose = parsed.verbose
    return config


def _run_serve(config: Config, parsed: argparse.Namespace) -> int:
    from claudesidebar.bridge.server import serve
    from claudesidebar.orchestrator import Orchestrator

    if parsed.host:
        config.server.host = parsed.host
    if parsed.port:
        config.server.port = parsed.port
    if parsed.no_watch:
        config.hot_reload.enabled = False

    orchestrator = Orchestrator(config)
    try:
        asyncio.run(serve(orchestrator, config.server.host, config.server.port))
    except KeyboardInterrupt:
        pass
    return 0


def _run_reset(config: Config, target: str) -> int:
    from claudesidebar.orchestrator import Orchestrator

    orchestrator = Orchestrator(config)
    if target == "source":
        ok = orchestrator.reset_editable_source()
    elif target == "guidance":
        ok = orchestrator.reset_guidance()
    else:
        ok = orchestrator.nuke_overlay()
    print(f"reset {target}: {'ok' if ok else 'failed'}")
    return 0 if ok else 1


def _run_paths(config: Config) -> int:
    from claudesidebar.orchestrator import Orchestrator

    orchestrator = Orchestrator(config)
    layout = orchestrator.layout
    print(f"data:    {orchestrator.data_dir}")
    print(f"bundle:  {layout.bundle_dir}")
    print(f"overlay: {layout.overlay_dir}")
    print(f"plugins: {layout.plugins_dir}")
    print(f"state:   {orchestrator.state_store.path}")
    return 0


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)
    command = parsed.command or "serve"
    if command == "serve" and parsed.command is None:
        parsed = parser.parse_args([*args, "serve"])

    config = _load(parsed)
    setup_logging(config.logging)

    if command == "serve":
        return _run_serve(config, parsed)
    if command == "reset":
        return _run_reset(config, parsed.target)
    if command == "paths":
        return _run_paths(config)
    parser.print_help()
    return 1


def main() -> None:
    sys.exit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
