"""
Command-line entry point for mareatigre.

Runs one service call and prints its JSON payload on stdout, the same
payloads the web client polls for.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Callable

import structlog

from mareatigre.config import load_settings
from mareatigre.logs import setup_logging
from mareatigre.services import MareaTigre

log = structlog.get_logger()

COMMANDS: dict[str, Callable[[MareaTigre], Any]] = {
    "alertas": lambda app: app.alerts.get_alerts(),
    "altura": lambda app: app.san_fernando.get_height(),
    "tendencia": lambda app: app.san_fernando.get_tendency(),
    "telemetria": lambda app: app.telemetry.get_telemetry(),
    "sudestada": lambda app: app.sudestada.get_status(),
    "historial-pilote": lambda app: app.sudestada.history(),
    "reset-sudestada": lambda app: {"ok": app.sudestada.reset()},
    "init": lambda app: {"ok": True, "data_dir": str(app.store.data_dir)},
}


def parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Río de la Plata river levels, trend and sudestada watcher."
    )
    parser.add_argument(
        "command",
        choices=sorted(COMMANDS),
        help="Payload to produce.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.toml (defaults to the one next to the package).",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory holding the JSON history files.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="debug, info, warning or error.",
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default=None,
        help="Log renderer (logs go to stderr).",
    )
    parser.add_argument(
        "--pretty",
        action="store_true",
        help="Indent the JSON output.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = load_settings(args.config)
    if args.data_dir:
        settings.storage.data_dir = args.data_dir
    if args.log_level:
        settings.logging.level = args.log_level
    if args.log_format:
        settings.logging.format = args.log_format
    setup_logging(settings.logging.level, settings.logging.format)

    app = MareaTigre(settings)
    app.initialize()
    log.debug("command_start", command=args.command, data_dir=settings.storage.data_dir)

    payload = COMMANDS[args.command](app)
    indent = 2 if args.pretty else None
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=indent) + "\n")

    if isinstance(payload, dict) and "error" in payload:
        return 1
    return 0
