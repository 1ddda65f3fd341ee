"""
chainstage command line.

Usage:
    chainstage <command> [args]
"""

from __future__ import annotations

import argparse
from typing import Sequence

from chainstage import __version__
from chainstage.cli.deploy import (
    handle_deploy_command,
    handle_plan_command,
    register_deploy_parser,
)
from chainstage.cli.ledger import (
    handle_ledger_command,
    handle_networks_command,
    register_ledger_parser,
)
from chainstage.config import get_settings
from chainstage.logging import configure_logging

HANDLERS = {
    "deploy": handle_deploy_command,
    "plan": handle_plan_command,
    "ledger": handle_ledger_command,
    "networks": handle_networks_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chainstage",
        description="Dependency-ordered, idempotent deployments to JSON-RPC networks",
    )
    parser.add_argument("--version", action="version", version=f"chainstage {__version__}")
    parser.add_argument("--log-level", help="Log level (default: CHAINSTAGE_LOG_LEVEL or INFO)")
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        default="json",
        help="Log renderer (default: json)",
    )

    subparsers = parser.add_subparsers(dest="command")
    register_deploy_parser(subparsers)
    register_ledger_parser(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        args.log_level or get_settings().log_level,
        json_output=args.log_format == "json",
    )

    handler = HANDLERS.get(args.command or "")
    if handler is None:
        parser.print_help()
        return 1
    return int(handler(args))


if __name__ == "__main__":
    raise SystemExit(main())
