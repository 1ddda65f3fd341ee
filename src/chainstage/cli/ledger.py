"""
Ledger and network inspection commands.

Commands:
    chainstage ledger show --network <id>   - List recorded artifacts
    chainstage networks                     - List configured networks
"""

from __future__ import annotations

import argparse
from typing import Optional

from rich.table import Table

from chainstage.cli.common import load_project_config, resolve_network
from chainstage.cli.ux import console, header, print_table, warning
from chainstage.config import get_settings
from chainstage.core.errors import ExitCode, main_with_error_handling
from chainstage.ledger import create_ledger


@main_with_error_handling()
def ledger_show_command(network: Optional[str] = None, output_format: str = "table") -> int:
    """List ledger entries recorded for a network."""
    settings = get_settings()
    network_id = resolve_network(network, settings)
    entries = create_ledger(settings).entries(network_id)

    if output_format == "json":
        console.print_json(
            data={unit_id: entry.model_dump(mode="json") for unit_id, entry in entries.items()}
        )
        return ExitCode.SUCCESS

    header(f"Ledger: {network_id}")
    if not entries:
        warning("No deployments recorded")
        return ExitCode.SUCCESS

    table = Table(show_header=True)
    table.add_column("Unit")
    table.add_column("Template")
    table.add_column("Address")
    table.add_column("Block", justify="right")
    table.add_column("Transaction")
    for unit_id, entry in entries.items():
        table.add_row(
            unit_id,
            entry.template,
            entry.address,
            str(entry.block_number) if entry.block_number is not None else "-",
            entry.publish_ref,
        )
    console.print(table)
    return ExitCode.SUCCESS


@main_with_error_handling()
def networks_command(config_path: Optional[str] = None) -> int:
    """List networks from the project configuration."""
    config = load_project_config(config_path, get_settings())
    if not config.networks:
        warning("No networks configured")
        return ExitCode.SUCCESS

    rows = [
        [
            network_id,
            "\n".join(descriptor.endpoints),
            ", ".join(descriptor.tags) or "-",
            ", ".join(sorted(descriptor.accounts)) or "deployer (first node account)",
        ]
        for network_id, descriptor in config.networks.items()
    ]
    print_table("Networks", ["Network", "Endpoints", "Tags", "Accounts"], rows)
    return ExitCode.SUCCESS


def register_ledger_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register ledger and networks subcommand parsers."""
    ledger_parser = subparsers.add_parser("ledger", help="Inspect the deployment ledger")
    ledger_subparsers = ledger_parser.add_subparsers(dest="ledger_command")

    show_parser = ledger_subparsers.add_parser("show", help="List recorded deployments")
    show_parser.add_argument("--network", "-n", help="Network id (or CHAINSTAGE_DEFAULT_NETWORK)")
    show_parser.add_argument(
        "--format",
        "-f",
        dest="output_format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )

    networks_parser = subparsers.add_parser("networks", help="List configured networks")
    networks_parser.add_argument(
        "--config", "-c", dest="config_path", help="Path to chainstage.yaml"
    )


def handle_ledger_command(args: argparse.Namespace) -> int:
    """Handle ledger subcommands from CLI args."""
    if getattr(args, "ledger_command", None) == "show":
        return ledger_show_command(
            network=getattr(args, "network", None),
            output_format=getattr(args, "output_format", "table"),
        )
    warning("Usage: chainstage ledger show --network <id>")
    return ExitCode.WARNING


def handle_networks_command(args: argparse.Namespace) -> int:
    """Handle networks command from CLI args."""
    return networks_command(config_path=getattr(args, "config_path", None))
