"""
Deploy and plan commands.

Commands:
    chainstage deploy <module:units> --network <id>   - Apply units to a network
    chainstage plan <module:units> --network <id>     - Show order and skip status
"""

from __future__ import annotations

import argparse
import asyncio
from typing import List, Optional

from rich.table import Table

from chainstage.cli.common import (
    build_orchestrator,
    load_project_config,
    parse_list,
    resolve_network,
)
from chainstage.cli.ux import confirm, console, error, header, info, success, warning
from chainstage.config import get_settings
from chainstage.core.errors import ExitCode, main_with_error_handling
from chainstage.orchestration import RunReport, UnitOutcome
from chainstage.units import load_units

OUTCOME_STYLES = {
    UnitOutcome.SKIPPED: "muted",
    UnitOutcome.NEWLY_PUBLISHED: "success",
    UnitOutcome.ATTACHED: "info",
    UnitOutcome.FAILED: "error",
    UnitOutcome.NOT_ATTEMPTED: "warning",
}


@main_with_error_handling()
def deploy_command(
    units_target: str,
    network: Optional[str] = None,
    tags: Optional[List[str]] = None,
    force: bool = False,
    only: Optional[List[str]] = None,
    config_path: Optional[str] = None,
    app_dir: Optional[str] = ".",
    output_format: str = "table",
    assume_yes: bool = False,
) -> int:
    """
    Apply deployment units to a network.

    Exit codes:
        0  - Every unit skipped, published or attached
        13 - A unit failed; later units were not attempted
    """
    settings = get_settings()
    config = load_project_config(config_path, settings)
    network_id = resolve_network(network, settings)
    units = load_units(units_target, app_dir)
    orchestrator = build_orchestrator(config, settings)

    if force and not assume_yes:
        prompt = f"Force re-publishing every selected unit on '{network_id}'?"
        if not confirm(prompt, default=False):
            warning("Aborted")
            return ExitCode.BLOCKED

    report = asyncio.run(orchestrator.run(units, network_id, tags, force=force, only=only))

    if output_format == "json":
        console.print_json(data=report.to_dict())
    else:
        _print_report(report)

    return ExitCode.SUCCESS if report.succeeded else ExitCode.DEPLOYMENT_FAILED


@main_with_error_handling()
def plan_command(
    units_target: str,
    network: Optional[str] = None,
    tags: Optional[List[str]] = None,
    force: bool = False,
    only: Optional[List[str]] = None,
    config_path: Optional[str] = None,
    app_dir: Optional[str] = ".",
) -> int:
    """Show the resolved unit order without touching the network."""
    settings = get_settings()
    config = load_project_config(config_path, settings)
    network_id = resolve_network(network, settings)
    units = load_units(units_target, app_dir)
    orchestrator = build_orchestrator(config, settings)

    planned = orchestrator.preview(units, network_id, tags, force=force, only=only)

    header(f"Deployment plan: {network_id}")
    if not planned:
        warning("No units match the active tags")
        return ExitCode.SUCCESS

    table = Table(show_header=True)
    table.add_column("#", justify="right")
    table.add_column("Unit")
    table.add_column("Tags")
    table.add_column("Action")
    for position, (unit, skip) in enumerate(planned, 1):
        action = "[muted]skip (in ledger)[/muted]" if skip else "[success]run[/success]"
        table.add_row(str(position), unit.id, ", ".join(sorted(unit.tags)), action)
    console.print(table)

    pending = sum(1 for _, skip in planned if not skip)
    info(f"{pending} of {len(planned)} unit(s) would run")
    return ExitCode.SUCCESS


def _print_report(report: RunReport) -> None:
    header(f"Deployment run {report.run_id}: {report.network}")

    table = Table(show_header=True)
    table.add_column("Unit")
    table.add_column("Outcome")
    table.add_column("Artifacts")
    table.add_column("Time", justify="right")
    for unit in report.units:
        style = OUTCOME_STYLES[unit.outcome]
        artifacts = "\n".join(f"{name}: {address}" for name, address in unit.artifacts.items())
        table.add_row(
            unit.unit_id,
            f"[{style}]{unit.outcome}[/{style}]",
            artifacts,
            f"{unit.duration_seconds:.2f}s",
        )
    console.print(table)

    failure = report.failure
    if failure is not None:
        error(f"Unit '{failure.unit_id}' failed: {failure.error}")
    else:
        success(f"Run completed in {report.duration_seconds:.2f}s")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "units", help="Deployment units as module:attribute (default attribute: units)"
    )
    parser.add_argument("--network", "-n", help="Target network (or CHAINSTAGE_DEFAULT_NETWORK)")
    parser.add_argument(
        "--tags",
        "-t",
        help="Comma separated active tags (default: tags configured on the network)",
    )
    parser.add_argument("--only", help="Comma separated unit ids to run, with their dependencies")
    parser.add_argument("--force", action="store_true", help="Re-run units already in the ledger")
    parser.add_argument("--config", "-c", dest="config_path", help="Path to chainstage.yaml")
    parser.add_argument(
        "--app-dir",
        default=".",
        help="Directory added to the import path before loading units (default: .)",
    )


def register_deploy_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register deploy and plan subcommand parsers."""
    deploy_parser = subparsers.add_parser("deploy", help="Apply deployment units to a network")
    _add_common_arguments(deploy_parser)
    deploy_parser.add_argument(
        "--format",
        "-f",
        dest="output_format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    deploy_parser.add_argument(
        "--yes", "-y", dest="assume_yes", action="store_true", help="Skip confirmation prompts"
    )

    plan_parser = subparsers.add_parser("plan", help="Show the resolved deployment order")
    _add_common_arguments(plan_parser)


def handle_deploy_command(args: argparse.Namespace) -> int:
    """Handle deploy command from CLI args."""
    return deploy_command(
        units_target=args.units,
        network=getattr(args, "network", None),
        tags=parse_list(getattr(args, "tags", None)),
        force=getattr(args, "force", False),
        only=parse_list(getattr(args, "only", None)),
        config_path=getattr(args, "config_path", None),
        app_dir=getattr(args, "app_dir", "."),
        output_format=getattr(args, "output_format", "table"),
        assume_yes=getattr(args, "assume_yes", False),
    )


def handle_plan_command(args: argparse.Namespace) -> int:
    """Handle plan command from CLI args."""
    return plan_command(
        units_target=args.units,
        network=getattr(args, "network", None),
        tags=parse_list(getattr(args, "tags", None)),
        force=getattr(args, "force", False),
        only=parse_list(getattr(args, "only", None)),
        config_path=getattr(args, "config_path", None),
        app_dir=getattr(args, "app_dir", "."),
    )
