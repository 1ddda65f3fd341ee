"""
CLI commands for chainstage.
"""

from chainstage.cli.deploy import deploy_command, plan_command
from chainstage.cli.ledger import ledger_show_command, networks_command

__all__ = [
    "deploy_command",
    "plan_command",
    "ledger_show_command",
    "networks_command",
]
