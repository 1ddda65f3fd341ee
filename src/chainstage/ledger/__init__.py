"""
Deployment ledger.

Durable record of which units published which artifacts on which network.

Backends:
- memory: process-local, for tests and dry runs
- json: one file per entry under a deployments directory
- sql: SQLAlchemy table keyed by (network, unit_id)
"""

from __future__ import annotations

from chainstage.config.settings import Settings, get_settings
from chainstage.core.errors import ConfigurationError
from chainstage.ledger.base import DeploymentLedger, MemoryLedger
from chainstage.ledger.files import JsonFileLedger
from chainstage.ledger.models import LedgerEntry, fingerprint_args
from chainstage.ledger.sql import SqlLedger


def create_ledger(settings: Settings | None = None) -> DeploymentLedger:
    """Create the ledger backend selected in settings."""
    cfg = settings or get_settings()
    backend = cfg.ledger_backend.lower()
    if backend == "json":
        return JsonFileLedger(cfg.ledger_dir)
    if backend == "sql":
        return SqlLedger(cfg.ledger_url)
    if backend == "memory":
        return MemoryLedger()
    raise ConfigurationError(
        f"Unknown ledger backend '{cfg.ledger_backend}'",
        {"choices": ["json", "sql", "memory"]},
    )


__all__ = [
    "DeploymentLedger",
    "JsonFileLedger",
    "LedgerEntry",
    "MemoryLedger",
    "SqlLedger",
    "create_ledger",
    "fingerprint_args",
]
