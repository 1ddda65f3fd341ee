"""
Deployment ledger contract.

Every backend keeps an in-memory view per network, loaded in full before a
run, and writes through to durable storage before updating that view. A crash
during ``record`` therefore leaves the stored state either fully updated or
unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Tuple

import structlog

from chainstage.core.errors import LedgerConflictError
from chainstage.ledger.models import LedgerEntry

logger = structlog.get_logger()


class DeploymentLedger(ABC):
    """Per-network, per-unit record of published artifacts."""

    def __init__(self) -> None:
        self._views: Dict[str, Dict[str, LedgerEntry]] = {}

    @abstractmethod
    def _read_all(self, network: str) -> Iterable[Tuple[str, LedgerEntry]]:
        """Read every stored entry for a network."""

    @abstractmethod
    def _write(self, network: str, unit_id: str, entry: LedgerEntry) -> None:
        """Durably store one entry, replacing any previous one."""

    def check_key(self, network: str, unit_id: str) -> None:
        """Raise InvalidLedgerKeyError if this backend cannot store the key."""

    def load(self, network: str) -> Dict[str, LedgerEntry]:
        """(Re)load the full view of a network from storage."""
        view = dict(self._read_all(network))
        self._views[network] = view
        logger.debug("ledger_loaded", network=network, entries=len(view))
        return dict(view)

    def _view(self, network: str) -> Dict[str, LedgerEntry]:
        if network not in self._views:
            self.load(network)
        return self._views[network]

    def lookup(self, network: str, unit_id: str) -> Optional[LedgerEntry]:
        return self._view(network).get(unit_id)

    def exists(self, network: str, unit_id: str) -> bool:
        return unit_id in self._view(network)

    def record(
        self,
        network: str,
        unit_id: str,
        entry: LedgerEntry,
        *,
        force: bool = False,
    ) -> None:
        """Record an entry; existing entries are only replaced when forced."""
        view = self._view(network)
        previous = view.get(unit_id)
        if previous is not None and not force:
            raise LedgerConflictError(network, unit_id, f"recorded at {previous.address}")

        self._write(network, unit_id, entry)
        view[unit_id] = entry
        logger.info(
            "ledger_recorded",
            network=network,
            unit=unit_id,
            address=entry.address,
            template=entry.template,
            overwrite=previous is not None,
        )

    def entries(self, network: str) -> Dict[str, LedgerEntry]:
        view = self._view(network)
        return {unit_id: view[unit_id] for unit_id in sorted(view)}


class MemoryLedger(DeploymentLedger):
    """Ledger kept in process memory, for tests and dry runs."""

    def __init__(self) -> None:
        super().__init__()
        self._store: Dict[str, Dict[str, LedgerEntry]] = {}

    def _read_all(self, network: str) -> Iterable[Tuple[str, LedgerEntry]]:
        return list(self._store.get(network, {}).items())

    def _write(self, network: str, unit_id: str, entry: LedgerEntry) -> None:
        self._store.setdefault(network, {})[unit_id] = entry
