"""
JSON file ledger.

Layout: ``<root>/<network>/<unit_id>.json``, one file per entry. Files are
written through a temporary sibling and ``os.replace`` so a reader never sees
a partial entry.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Iterable, Tuple

import structlog
from pydantic import ValidationError

from chainstage.core.errors import InvalidLedgerKeyError
from chainstage.ledger.base import DeploymentLedger
from chainstage.ledger.models import LedgerEntry

logger = structlog.get_logger()

DEFAULT_LEDGER_DIR = Path("deployments")


def _safe_name(value: str, kind: str) -> str:
    if not value or value.startswith(".") or "/" in value or "\\" in value:
        raise InvalidLedgerKeyError(kind, value)
    return value


class JsonFileLedger(DeploymentLedger):
    """Ledger persisted as one JSON document per entry."""

    def __init__(self, root: str | Path | None = None) -> None:
        super().__init__()
        self.root = Path(root) if root is not None else DEFAULT_LEDGER_DIR

    def _network_dir(self, network: str) -> Path:
        return self.root / _safe_name(network, "network id")

    def check_key(self, network: str, unit_id: str) -> None:
        self.path_for(network, unit_id)

    def path_for(self, network: str, unit_id: str) -> Path:
        return self._network_dir(network) / f"{_safe_name(unit_id, 'unit id')}.json"

    def _read_all(self, network: str) -> Iterable[Tuple[str, LedgerEntry]]:
        directory = self._network_dir(network)
        if not directory.is_dir():
            return []

        entries = []
        for path in sorted(directory.glob("*.json")):
            try:
                entry = LedgerEntry.model_validate_json(path.read_text(encoding="utf-8"))
            except ValidationError as e:
                # Refuse to guess: a corrupt entry must be fixed by hand.
                raise ValueError(f"Corrupt ledger entry {path}: {e}") from e
            entries.append((path.stem, entry))
        return entries

    def _write(self, network: str, unit_id: str, entry: LedgerEntry) -> None:
        target = self.path_for(network, unit_id)
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = entry.model_dump_json(indent=2) + "\n"

        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{unit_id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.debug("ledger_file_written", path=str(target))
