from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerEntry(BaseModel):
    """A published artifact recorded under (network, unit id)."""

    address: str = Field(..., description="Artifact address")
    template: str = Field(..., description="Template name the artifact was published from")
    args_fingerprint: str = Field(..., description="sha256 of the canonical constructor args")
    publish_ref: str = Field(..., description="Transaction hash of the publish")
    block_number: Optional[int] = Field(None, description="Block that included the publish")
    newly_published: bool = Field(True, description="False when recorded from an existing address")
    recorded_at: datetime = Field(default_factory=_utcnow)

    class Config:
        frozen = True

    def matches(self, template: str, args_fingerprint: str) -> bool:
        return self.template == template and self.args_fingerprint == args_fingerprint


def _canonical(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _canonical(item) for key, item in value.items()}
    if isinstance(value, bool) or value is None or isinstance(value, (int, float)):
        return value
    return str(value)


def fingerprint_args(args: Sequence[Any]) -> str:
    """Stable fingerprint of constructor arguments."""
    payload = json.dumps(_canonical(list(args)), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
