"""
Static template catalog.

Templates are compiled artifacts in the Hardhat/Foundry JSON shape:
{"contractName": ..., "abi": [...], "bytecode": "0x..."}.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import structlog
from pydantic import BaseModel, Field

from chainstage.core.errors import ConfigurationError, InvalidTemplateError

logger = structlog.get_logger()


class Template(BaseModel):
    """Compiled definition used to publish or type-bind artifacts."""

    name: str = Field(..., description="Template (contract) name")
    abi: List[Dict[str, Any]] = Field(default_factory=list, description="ABI entries")
    bytecode: str = Field("0x", description="Creation bytecode, hex encoded")

    class Config:
        frozen = True

    @property
    def constructor_inputs(self) -> List[Dict[str, Any]]:
        for item in self.abi:
            if item.get("type") == "constructor":
                return list(item.get("inputs", []))
        return []

    def function(self, name: str) -> Optional[Dict[str, Any]]:
        for item in self.abi:
            if item.get("type") == "function" and item.get("name") == name:
                return item
        return None

    @property
    def publishable(self) -> bool:
        return bool(self.bytecode) and self.bytecode != "0x"


class TemplateCatalog:
    """Name -> Template mapping, fixed once constructed."""

    def __init__(self, templates: Iterable[Template] = ()) -> None:
        self._templates: Dict[str, Template] = {}
        for template in templates:
            self._templates[template.name] = template

    @classmethod
    def load_dir(cls, path: str | Path) -> TemplateCatalog:
        """Load every artifact JSON under ``path`` (recursively)."""
        root = Path(path)
        if not root.is_dir():
            raise ConfigurationError(f"Artifacts directory not found: {root}", {"path": str(root)})

        templates: List[Template] = []
        for artifact in sorted(root.rglob("*.json")):
            if artifact.name.endswith(".dbg.json"):
                continue
            try:
                data = json.loads(artifact.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                logger.warning("artifact_unreadable", path=str(artifact), error=str(e))
                continue
            if not isinstance(data, dict) or "abi" not in data:
                continue

            bytecode = data.get("bytecode", "0x")
            # Foundry nests bytecode under {"object": ...}
            if isinstance(bytecode, dict):
                bytecode = bytecode.get("object", "0x")
            templates.append(
                Template(
                    name=data.get("contractName") or artifact.stem,
                    abi=data["abi"],
                    bytecode=bytecode or "0x",
                )
            )

        logger.debug("loaded_templates", path=str(root), count=len(templates))
        return cls(templates)

    def get(self, name: str) -> Template:
        try:
            return self._templates[name]
        except KeyError:
            raise InvalidTemplateError(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def names(self) -> List[str]:
        return sorted(self._templates)
