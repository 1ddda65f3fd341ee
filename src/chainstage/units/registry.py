"""Explicit registry of deployment units, in declaration order."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from chainstage.core.errors import ConfigurationError, DuplicateUnitError
from chainstage.units.models import Dependencies, DeploymentUnit, UnitBody


class UnitRegistry:
    """Deployment units keyed by id; iteration follows registration order."""

    def __init__(self, units: Iterable[DeploymentUnit] = ()) -> None:
        self._units: Dict[str, DeploymentUnit] = {}
        for unit in units:
            self.register(unit)

    def register(self, unit: DeploymentUnit) -> DeploymentUnit:
        """Register a unit; ids are globally unique."""
        if unit.id in self._units:
            raise DuplicateUnitError(unit.id)
        self._units[unit.id] = unit
        return unit

    def unit(
        self,
        id: str,
        *,
        dependencies: Dependencies = (),
        tags: Iterable[str] = (),
        description: Optional[str] = None,
    ) -> Callable[[UnitBody], UnitBody]:
        """Decorator form of ``register``.

        Usage:
            units = UnitRegistry()

            @units.unit("treasury", tags=["local", "test"])
            async def deploy_treasury(ctx):
                await ctx.deploy("Treasury", [ctx.account("deployer")])
        """

        def decorator(body: UnitBody) -> UnitBody:
            self.register(
                DeploymentUnit(
                    id=id,
                    body=body,
                    dependencies=dependencies,
                    tags=frozenset(tags),
                    description=description or (body.__doc__ or "").strip() or None,
                )
            )
            return body

        return decorator

    def get(self, unit_id: str) -> Optional[DeploymentUnit]:
        return self._units.get(unit_id)

    def ids(self) -> List[str]:
        return list(self._units)

    def index_of(self, unit_id: str) -> int:
        return self.ids().index(unit_id)

    def __iter__(self) -> Iterator[DeploymentUnit]:
        return iter(list(self._units.values()))

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, unit_id: object) -> bool:
        return unit_id in self._units


def load_units(target: str, app_dir: str | None = None) -> UnitRegistry:
    """Import ``package.module:attribute`` and return its unit registry.

    The attribute defaults to ``units`` and may be a UnitRegistry or any
    iterable of DeploymentUnit objects. ``app_dir`` is put on the import
    path first so project-local deploy scripts resolve.
    """
    if app_dir is not None:
        app_path = str(Path(app_dir).resolve())
        if app_path not in sys.path:
            sys.path.insert(0, app_path)
    module_name, _, attribute = target.partition(":")
    attribute = attribute or "units"
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import units module '{module_name}': {e}") from e

    value = getattr(module, attribute, None)
    if isinstance(value, UnitRegistry):
        return value
    if value is not None and not isinstance(value, (str, bytes)):
        try:
            items = list(value)
        except TypeError:
            items = []
        if items and all(isinstance(item, DeploymentUnit) for item in items):
            return UnitRegistry(items)

    raise ConfigurationError(
        f"'{target}' does not name a UnitRegistry or a list of deployment units",
        {"module": module_name, "attribute": attribute},
    )
