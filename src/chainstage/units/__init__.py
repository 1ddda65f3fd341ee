"""Deployment units and their registry."""

from chainstage.units.models import DeploymentUnit, unless_tags, when_tags
from chainstage.units.registry import UnitRegistry, load_units

__all__ = [
    "DeploymentUnit",
    "UnitRegistry",
    "load_units",
    "unless_tags",
    "when_tags",
]
