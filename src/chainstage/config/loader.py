"""
Configuration file loading.

Search order:
1. Explicit path (--config flag or CHAINSTAGE_CONFIG_PATH)
2. chainstage.yaml (project root)
3. .chainstage/config.yaml (project root)
4. ~/.chainstage/config.yaml (user home)
5. Empty configuration
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError

from chainstage.core.errors import ConfigurationError
from chainstage.networks.models import NetworkDescriptor

logger = structlog.get_logger()


class ChainstageConfig(BaseModel):
    """Project configuration: the networks a deployment may target."""

    networks: Dict[str, NetworkDescriptor] = Field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChainstageConfig:
        networks: Dict[str, NetworkDescriptor] = {}
        for network_id, spec in (data.get("networks") or {}).items():
            # A bare list is shorthand for the endpoint list.
            if isinstance(spec, list):
                spec = {"endpoints": spec}
            spec = dict(spec or {})
            spec.setdefault("id", str(network_id))
            networks[str(network_id)] = NetworkDescriptor(**spec)
        return cls(networks=networks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "networks": {
                network_id: descriptor.model_dump(exclude={"id"})
                for network_id, descriptor in self.networks.items()
            }
        }


def get_config_path(explicit_path: str | Path | None = None) -> Path | None:
    """
    Find the configuration file to use.

    Returns:
        Path to config file or None if not found
    """
    if explicit_path:
        return Path(explicit_path)

    candidates = [
        Path.cwd() / "chainstage.yaml",
        Path.cwd() / ".chainstage" / "config.yaml",
        Path.home() / ".chainstage" / "config.yaml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


def load_config(path: str | Path | None = None) -> ChainstageConfig:
    """
    Load configuration from file, or return an empty configuration.

    An explicitly requested file must exist and parse; discovered files that
    fail to parse raise as well, since a silently empty network list would
    make every run fail later with a less useful error.
    """
    config_path = get_config_path(path)
    if config_path is None:
        logger.debug("no_config_found")
        return ChainstageConfig()

    if not config_path.exists():
        raise ConfigurationError(
            f"Config file not found: {config_path}", {"path": str(config_path)}
        )

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = ChainstageConfig.from_dict(data)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in {config_path}: {e}", {"path": str(config_path)}
        ) from e
    except (ValidationError, TypeError, AttributeError) as e:
        raise ConfigurationError(
            f"Invalid network configuration in {config_path}: {e}",
            {"path": str(config_path)},
        ) from e

    logger.debug("loaded_config", path=str(config_path), networks=sorted(config.networks))
    return config


def save_config(config: ChainstageConfig, path: str | Path) -> None:
    """Write configuration back to YAML."""
    target_path = Path(path)
    target_path.parent.mkdir(parents=True, exist_ok=True)

    with open(target_path, "w") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)

    logger.info("saved_config", path=str(target_path))
