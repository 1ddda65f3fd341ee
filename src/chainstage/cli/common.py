"""Wiring shared by CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from chainstage.artifacts import ArtifactFactory, JsonRpcExecutor, TemplateCatalog
from chainstage.config import ChainstageConfig, Settings, load_config
from chainstage.core.errors import ConfigurationError
from chainstage.ledger import create_ledger
from chainstage.networks import NetworkRegistry, rpc_connector
from chainstage.orchestration import DeploymentOrchestrator


def parse_list(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma separated option; None stays None."""
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def resolve_network(network: Optional[str], settings: Settings) -> str:
    resolved = network or settings.default_network
    if not resolved:
        raise ConfigurationError("No network given (use --network or CHAINSTAGE_DEFAULT_NETWORK)")
    return resolved


def load_project_config(config_path: Optional[str], settings: Settings) -> ChainstageConfig:
    return load_config(config_path or settings.config_path)


def load_catalog(settings: Settings) -> TemplateCatalog:
    """Templates from the artifacts directory; empty when it does not exist."""
    if not Path(settings.artifacts_dir).is_dir():
        return TemplateCatalog()
    return TemplateCatalog.load_dir(settings.artifacts_dir)


def build_orchestrator(config: ChainstageConfig, settings: Settings) -> DeploymentOrchestrator:
    """Assemble registry, ledger and factory from configuration."""
    networks = NetworkRegistry.from_config(config, connector=rpc_connector(settings))
    executor = JsonRpcExecutor(
        confirmation_timeout=settings.confirmation_timeout,
        poll_interval=settings.confirmation_poll_interval,
    )
    factory = ArtifactFactory(load_catalog(settings), executor)
    return DeploymentOrchestrator(networks, create_ledger(settings), factory)
