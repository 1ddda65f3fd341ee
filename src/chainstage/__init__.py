"""
chainstage - dependency-ordered, idempotent deployments to JSON-RPC networks.
"""

from chainstage.artifacts import ArtifactFactory, JsonRpcExecutor, TemplateCatalog
from chainstage.ledger import JsonFileLedger, MemoryLedger, SqlLedger, create_ledger
from chainstage.networks import NetworkDescriptor, NetworkRegistry
from chainstage.orchestration import (
    Attached,
    DeploymentOrchestrator,
    ExecutionContext,
    Published,
    RunReport,
    UnitOutcome,
)
from chainstage.units import DeploymentUnit, UnitRegistry, unless_tags, when_tags

__version__ = "0.1.0"

__all__ = [
    "ArtifactFactory",
    "Attached",
    "DeploymentOrchestrator",
    "DeploymentUnit",
    "ExecutionContext",
    "JsonFileLedger",
    "JsonRpcExecutor",
    "MemoryLedger",
    "NetworkDescriptor",
    "NetworkRegistry",
    "Published",
    "RunReport",
    "SqlLedger",
    "TemplateCatalog",
    "UnitOutcome",
    "UnitRegistry",
    "create_ledger",
    "unless_tags",
    "when_tags",
]
