"""Orchestration package: ordered, idempotent deployment runs."""

from chainstage.orchestration.context import Attached, DeployResult, ExecutionContext, Published
from chainstage.orchestration.engine import DeploymentOrchestrator
from chainstage.orchestration.resolver import ExecutionPlan, UnitGraphResolver
from chainstage.orchestration.results import (
    ResultCollector,
    RunReport,
    UnitOutcome,
    UnitReport,
)

__all__ = [
    "Attached",
    "DeployResult",
    "DeploymentOrchestrator",
    "ExecutionContext",
    "ExecutionPlan",
    "Published",
    "ResultCollector",
    "RunReport",
    "UnitGraphResolver",
    "UnitOutcome",
    "UnitReport",
]
