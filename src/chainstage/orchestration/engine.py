"""Deployment orchestrator: runs a unit plan against one network."""

from __future__ import annotations

import inspect
import time
import uuid
from typing import Iterable, List, Optional, Tuple

import structlog

from chainstage.artifacts.factory import ArtifactFactory
from chainstage.ledger.base import DeploymentLedger
from chainstage.networks.models import NetworkConnection
from chainstage.networks.registry import NetworkRegistry
from chainstage.orchestration.context import ExecutionContext
from chainstage.orchestration.resolver import ExecutionPlan, UnitGraphResolver
from chainstage.orchestration.results import ResultCollector, RunReport, UnitOutcome
from chainstage.units.models import DeploymentUnit
from chainstage.units.registry import UnitRegistry

logger = structlog.get_logger()


class DeploymentOrchestrator:
    """Applies deployment units to a network, one unit at a time."""

    def __init__(
        self,
        networks: NetworkRegistry,
        ledger: DeploymentLedger,
        factory: ArtifactFactory,
    ) -> None:
        self._networks = networks
        self._ledger = ledger
        self._factory = factory

    @property
    def ledger(self) -> DeploymentLedger:
        return self._ledger

    def plan(
        self,
        units: UnitRegistry,
        network: str,
        active_tags: Optional[Iterable[str]] = None,
        *,
        only: Optional[Iterable[str]] = None,
    ) -> ExecutionPlan:
        """Resolve the execution plan without running anything."""
        tags = self._active_tags(network, active_tags)
        return UnitGraphResolver(units).plan(tags, only=only)

    def preview(
        self,
        units: UnitRegistry,
        network: str,
        active_tags: Optional[Iterable[str]] = None,
        *,
        force: bool = False,
        only: Optional[Iterable[str]] = None,
    ) -> List[Tuple[DeploymentUnit, bool]]:
        """Planned units paired with whether they would be skipped."""
        plan = self.plan(units, network, active_tags, only=only)
        self._ledger.load(network)
        return [(unit, not force and self._ledger.exists(network, unit.id)) for unit in plan.units]

    async def run(
        self,
        units: UnitRegistry,
        network: str,
        active_tags: Optional[Iterable[str]] = None,
        *,
        force: bool = False,
        only: Optional[Iterable[str]] = None,
    ) -> RunReport:
        """Execute the plan for ``network`` and report every unit's outcome.

        Graph errors (cycles, unknown ids) raise before any unit runs. A
        failing unit stops the run; later units are reported not-attempted
        and earlier ledger entries stay in place.
        """
        plan = self.plan(units, network, active_tags, only=only)
        # Unstorable ids fail here rather than after something is published.
        for unit in plan.units:
            self._ledger.check_key(network, unit.id)
        run_id = uuid.uuid4().hex[:12]
        collector = ResultCollector(network, run_id, plan.active_tags, forced=force)
        started = time.perf_counter()

        with structlog.contextvars.bound_contextvars(network=network, run_id=run_id):
            logger.info(
                "run_started",
                units=len(plan),
                active_tags=sorted(plan.active_tags),
                forced=force,
            )
            # Loaded in full so exists/lookup agree for the whole run.
            self._ledger.load(network)
            connection: Optional[NetworkConnection] = None

            for position, unit in enumerate(plan.units):
                if not force and self._ledger.exists(network, unit.id):
                    logger.info("unit_skipped", unit=unit.id)
                    collector.record(unit.id, UnitOutcome.SKIPPED)
                    continue

                if connection is None:
                    connection = await self._networks.connection_for(network)

                ctx = ExecutionContext(
                    unit, connection, self._ledger, self._factory, plan, force=force
                )
                unit_started = time.perf_counter()
                try:
                    with structlog.contextvars.bound_contextvars(unit=unit.id):
                        logger.info("unit_started", unit=unit.id)
                        result = unit.body(ctx)
                        if inspect.isawaitable(result):
                            await result
                except Exception as e:
                    duration = time.perf_counter() - unit_started
                    logger.error(
                        "unit_failed",
                        unit=unit.id,
                        error_type=type(e).__name__,
                        error=str(e),
                        exc_info=True,
                    )
                    collector.record_error(unit.id, e, duration=duration)
                    collector.record_not_attempted(plan.units[position + 1 :])
                    break

                outcome = UnitOutcome.NEWLY_PUBLISHED if ctx.published else UnitOutcome.ATTACHED
                collector.record(
                    unit.id,
                    outcome,
                    duration=time.perf_counter() - unit_started,
                    artifacts=ctx.artifacts,
                )
                logger.info("unit_completed", unit=unit.id, outcome=str(outcome))

            report = collector.finalize(time.perf_counter() - started)
            logger.info(
                "run_completed",
                succeeded=report.succeeded,
                duration_seconds=round(report.duration_seconds, 3),
                **{str(o): len(report.by_outcome(o)) for o in UnitOutcome},
            )
        return report

    async def fixture(
        self,
        units: UnitRegistry,
        network: str,
        ids: Iterable[str],
        *,
        force: bool = False,
    ) -> RunReport:
        """Deploy exactly ``ids`` and their dependencies, ignoring tags.

        Intended for test harnesses; raises UnitExecutionError on failure.
        """
        report = await self.run(units, network, (), force=force, only=list(ids))
        report.raise_for_failure()
        return report

    def _active_tags(self, network: str, active_tags: Optional[Iterable[str]]) -> frozenset[str]:
        if active_tags is not None:
            return frozenset(active_tags)
        # Fall back to the tags configured on the network itself.
        if network in self._networks:
            return frozenset(self._networks.descriptor(network).tags)
        return frozenset()
