"""Result types for deployment runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Dict, Iterable, List, Optional

from chainstage.core.errors import UnitExecutionError
from chainstage.units.models import DeploymentUnit


class UnitOutcome(StrEnum):
    """What happened to a unit during a run."""

    SKIPPED = "skipped"
    NEWLY_PUBLISHED = "newly-published"
    ATTACHED = "attached"
    FAILED = "failed"
    NOT_ATTEMPTED = "not-attempted"


@dataclass
class UnitReport:
    """Outcome of one unit."""

    unit_id: str
    outcome: UnitOutcome
    error: Optional[BaseException] = None
    duration_seconds: float = 0.0
    artifacts: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "unit": self.unit_id,
            "outcome": str(self.outcome),
            "duration_seconds": round(self.duration_seconds, 3),
        }
        if self.artifacts:
            data["artifacts"] = dict(self.artifacts)
        if self.error is not None:
            data["error"] = f"{type(self.error).__name__}: {self.error}"
        return data


@dataclass
class RunReport:
    """Ordered per-unit outcomes of one run against one network."""

    network: str
    run_id: str
    units: List[UnitReport] = field(default_factory=list)
    active_tags: List[str] = field(default_factory=list)
    forced: bool = False
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        """Whether every attempted unit finished without error."""
        return self.failure is None

    @property
    def failure(self) -> Optional[UnitReport]:
        return next((u for u in self.units if u.outcome == UnitOutcome.FAILED), None)

    @property
    def outcomes(self) -> Dict[str, UnitOutcome]:
        return {u.unit_id: u.outcome for u in self.units}

    def by_outcome(self, outcome: UnitOutcome) -> List[str]:
        return [u.unit_id for u in self.units if u.outcome == outcome]

    def raise_for_failure(self) -> None:
        """Raise UnitExecutionError for the failed unit, if any."""
        failure = self.failure
        if failure is None:
            return
        cause = failure.error or RuntimeError("unit failed")
        raise UnitExecutionError(failure.unit_id, cause) from cause

    def to_dict(self) -> Dict[str, Any]:
        return {
            "network": self.network,
            "run_id": self.run_id,
            "active_tags": list(self.active_tags),
            "forced": self.forced,
            "succeeded": self.succeeded,
            "duration_seconds": round(self.duration_seconds, 3),
            "units": [u.to_dict() for u in self.units],
        }


class ResultCollector:
    """Aggregates unit outcomes during execution."""

    def __init__(
        self,
        network: str,
        run_id: str,
        active_tags: Iterable[str] = (),
        forced: bool = False,
    ) -> None:
        self._result = RunReport(
            network=network,
            run_id=run_id,
            active_tags=sorted(active_tags),
            forced=forced,
        )

    def record(
        self,
        unit_id: str,
        outcome: UnitOutcome,
        *,
        duration: float = 0.0,
        artifacts: Optional[Dict[str, str]] = None,
    ) -> None:
        self._result.units.append(
            UnitReport(
                unit_id=unit_id,
                outcome=outcome,
                duration_seconds=duration,
                artifacts=dict(artifacts or {}),
            )
        )

    def record_error(self, unit_id: str, error: BaseException, *, duration: float = 0.0) -> None:
        self._result.units.append(
            UnitReport(
                unit_id=unit_id,
                outcome=UnitOutcome.FAILED,
                error=error,
                duration_seconds=duration,
            )
        )

    def record_not_attempted(self, units: Iterable[DeploymentUnit]) -> None:
        for unit in units:
            self._result.units.append(UnitReport(unit.id, UnitOutcome.NOT_ATTEMPTED))

    def finalize(self, duration: float) -> RunReport:
        """Return the final report with duration set."""
        self._result.duration_seconds = duration
        return self._result
