"""
Deployment unit model.

A unit is one idempotent step of a deployment: an identifier, the units it
depends on, the environment tags it runs under, and a body that receives an
ExecutionContext.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    FrozenSet,
    Iterable,
    Optional,
    Tuple,
    Union,
)

if TYPE_CHECKING:
    from chainstage.orchestration.context import ExecutionContext

UnitBody = Callable[["ExecutionContext"], Union[Awaitable[Any], Any]]
DependencyFn = Callable[[FrozenSet[str]], Iterable[str]]
Dependencies = Union[Tuple[str, ...], DependencyFn]


@dataclass(frozen=True)
class DeploymentUnit:
    """One step of a deployment."""

    id: str
    body: UnitBody
    dependencies: Dependencies = ()
    tags: FrozenSet[str] = field(default_factory=frozenset)
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Deployment unit id is required")
        if not callable(self.dependencies):
            object.__setattr__(self, "dependencies", tuple(self.dependencies))
        object.__setattr__(self, "tags", frozenset(self.tags))

    @property
    def conditional(self) -> bool:
        return callable(self.dependencies)

    def effective_dependencies(self, active_tags: Iterable[str]) -> Tuple[str, ...]:
        """Dependencies in force for a run with the given active tags."""
        deps = self.dependencies
        if callable(deps):
            deps = deps(frozenset(active_tags))
        # dict preserves declaration order while dropping duplicates
        return tuple(dict.fromkeys(deps))

    def matches(self, active_tags: Iterable[str]) -> bool:
        return not self.tags.isdisjoint(active_tags)


def unless_tags(tags: Iterable[str], dependencies: Iterable[str]) -> DependencyFn:
    """Dependencies that apply only when none of ``tags`` is active.

    ``unless_tags(["prod"], [TREASURY])`` keeps the treasury dependency for
    local and test runs and drops it for production, where the treasury
    already exists outside this deployment.
    """
    excluded = frozenset(tags)
    deps = tuple(dependencies)

    def resolve(active_tags: FrozenSet[str]) -> Tuple[str, ...]:
        return () if excluded & active_tags else deps

    return resolve


def when_tags(tags: Iterable[str], dependencies: Iterable[str]) -> DependencyFn:
    """Dependencies that apply only when one of ``tags`` is active."""
    required = frozenset(tags)
    deps = tuple(dependencies)

    def resolve(active_tags: FrozenSet[str]) -> Tuple[str, ...]:
        return deps if required & active_tags else ()

    return resolve
