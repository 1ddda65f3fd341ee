"""
Unit graph resolver.

Turns a unit registry into an execution plan for one run:

1. Conditional dependencies are evaluated once against the active tags.
2. Unknown dependency ids and cycles are rejected before anything executes.
3. Units whose tags intersect the active tags are selected (or exactly the
   requested ids in fixture mode), then their dependencies are pulled in
   transitively whatever their own tags.
4. The selection is ordered topologically; ties break by declaration order.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

import structlog

from chainstage.core.errors import CyclicDependencyError, UnresolvedDependencyError
from chainstage.units.models import DeploymentUnit
from chainstage.units.registry import UnitRegistry

logger = structlog.get_logger()

_WHITE, _GRAY, _BLACK = 0, 1, 2


@dataclass(frozen=True)
class ExecutionPlan:
    """Ordered units for one run plus the dependency edges they were ordered by."""

    units: Tuple[DeploymentUnit, ...]
    dependencies: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    active_tags: FrozenSet[str] = frozenset()

    @property
    def ids(self) -> List[str]:
        return [unit.id for unit in self.units]

    def __len__(self) -> int:
        return len(self.units)

    def closure(self, unit_id: str) -> Set[str]:
        """Transitive dependencies of a unit."""
        seen: Set[str] = set()
        stack = list(self.dependencies.get(unit_id, ()))
        while stack:
            dep = stack.pop()
            if dep in seen:
                continue
            seen.add(dep)
            stack.extend(self.dependencies.get(dep, ()))
        return seen


class UnitGraphResolver:
    """Computes the execution plan for a registry of deployment units."""

    def __init__(self, registry: UnitRegistry) -> None:
        self._registry = registry

    def plan(
        self,
        active_tags: Iterable[str],
        only: Optional[Iterable[str]] = None,
    ) -> ExecutionPlan:
        active = frozenset(active_tags)
        if only is not None:
            only = list(only)
        index = {unit_id: i for i, unit_id in enumerate(self._registry.ids())}
        edges = {unit.id: unit.effective_dependencies(active) for unit in self._registry}

        self._check_known(edges)
        self._check_acyclic(edges)

        roots = self._roots(active, only)
        selected = self._with_dependencies(roots, edges)
        ordered = self._order(selected, edges, index)

        logger.debug(
            "plan_resolved",
            active_tags=sorted(active),
            only=sorted(only) if only is not None else None,
            order=ordered,
        )
        return ExecutionPlan(
            units=tuple(self._registry.get(unit_id) for unit_id in ordered),  # type: ignore[misc]
            dependencies={unit_id: edges[unit_id] for unit_id in ordered},
            active_tags=active,
        )

    def _check_known(self, edges: Dict[str, Tuple[str, ...]]) -> None:
        for unit_id, deps in edges.items():
            for dep in deps:
                if dep not in edges:
                    raise UnresolvedDependencyError(
                        dep,
                        f"Unit '{unit_id}' depends on unknown unit '{dep}'",
                        unit=unit_id,
                    )

    def _check_acyclic(self, edges: Dict[str, Tuple[str, ...]]) -> None:
        """Iterative three-colour DFS; raises with the offending path."""
        color = {unit_id: _WHITE for unit_id in edges}

        for root in edges:
            if color[root] != _WHITE:
                continue
            color[root] = _GRAY
            path = [root]
            stack = [(root, iter(edges[root]))]

            while stack:
                node, pending = stack[-1]
                for dep in pending:
                    if color[dep] == _GRAY:
                        raise CyclicDependencyError(path[path.index(dep):] + [dep])
                    if color[dep] == _WHITE:
                        color[dep] = _GRAY
                        path.append(dep)
                        stack.append((dep, iter(edges[dep])))
                        break
                else:
                    color[node] = _BLACK
                    path.pop()
                    stack.pop()

    def _roots(self, active: FrozenSet[str], only: Optional[Iterable[str]]) -> List[str]:
        if only is None:
            return [unit.id for unit in self._registry if unit.matches(active)]

        roots = list(dict.fromkeys(only))
        for unit_id in roots:
            if unit_id not in self._registry:
                raise UnresolvedDependencyError(unit_id, f"Unknown deployment unit '{unit_id}'")
        return roots

    def _with_dependencies(
        self, roots: List[str], edges: Dict[str, Tuple[str, ...]]
    ) -> Set[str]:
        selected: Set[str] = set()
        stack = list(roots)
        while stack:
            unit_id = stack.pop()
            if unit_id in selected:
                continue
            selected.add(unit_id)
            stack.extend(edges[unit_id])
        return selected

    def _order(
        self,
        selected: Set[str],
        edges: Dict[str, Tuple[str, ...]],
        index: Dict[str, int],
    ) -> List[str]:
        """Kahn's algorithm with a heap keyed on declaration index."""
        remaining = {unit_id: len(edges[unit_id]) for unit_id in selected}
        dependents: Dict[str, List[str]] = {unit_id: [] for unit_id in selected}
        for unit_id in selected:
            for dep in edges[unit_id]:
                dependents[dep].append(unit_id)

        ready = [(index[unit_id], unit_id) for unit_id, count in remaining.items() if count == 0]
        heapq.heapify(ready)

        ordered: List[str] = []
        while ready:
            _, unit_id = heapq.heappop(ready)
            ordered.append(unit_id)
            for dependent in dependents[unit_id]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, (index[dependent], dependent))

        if len(ordered) != len(selected):
            # Only reachable if a cycle slipped past the full-graph check.
            raise CyclicDependencyError(sorted(selected - set(ordered)))
        return ordered
