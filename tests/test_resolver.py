"""Tests for the unit graph resolver."""

import pytest
from chainstage.core.errors import CyclicDependencyError, UnresolvedDependencyError
from chainstage.orchestration.resolver import UnitGraphResolver
from chainstage.units import DeploymentUnit, UnitRegistry, unless_tags


async def noop(ctx):
    return None


def make_registry(*specs):
    """specs: (id, deps, tags) tuples in declaration order."""
    return UnitRegistry(
        DeploymentUnit(id=uid, body=noop, dependencies=deps, tags=frozenset(tags))
        for uid, deps, tags in specs
    )


class TestOrdering:
    def test_dependencies_come_first(self):
        registry = make_registry(
            ("C", ["B"], ["test"]),
            ("B", ["A"], ["test"]),
            ("A", [], ["test"]),
        )
        plan = UnitGraphResolver(registry).plan({"test"})
        assert plan.ids == ["A", "B", "C"]

    def test_ties_break_by_declaration_order(self):
        registry = make_registry(
            ("A", [], ["test"]),
            ("B", ["A"], ["test"]),
            ("C", ["A"], ["test"]),
        )
        assert UnitGraphResolver(registry).plan({"test"}).ids == ["A", "B", "C"]

        reordered = make_registry(
            ("A", [], ["test"]),
            ("C", ["A"], ["test"]),
            ("B", ["A"], ["test"]),
        )
        assert UnitGraphResolver(reordered).plan({"test"}).ids == ["A", "C", "B"]

    def test_independent_roots_keep_declaration_order(self):
        registry = make_registry(
            ("z", [], ["test"]),
            ("y", [], ["test"]),
            ("x", ["z"], ["test"]),
        )
        assert UnitGraphResolver(registry).plan({"test"}).ids == ["z", "y", "x"]

    def test_diamond(self):
        registry = make_registry(
            ("D", ["B", "C"], ["test"]),
            ("B", ["A"], ["test"]),
            ("C", ["A"], ["test"]),
            ("A", [], ["test"]),
        )
        order = UnitGraphResolver(registry).plan({"test"}).ids
        assert order == ["A", "B", "C", "D"]

    def test_order_is_deterministic(self):
        specs = [
            (f"u{i}", [f"u{j}" for j in range(i) if (i + j) % 3 == 0], ["test"])
            for i in range(20)
        ]
        registry = make_registry(*specs)
        resolver = UnitGraphResolver(registry)
        first = resolver.plan({"test"}).ids
        for _ in range(5):
            assert resolver.plan({"test"}).ids == first

        position = {uid: i for i, uid in enumerate(first)}
        for uid, deps, _ in specs:
            for dep in deps:
                assert position[dep] < position[uid]


class TestCycles:
    def test_two_unit_cycle(self):
        registry = make_registry(("A", ["B"], ["test"]), ("B", ["A"], ["test"]))
        with pytest.raises(CyclicDependencyError) as exc:
            UnitGraphResolver(registry).plan({"test"})
        assert exc.value.cycle == ["A", "B", "A"]

    def test_self_dependency(self):
        registry = make_registry(("A", ["A"], ["test"]))
        with pytest.raises(CyclicDependencyError) as exc:
            UnitGraphResolver(registry).plan({"test"})
        assert exc.value.cycle == ["A", "A"]

    def test_cycle_outside_active_tags_still_rejected(self):
        registry = make_registry(
            ("A", [], ["test"]),
            ("P", ["Q"], ["prod"]),
            ("Q", ["P"], ["prod"]),
        )
        with pytest.raises(CyclicDependencyError):
            UnitGraphResolver(registry).plan({"test"})

    def test_long_cycle_path(self):
        registry = make_registry(
            ("A", ["B"], ["test"]),
            ("B", ["C"], ["test"]),
            ("C", ["A"], ["test"]),
        )
        with pytest.raises(CyclicDependencyError) as exc:
            UnitGraphResolver(registry).plan({"test"})
        assert "A -> B -> C -> A" in str(exc.value)


class TestSelection:
    def test_excludes_units_without_active_tag(self):
        registry = make_registry(
            ("A", [], ["test"]),
            ("D", [], ["prod"]),
        )
        assert UnitGraphResolver(registry).plan({"test"}).ids == ["A"]

    def test_dependencies_pulled_in_regardless_of_tags(self):
        registry = make_registry(
            ("base", [], ["prod"]),
            ("mid", ["base"], ["local"]),
            ("top", ["mid"], ["test"]),
        )
        assert UnitGraphResolver(registry).plan({"test"}).ids == ["base", "mid", "top"]

    def test_only_ignores_tags_and_adds_dependencies(self):
        registry = make_registry(
            ("A", [], ["prod"]),
            ("B", ["A"], ["prod"]),
            ("C", [], ["test"]),
        )
        plan = UnitGraphResolver(registry).plan(set(), only=["B"])
        assert plan.ids == ["A", "B"]

    def test_only_with_unknown_unit(self):
        registry = make_registry(("A", [], ["test"]))
        with pytest.raises(UnresolvedDependencyError):
            UnitGraphResolver(registry).plan(set(), only=["missing"])

    def test_unknown_dependency_rejected(self):
        registry = make_registry(("A", ["ghost"], ["test"]))
        with pytest.raises(UnresolvedDependencyError) as exc:
            UnitGraphResolver(registry).plan({"test"})
        assert exc.value.identifier == "ghost"
        assert exc.value.details["unit"] == "A"

    def test_empty_selection(self):
        registry = make_registry(("A", [], ["prod"]))
        assert UnitGraphResolver(registry).plan({"test"}).ids == []


class TestConditionalDependencies:
    def test_unless_tags_drops_dependencies_in_prod(self):
        registry = UnitRegistry(
            [
                DeploymentUnit(id="treasury", body=noop, tags=frozenset({"local", "test"})),
                DeploymentUnit(
                    id="token",
                    body=noop,
                    dependencies=unless_tags(["prod"], ["treasury"]),
                    tags=frozenset({"local", "test", "prod"}),
                ),
            ]
        )
        resolver = UnitGraphResolver(registry)

        assert resolver.plan({"test"}).ids == ["treasury", "token"]
        prod = resolver.plan({"prod"})
        assert prod.ids == ["token"]
        assert prod.dependencies["token"] == ()

    def test_conditional_dependencies_evaluated_once_per_plan(self):
        calls = []

        def deps(active):
            calls.append(active)
            return ["A"]

        registry = UnitRegistry(
            [
                DeploymentUnit(id="A", body=noop, tags=frozenset({"test"})),
                DeploymentUnit(id="B", body=noop, dependencies=deps, tags=frozenset({"test"})),
            ]
        )
        plan = UnitGraphResolver(registry).plan({"test"})
        assert plan.ids == ["A", "B"]
        assert calls == [frozenset({"test"})]

    def test_closure(self):
        registry = make_registry(
            ("A", [], ["test"]),
            ("B", ["A"], ["test"]),
            ("C", ["B"], ["test"]),
        )
        plan = UnitGraphResolver(registry).plan({"test"})
        assert plan.closure("C") == {"A", "B"}
        assert plan.closure("A") == set()
