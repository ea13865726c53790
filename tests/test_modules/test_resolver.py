"""Tests for module resolution order, closure and failure modes."""

from __future__ import annotations

import pytest

from conftest import make_manifest

from appforge.errors import CyclicDependencyError, ModuleConflictError, UnknownModuleError
from appforge.modules.registry import ModuleRegistry
from appforge.modules.resolver import ModuleResolver

pytestmark = pytest.mark.unit


def _registry(*manifests) -> ModuleRegistry:
    registry = ModuleRegistry()
    for manifest in manifests:
        registry.register(manifest)
    return registry


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestOrdering:
    def test_empty_request_yields_core_only(self):
        result = ModuleResolver(ModuleRegistry.with_builtins()).resolve([])
        assert result.ids == ["core"]

    def test_core_and_database(self):
        result = ModuleResolver(ModuleRegistry.with_builtins()).resolve(["database"])
        assert result.ids == ["core", "database"]

    def test_requested_order_is_kept_without_constraints(self):
        result = ModuleResolver(ModuleRegistry.with_builtins()).resolve(
            ["theme", "auth", "database"]
        )
        assert result.ids == ["core", "theme", "auth", "database"]

    def test_dependency_before_dependent(self, small_registry: ModuleRegistry):
        result = ModuleResolver(small_registry).resolve(["auth"])
        assert result.ids == ["core", "database", "auth"]

    def test_explicit_dependency_keeps_position(self, small_registry: ModuleRegistry):
        result = ModuleResolver(small_registry).resolve(["auth", "database"])
        assert result.ids == ["core", "database", "auth"]

    def test_implicit_dependencies_follow_registration_order(self):
        registry = _registry(
            make_manifest("zeta"),
            make_manifest("alpha"),
            make_manifest("app", requires=("alpha", "zeta")),
            make_manifest("other"),
        )
        result = ModuleResolver(registry).resolve(["other", "app"])
        assert result.ids == ["core", "other", "zeta", "alpha", "app"]

    def test_request_order_kept_around_implicit_dependency(self):
        registry = _registry(
            make_manifest("c"),
            make_manifest("a", requires=("c",)),
            make_manifest("b"),
        )
        assert ModuleResolver(registry).resolve(["a", "b"]).ids == ["core", "c", "a", "b"]
        assert ModuleResolver(registry).resolve(["b", "a"]).ids == ["core", "b", "c", "a"]

    def test_shared_dependency_placed_once_before_first_requirer(self):
        registry = _registry(
            make_manifest("shared"),
            make_manifest("a", requires=("shared",)),
            make_manifest("b", requires=("shared",)),
        )
        assert ModuleResolver(registry).resolve(["b", "a"]).ids == ["core", "shared", "b", "a"]

    def test_transitive_closure(self):
        registry = _registry(
            make_manifest("a", requires=("b",)),
            make_manifest("b", requires=("c",)),
            make_manifest("c"),
        )
        assert ModuleResolver(registry).resolve(["a"]).ids == ["core", "c", "b", "a"]

    def test_duplicate_requests_collapse(self):
        result = ModuleResolver(ModuleRegistry.with_builtins()).resolve(["api", "api", "core"])
        assert result.ids == ["core", "api"]

    def test_resolution_is_deterministic(self):
        registry = ModuleRegistry.with_builtins()
        request = ["push", "auth", "cicd", "deep-linking"]
        first = ModuleResolver(registry).resolve(request).ids
        second = ModuleResolver(registry).resolve(request).ids
        assert first == second
        assert first[0] == "core"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_unknown_requested_module(self):
        with pytest.raises(UnknownModuleError, match="'nonexistent' not found"):
            ModuleResolver(ModuleRegistry.with_builtins()).resolve(["nonexistent"])

    def test_unknown_required_module_names_requirer(self):
        registry = _registry(make_manifest("a", requires=("ghost",)))
        with pytest.raises(UnknownModuleError) as exc_info:
            ModuleResolver(registry).resolve(["a"])
        assert exc_info.value.module_id == "ghost"
        assert exc_info.value.required_by == "a"
        assert "'a' requires 'ghost'" in str(exc_info.value)

    def test_two_node_cycle(self):
        registry = _registry(
            make_manifest("a", requires=("b",)),
            make_manifest("b", requires=("a",)),
        )
        with pytest.raises(CyclicDependencyError) as exc_info:
            ModuleResolver(registry).resolve(["a"])
        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b"}
        assert "Circular dependency" in str(exc_info.value)

    def test_self_cycle(self):
        registry = _registry(make_manifest("loop", requires=("loop",)))
        with pytest.raises(CyclicDependencyError) as exc_info:
            ModuleResolver(registry).resolve(["loop"])
        assert exc_info.value.cycle == ["loop", "loop"]

    def test_cycle_reported_without_bystanders(self):
        registry = _registry(
            make_manifest("entry", requires=("x",)),
            make_manifest("x", requires=("y",)),
            make_manifest("y", requires=("x",)),
        )
        with pytest.raises(CyclicDependencyError) as exc_info:
            ModuleResolver(registry).resolve(["entry"])
        assert "entry" not in exc_info.value.cycle
        assert set(exc_info.value.cycle) == {"x", "y"}

    def test_conflicting_modules(self):
        registry = _registry(
            make_manifest("hive", conflicts_with=("drift",)),
            make_manifest("drift"),
        )
        with pytest.raises(ModuleConflictError, match="'hive' conflicts with 'drift'"):
            ModuleResolver(registry).resolve(["drift", "hive"])

    def test_conflict_not_selected_is_fine(self):
        registry = _registry(
            make_manifest("hive", conflicts_with=("drift",)),
            make_manifest("drift"),
        )
        assert ModuleResolver(registry).resolve(["hive"]).ids == ["core", "hive"]
