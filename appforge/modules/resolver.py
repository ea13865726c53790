"""Module resolution: dependency closure plus deterministic topological order."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from appforge.errors import CyclicDependencyError, ModuleConflictError, UnknownModuleError

from .models import ModuleManifest
from .registry import ModuleRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolveResult:
    """Modules in dependency order: every module after everything it requires."""

    ordered: tuple[ModuleManifest, ...]

    @property
    def ids(self) -> list[str]:
        return [m.id for m in self.ordered]


class ModuleResolver:
    """Resolves a module selection against a ``ModuleRegistry``.

    Always-included modules come first, then each requested module in request
    order, each preceded by whatever it requires that is not placed yet.
    Requirements are visited in registration order.
    """

    def __init__(self, registry: ModuleRegistry) -> None:
        self.registry = registry

    def resolve(self, requested: Iterable[str]) -> ResolveResult:
        """Resolve *requested* module ids.

        Raises:
            UnknownModuleError: A requested or required id is not registered.
            ModuleConflictError: Two included modules conflict.
            CyclicDependencyError: ``requires`` edges form a cycle.
        """
        requested_ids = list(dict.fromkeys(requested))
        for module_id in requested_ids:
            if not self.registry.has(module_id):
                raise UnknownModuleError(module_id)

        seeds = [m.id for m in self.registry.always_included()]
        seeds += [i for i in requested_ids if i not in seeds]
        included = self._close_over_requires(seeds)

        self._check_conflicts(included)
        ordered = self._post_order(seeds)

        logger.debug("Resolved modules: %s", ", ".join(m.id for m in ordered))
        return ResolveResult(ordered=tuple(ordered))

    # -- Closure -----------------------------------------------------------

    def _close_over_requires(self, seeds: list[str]) -> list[str]:
        included = list(seeds)
        seen = set(seeds)
        index = 0
        while index < len(included):
            manifest = self.registry.require(included[index])
            for dep_id in manifest.requires:
                if not self.registry.has(dep_id):
                    raise UnknownModuleError(dep_id, required_by=manifest.id)
                if dep_id not in seen:
                    seen.add(dep_id)
                    included.append(dep_id)
            index += 1
        return included

    def _check_conflicts(self, included: list[str]) -> None:
        members = set(included)
        for module_id in included:
            for conflict_id in self.registry.require(module_id).conflicts_with:
                if conflict_id in members:
                    raise ModuleConflictError(module_id, conflict_id)

    # -- Ordering ----------------------------------------------------------

    def _post_order(self, seeds: list[str]) -> list[ModuleManifest]:
        """Depth-first post-order from *seeds*; a back edge is a cycle."""
        registration = {m.id: i for i, m in enumerate(self.registry.all())}
        ordered: list[ModuleManifest] = []
        placed: set[str] = set()
        path: list[str] = []

        def visit(module_id: str) -> None:
            if module_id in placed:
                return
            if module_id in path:
                raise CyclicDependencyError(path[path.index(module_id):] + [module_id])
            path.append(module_id)
            manifest = self.registry.require(module_id)
            for dep_id in sorted(set(manifest.requires), key=registration.__getitem__):
                visit(dep_id)
            path.pop()
            placed.add(module_id)
            ordered.append(manifest)

        for module_id in seeds:
            visit(module_id)
        return ordered
