"""Composition of module contributions.

Dependency maps are merged with a deliberately simple rule: when two
modules pin the same package, the constraint whose numeric part is larger
wins.  No semantic-version range intersection is attempted; pubspec takes a
single literal constraint per package.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from appforge.errors import IncomparableVersionError, VersionConflictError

from .models import ModuleManifest, ProviderContribution, RouteContribution

_VERSION_BODY_RE = re.compile(r"^\D*(\d+(?:\.\d+)*)")

_MISSING = object()


# ---------------------------------------------------------------------------
# Version comparison
# ---------------------------------------------------------------------------

def parse_version(constraint: str) -> tuple[int, ...] | None:
    """Extract the numeric tuple of a constraint, ignoring any operator prefix.

    ``'^4.4.1'`` -> ``(4, 4, 1)``, ``'>=1.2 <2.0.0'`` -> ``(1, 2)``,
    ``'any'`` -> ``None``.
    """
    match = _VERSION_BODY_RE.match(constraint.strip())
    if match is None:
        return None
    return tuple(int(part) for part in match.group(1).split("."))


def _padded(a: tuple[int, ...], b: tuple[int, ...]) -> tuple[tuple[int, ...], tuple[int, ...]]:
    width = max(len(a), len(b))
    return a + (0,) * (width - len(a)), b + (0,) * (width - len(b))


def pick_newer_version(a: str, b: str) -> str:
    """Return whichever constraint has the larger numeric tuple; ``a`` on ties.

    Missing trailing components count as zero, so ``'^1.0'`` equals
    ``'^1.0.0'``.

    Raises:
        IncomparableVersionError: If either side has no numeric part and the
            two strings differ.
    """
    parsed_a = parse_version(a)
    parsed_b = parse_version(b)
    if parsed_a is None or parsed_b is None:
        if a == b:
            return a
        raise IncomparableVersionError(a, b)
    left, right = _padded(parsed_a, parsed_b)
    return b if right > left else a


# ---------------------------------------------------------------------------
# Dependency map merging
# ---------------------------------------------------------------------------

def normalize_dependency_value(value: Any) -> Any:
    """Coerce YAML scalars (``1.0`` parsed as float, ints) to constraint strings.

    Mappings (``{sdk: flutter}``, git/path references) and ``None`` are kept.
    """
    if value is None or isinstance(value, Mapping):
        return value
    return str(value)


def merge_dependency_value(package: str, existing: Any, incoming: Any) -> Any:
    """Merge one package entry; see :func:`merge_dependency_maps`."""
    if existing is _MISSING:
        return incoming
    if isinstance(incoming, Mapping):
        return incoming
    if isinstance(existing, Mapping):
        return existing
    if incoming is None:
        return existing
    if existing is None:
        return incoming
    try:
        return pick_newer_version(str(existing), str(incoming))
    except IncomparableVersionError as exc:
        raise VersionConflictError(package, exc.a, exc.b) from exc


def merge_dependency_maps(
    base: Mapping[str, Any], incoming: Mapping[str, Any]
) -> dict[str, Any]:
    """Return a new map holding every package of *base* and *incoming*.

    * A package on one side only is kept as is.
    * Structured (mapping) entries are never compared; they win over string
      constraints, and a later structured entry replaces an earlier one.
    * ``None`` (an unconstrained pubspec entry) yields to any other value.
    * Two strings go through :func:`pick_newer_version`.

    Neither argument is mutated.
    """
    merged = dict(base)
    for package, value in incoming.items():
        merged[package] = merge_dependency_value(
            package, merged.get(package, _MISSING), normalize_dependency_value(value)
        )
    return merged


# ---------------------------------------------------------------------------
# ModuleComposer
# ---------------------------------------------------------------------------

@dataclass
class CompositionResult:
    """Wiring contributed by every enabled module."""

    providers: list[ProviderContribution] = field(default_factory=list)
    routes: list[RouteContribution] = field(default_factory=list)
    env_vars: list[str] = field(default_factory=list)

    def as_template_data(self) -> dict[str, Any]:
        """Plain-dict view exposed to templates as ``contributions``."""
        return {
            "providers": [p.model_dump() for p in self.providers],
            "routes": [r.model_dump() for r in self.routes],
            "env_vars": list(self.env_vars),
        }


class ModuleComposer:
    """Folds module contributions together in resolution order."""

    def compose(
        self, modules: Iterable[ModuleManifest], context: Any
    ) -> CompositionResult:
        """Merge contributions of every module in *modules* enabled for *context*.

        Providers are de-duplicated by import path and env vars by name, both
        keeping first-seen order.  Package dependencies are not merged here:
        the engine takes them from each module's rendered
        ``pubspec.partial.yaml``, which can vary with module settings.
        """
        result = CompositionResult()
        seen_imports: set[str] = set()

        for manifest in modules:
            if not manifest.enabled_for(context):
                continue
            contribution = manifest.contributions
            for provider in contribution.providers:
                if provider.import_path not in seen_imports:
                    seen_imports.add(provider.import_path)
                    result.providers.append(provider)
            result.routes.extend(contribution.routes)
            for name in contribution.env_vars:
                if name not in result.env_vars:
                    result.env_vars.append(name)

        return result
