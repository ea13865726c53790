"""Module manifests, registry, resolution and composition.

Quick usage::

    from appforge.modules import ModuleRegistry, ModuleResolver

    registry = ModuleRegistry.with_builtins()
    resolved = ModuleResolver(registry).resolve(["auth", "api"])
    [m.id for m in resolved.ordered]   # ['core', 'auth', 'api']
"""

from appforge.modules.composer import (
    CompositionResult,
    ModuleComposer,
    merge_dependency_maps,
    pick_newer_version,
)
from appforge.modules.models import (
    ModuleContribution,
    ModuleManifest,
    ModuleQuestion,
    ProviderContribution,
    RouteContribution,
    module_context_key,
    module_enabled,
)
from appforge.modules.registry import ModuleRegistry
from appforge.modules.resolver import ModuleResolver, ResolveResult
from appforge.modules.validator import validate_external_manifest

__all__ = [
    "CompositionResult",
    "ModuleComposer",
    "ModuleContribution",
    "ModuleManifest",
    "ModuleQuestion",
    "ModuleRegistry",
    "ModuleResolver",
    "ProviderContribution",
    "ResolveResult",
    "RouteContribution",
    "merge_dependency_maps",
    "module_context_key",
    "module_enabled",
    "pick_newer_version",
    "validate_external_manifest",
]
