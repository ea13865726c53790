"""Module registry -- the single lookup surface for module manifests.

The registry is append-only: manifests are registered once at start-up
(built-in catalog, then any external packages) and never removed.  The
synthetic ``core`` manifest is registered on construction.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Iterator, ValuesView
from typing import Any, Callable, Optional

from appforge.errors import DuplicateModuleError, ModuleError, UnknownModuleError

from .definitions import BUILTIN_MANIFESTS, CORE_MANIFEST
from .models import ModuleManifest
from .validator import validate_external_manifest

logger = logging.getLogger(__name__)

ExternalLoader = Callable[[str], Any]


class ModuleRegistry:
    """In-memory table of module manifests keyed by id, in registration order."""

    def __init__(self, *, include_core: bool = True) -> None:
        self._modules: dict[str, ModuleManifest] = {}
        if include_core:
            self.register(CORE_MANIFEST)

    @classmethod
    def with_builtins(cls) -> "ModuleRegistry":
        """Create a registry holding ``core`` plus every built-in optional module."""
        registry = cls()
        for manifest in BUILTIN_MANIFESTS:
            registry.register(manifest)
        return registry

    # -- Registration ------------------------------------------------------

    def register(self, manifest: Any, source: str = "registry") -> ModuleManifest:
        """Validate and add a manifest.

        Raises:
            InvalidManifestError: If *manifest* fails structural validation.
            DuplicateModuleError: If its id is already registered.
        """
        trusted = validate_external_manifest(manifest, source)
        if trusted.id in self._modules:
            raise DuplicateModuleError(trusted.id)
        self._modules[trusted.id] = trusted
        logger.debug("Registered module %s from %s", trusted.id, source)
        return trusted

    def load_external(
        self, package_name: str, loader: Optional[ExternalLoader] = None
    ) -> ModuleManifest:
        """Import *package_name* and register the ``manifest`` it exports.

        *loader* defaults to :func:`importlib.import_module` and exists so
        tests can supply fake packages.
        """
        effective_loader = loader or importlib.import_module
        try:
            package = effective_loader(package_name)
        except ImportError as exc:
            raise ModuleError(
                f"Cannot load external module package '{package_name}': {exc}"
            ) from exc

        manifest = getattr(package, "manifest", None)
        if manifest is None and isinstance(package, dict):
            manifest = package.get("manifest")
        registered = self.register(manifest, source=package_name)
        logger.info("Loaded external module %s from %s", registered.id, package_name)
        return registered

    # -- Lookup ------------------------------------------------------------

    def get(self, module_id: str) -> Optional[ModuleManifest]:
        """Return the manifest for *module_id*, or ``None`` when unknown."""
        return self._modules.get(module_id)

    def require(self, module_id: str) -> ModuleManifest:
        """Return the manifest for *module_id* or raise ``UnknownModuleError``."""
        manifest = self._modules.get(module_id)
        if manifest is None:
            raise UnknownModuleError(module_id)
        return manifest

    def has(self, module_id: str) -> bool:
        return module_id in self._modules

    def all(self) -> ValuesView[ModuleManifest]:
        """Lazy, restartable view of every manifest in registration order."""
        return self._modules.values()

    def always_included(self) -> list[ModuleManifest]:
        return [m for m in self._modules.values() if m.always_included]

    def optional(self) -> list[ModuleManifest]:
        return [m for m in self._modules.values() if not m.always_included]

    def optional_ids(self) -> list[str]:
        return [m.id for m in self.optional()]

    # -- Dunder helpers ----------------------------------------------------

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._modules

    def __iter__(self) -> Iterator[ModuleManifest]:
        return iter(self._modules.values())

    def __len__(self) -> int:
        return len(self._modules)
