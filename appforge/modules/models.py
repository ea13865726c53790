"""Pydantic v2 models describing scaffolding modules.

A ``ModuleManifest`` is the static description of one optional feature of a
generated app: what it is called, what it requires, where its templates live
and what it contributes (pubspec dependencies, Riverpod providers, go_router
routes, environment variables).  Manifests are frozen once constructed.
"""

from __future__ import annotations

from typing import Annotated, Any, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

ModuleId = Annotated[str, StringConstraints(min_length=1)]


# ---------------------------------------------------------------------------
# Contributions
# ---------------------------------------------------------------------------

class ProviderContribution(BaseModel):
    """A Riverpod provider contributed by a module."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Provider variable name, e.g. 'authRepositoryProvider'")
    import_path: str = Field(..., description="Dart import path of the provider")


class RouteContribution(BaseModel):
    """A go_router route contributed by a module."""
    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Route path, e.g. '/login'")
    name: str = Field(..., description="Route name for named navigation")
    import_path: str = Field(..., description="Dart import path of the page widget")


class ModuleContribution(BaseModel):
    """Everything a module adds to the generated project."""
    model_config = ConfigDict(frozen=True)

    dependencies: dict[str, Any] = Field(default_factory=dict)
    dev_dependencies: dict[str, Any] = Field(default_factory=dict)
    providers: tuple[ProviderContribution, ...] = ()
    routes: tuple[RouteContribution, ...] = ()
    env_vars: tuple[str, ...] = ()


class ModuleQuestion(BaseModel):
    """A question asked while configuring a module interactively."""
    model_config = ConfigDict(frozen=True)

    id: str
    message: str
    type: Literal["text", "select", "confirm"] = "text"
    options: tuple[tuple[str, str], ...] = ()
    default: Optional[str | bool] = None


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------

class ModuleManifest(BaseModel):
    """Static, immutable description of a scaffolding module."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable kebab-case identifier")
    name: str = Field(..., min_length=1, description="Human-readable name")
    description: str = Field(default="")
    requires: tuple[ModuleId, ...] = Field(
        default=(), description="Module ids that must be present before this one"
    )
    conflicts_with: tuple[ModuleId, ...] = Field(
        default=(), description="Module ids that cannot be selected together with this one"
    )
    template_dir: Optional[Annotated[str, StringConstraints(min_length=1)]] = Field(
        default=None,
        description="Template tree location, absolute or relative to the bundled templates root",
    )
    phase: int = Field(
        default=2, ge=1, le=4, strict=True, description="Roadmap phase (1-4) of the module"
    )
    always_included: bool = Field(default=False)
    contributions: ModuleContribution = Field(default_factory=ModuleContribution)
    questions: tuple[ModuleQuestion, ...] = ()
    is_enabled: Optional[Callable[..., bool]] = Field(default=None, exclude=True)

    @property
    def context_key(self) -> str:
        """Key of this module's settings in ``ProjectContext.modules``."""
        return module_context_key(self.id)

    def enabled_for(self, context: Any) -> bool:
        """Return whether this module participates in a run for *context*."""
        if self.is_enabled is None:
            return True
        return bool(self.is_enabled(context))


def module_context_key(module_id: str) -> str:
    """``'deep-linking'`` -> ``'deep_linking'``."""
    return module_id.replace("-", "_")


def module_enabled(key: str) -> Callable[..., bool]:
    """Build the standard enablement predicate for the module settings at *key*."""

    def _decide(context: Any) -> bool:
        value = context.modules.get(key)
        return value is not False and value is not None

    _decide.__name__ = f"module_enabled_{key}"
    return _decide
