"""Resolved project state for one scaffold run.

``ProjectContext`` is built from a validated ``ForgeConfig`` and is what the
scaffold engine and module predicates look at.  ``TemplateContext`` is the
read-only view handed to templates; it is rebuilt on every run.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from appforge.config import ForgeConfig, ModuleSettings, OverwritePolicy

ModuleValue = Union[Literal[False], dict[str, Any]]


class PostProcessorSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    dart_format: bool = True
    flutter_pub_get: bool = True
    build_runner: bool = False


class ScaffoldSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    dry_run: bool = False
    overwrite: OverwritePolicy = "ask"
    post_processors: PostProcessorSettings = Field(default_factory=PostProcessorSettings)


class ProjectContext(BaseModel):
    """Everything one scaffold run needs to know about the project."""

    model_config = ConfigDict(frozen=True)

    project_name: str
    org_id: str
    description: str = ""
    platforms: tuple[str, ...] = ("android", "ios")
    modules: dict[str, ModuleValue] = Field(default_factory=dict)
    scaffold: ScaffoldSettings = Field(default_factory=ScaffoldSettings)
    output_dir: Path = Field(default=Path("."))
    external_modules: tuple[str, ...] = ()

    def module_settings(self, key: str) -> ModuleValue:
        """Settings for the module stored at *key*, ``False`` when disabled or absent."""
        value = self.modules.get(key)
        return False if value is None else value


def _resolve_module(value: Any) -> ModuleValue:
    if value is None or value is False:
        return False
    if isinstance(value, ModuleSettings):
        if not value.enabled:
            return False
        return value.model_dump(exclude={"enabled"})
    if isinstance(value, dict):
        if value.get("enabled", True) is False:
            return False
        return {k: v for k, v in value.items() if k != "enabled"}
    return False


def create_project_context(config: ForgeConfig, output_dir: str | Path) -> ProjectContext:
    """Flatten *config* into a ``ProjectContext`` rooted at *output_dir*."""
    modules = {key: _resolve_module(value) for key, value in config.modules.entries()}
    post = PostProcessorSettings(
        dart_format=config.scaffold.run_dart_format,
        flutter_pub_get=config.scaffold.run_pub_get,
        build_runner=config.scaffold.run_build_runner,
    )
    return ProjectContext(
        project_name=config.project.name,
        org_id=config.project.org_id,
        description=config.project.description,
        platforms=tuple(config.platforms),
        modules=modules,
        scaffold=ScaffoldSettings(
            dry_run=config.scaffold.dry_run,
            overwrite=config.scaffold.overwrite_existing,
            post_processors=post,
        ),
        output_dir=Path(output_dir),
        external_modules=tuple(config.external_modules),
    )


# ---------------------------------------------------------------------------
# Template context
# ---------------------------------------------------------------------------


class EnabledModule(dict):
    """Settings of an enabled module, truthy even when there are none.

    ``analytics: true`` carries no settings; a plain ``dict`` would make
    ``{% if modules.analytics %}`` hide the block.
    """

    def __bool__(self) -> bool:
        return True


def _template_value(value: Any) -> Any:
    if value is False or value is None:
        return False
    if isinstance(value, dict):
        return EnabledModule(value)
    return value


@dataclass(frozen=True)
class TemplateContext:
    """Render-time view of a project.

    ``modules`` maps each module key to ``False`` or that module's settings,
    so ``{% if modules.auth %}`` shows a block only for an enabled module, even
    one without settings.  ``{{ modules.auth.provider }}`` reads a setting.
    """

    project: dict[str, str]
    platforms: dict[str, bool]
    modules: dict[str, ModuleValue]
    contributions: dict[str, Any] = field(
        default_factory=lambda: {"providers": [], "routes": [], "env_vars": []}
    )

    def with_contributions(self, contributions: dict[str, Any]) -> "TemplateContext":
        return replace(self, contributions=copy.deepcopy(contributions))

    def as_dict(self) -> dict[str, Any]:
        """Deep copy suitable as Jinja2 render variables."""
        return {
            "project": copy.deepcopy(self.project),
            "platforms": copy.deepcopy(self.platforms),
            "modules": {
                key: _template_value(value)
                for key, value in copy.deepcopy(self.modules).items()
            },
            "contributions": copy.deepcopy(self.contributions),
        }


def build_template_context(ctx: ProjectContext) -> TemplateContext:
    """Build the ``TemplateContext`` for *ctx* without sharing its mutable state."""
    return TemplateContext(
        project={
            "name": ctx.project_name,
            "org": ctx.org_id,
            "description": ctx.description,
        },
        platforms={platform: True for platform in ctx.platforms},
        modules={key: copy.deepcopy(value) for key, value in ctx.modules.items()},
    )
