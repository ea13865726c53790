"""Main scaffolding orchestrator.

Takes a ``ProjectContext`` and turns it into files on disk:

1. resolve the enabled modules (fails before anything is rendered),
2. render the core template tree,
3. render each enabled module's template tree in resolution order and
   accumulate its ``pubspec.partial.yaml`` dependencies,
4. merge those dependencies into the rendered ``pubspec.yaml``,
5. hand the file map to the ``FileWriter``,
6. run the external post-processors (format, pub get, build_runner).

``ScaffoldEngine.add`` applies steps 1, 3 and 4 to an existing project:
only the newly enabled modules are rendered, and their dependencies are
merged into the ``pubspec.yaml`` already on disk.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from appforge.config import DEFAULT_CONFIG_FILENAME, ForgeConfig
from appforge.context import (
    ProjectContext,
    TemplateContext,
    build_template_context,
    create_project_context,
)
from appforge.errors import (
    ModuleAlreadyEnabledError,
    PostProcessorError,
    TemplateNotFoundError,
    TemplateRenderError,
    UnknownModuleError,
)
from appforge.modules.composer import ModuleComposer, merge_dependency_maps
from appforge.modules.definitions import CORE_MANIFEST
from appforge.modules.models import ModuleManifest
from appforge.modules.registry import ModuleRegistry
from appforge.modules.resolver import ModuleResolver

from .file_writer import ConflictResolver, FileWriter
from .post_processors import run_build_runner, run_dart_format, run_flutter_pub_get
from .templates import DEFAULT_TEMPLATE_DIR, TEMPLATE_SUFFIX, TemplateRenderer

logger = logging.getLogger(__name__)

PUBSPEC_FILENAME = "pubspec.yaml"
PUBSPEC_PARTIAL_FILENAME = "pubspec.partial.yaml"


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GeneratedFile:
    """One output file: slash-separated path, final text, and where it came from."""

    relative_path: str
    content: str
    template_source: str


@dataclass
class DependencyPartial:
    """Parsed contents of a module's ``pubspec.partial.yaml``."""

    dependencies: dict[str, Any] = field(default_factory=dict)
    dev_dependencies: dict[str, Any] = field(default_factory=dict)
    flutter: dict[str, Any] = field(default_factory=dict)


@dataclass
class ScaffoldResult:
    """Outcome of one scaffold run, as reported to the CLI or a test."""

    files_written: list[str] = field(default_factory=list)
    files_skipped: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)
    post_processors_run: list[str] = field(default_factory=list)
    post_processor_errors: list[str] = field(default_factory=list)


@dataclass
class AddResult:
    """Outcome of adding modules to an existing project."""

    added: list[str] = field(default_factory=list)
    files_written: list[str] = field(default_factory=list)
    files_skipped: list[str] = field(default_factory=list)
    pubspec_updated: bool = False
    config: Optional[ForgeConfig] = None


@dataclass(frozen=True)
class PostProcessorStep:
    name: str
    setting: str
    run: Callable[[Path], Awaitable[None]]
    failure_label: str


def default_post_processors() -> list[PostProcessorStep]:
    """Post-processors in their fixed order: format, fetch dependencies, codegen."""
    return [
        PostProcessorStep("dart-format", "dart_format", run_dart_format, "dart format skipped"),
        PostProcessorStep(
            "flutter-pub-get", "flutter_pub_get", run_flutter_pub_get, "flutter pub get failed"
        ),
        PostProcessorStep("build-runner", "build_runner", run_build_runner, "build_runner failed"),
    ]


# ---------------------------------------------------------------------------
# Main engine
# ---------------------------------------------------------------------------


class ScaffoldEngine:
    """Composes the core template set with enabled modules and writes the result.

    Every argument is optional and exists so callers and tests can swap in
    their own template trees, registry, conflict resolver or post-processors.
    """

    def __init__(
        self,
        *,
        templates_dir: str | Path | None = None,
        modules_templates_dir: str | Path | None = None,
        registry: Optional[ModuleRegistry] = None,
        conflict_resolver: Optional[ConflictResolver] = None,
        post_processors: Optional[Sequence[PostProcessorStep]] = None,
    ) -> None:
        self.templates_dir = (
            Path(templates_dir)
            if templates_dir is not None
            else DEFAULT_TEMPLATE_DIR / CORE_MANIFEST.template_dir
        )
        self.modules_templates_dir = (
            Path(modules_templates_dir) if modules_templates_dir is not None else None
        )
        self.registry = registry
        self.conflict_resolver = conflict_resolver
        self.post_processors = list(post_processors) if post_processors is not None else None
        self.renderer = TemplateRenderer()
        self.composer = ModuleComposer()

    # -- Public API --------------------------------------------------------

    async def run(self, context: ProjectContext) -> ScaffoldResult:
        """Scaffold the project described by *context* into ``context.output_dir``."""
        registry = self._build_registry(context)
        requested = enabled_module_ids(context, registry)
        resolved = ModuleResolver(registry).resolve(requested)
        active = [
            m for m in resolved.ordered if not m.always_included and m.enabled_for(context)
        ]
        logger.info("Scaffolding %s with modules: %s", context.project_name,
                    ", ".join(m.id for m in active) or "(none)")

        composition = self.composer.compose(resolved.ordered, context)
        template_context = build_template_context(context).with_contributions(
            composition.as_template_data()
        )

        # 1. Core templates
        if not self.templates_dir.is_dir():
            raise TemplateNotFoundError(str(self.templates_dir))
        files: dict[str, GeneratedFile] = {}
        for generated in await collect_and_render_templates(
            self.templates_dir, template_context, self.renderer
        ):
            files[generated.relative_path] = generated

        # 2. Module templates and dependency partials, in resolution order
        partial = await self._render_modules(active, template_context, files)

        # 3. Merge module dependencies into the rendered pubspec.yaml
        if partial.dependencies or partial.dev_dependencies or partial.flutter:
            pubspec = files.get(PUBSPEC_FILENAME)
            if pubspec is None:
                logger.warning("No %s rendered; module dependencies were not merged",
                               PUBSPEC_FILENAME)
            else:
                files[PUBSPEC_FILENAME] = replace(
                    pubspec,
                    content=merge_pubspec_dependencies(
                        pubspec.content,
                        partial.dependencies,
                        partial.dev_dependencies,
                        partial.flutter,
                    ),
                )

        # 4. Write
        writer = FileWriter(
            context.output_dir,
            dry_run=context.scaffold.dry_run,
            overwrite_mode=context.scaffold.overwrite,
            on_conflict=self.conflict_resolver,
        )
        write_result = await writer.write_all(
            {path: generated.content for path, generated in files.items()}
        )

        result = ScaffoldResult(
            files_written=write_result.written,
            files_skipped=write_result.skipped,
            conflicts=write_result.conflicts,
        )

        # 5. Post-process
        if not context.scaffold.dry_run:
            await self._post_process(context, result)

        logger.info(
            "Scaffold finished: %d written, %d skipped, %d conflicts",
            len(result.files_written), len(result.files_skipped), len(result.conflicts),
        )
        return result

    async def add(
        self,
        config: ForgeConfig,
        module_id: str,
        project_dir: str | Path,
        *,
        dry_run: bool = False,
    ) -> AddResult:
        """Enable *module_id* in an existing project at *project_dir*.

        Modules it requires that the project does not use yet are enabled
        too.  Only the new modules' template trees are rendered, existing
        files are never overwritten, their ``pubspec.partial.yaml``
        dependencies are merged into the project's ``pubspec.yaml``, and the
        updated configuration is saved to ``appforge.yaml``.

        Raises:
            UnknownModuleError: *module_id* is not registered.
            ModuleAlreadyEnabledError: The project already uses *module_id*.
            ModuleConflictError: The module conflicts with an enabled one.
        """
        project_dir = Path(project_dir)
        current = create_project_context(config, project_dir)
        registry = self._build_registry(current)
        manifest = registry.require(module_id)
        existing = enabled_module_ids(current, registry)
        if module_id in existing or manifest.always_included:
            raise ModuleAlreadyEnabledError(module_id)

        resolved = ModuleResolver(registry).resolve([*existing, module_id])
        added = [
            m.id for m in resolved.ordered if not m.always_included and m.id not in existing
        ]
        updated = config.with_modules_enabled(added)
        context = create_project_context(updated, project_dir)
        new_modules = [
            m for m in resolved.ordered if m.id in added and m.enabled_for(context)
        ]
        logger.info("Adding %s to %s", ", ".join(added), context.project_name)

        composition = self.composer.compose(resolved.ordered, context)
        template_context = build_template_context(context).with_contributions(
            composition.as_template_data()
        )
        files: dict[str, GeneratedFile] = {}
        partial = await self._render_modules(new_modules, template_context, files)

        writer = FileWriter(project_dir, dry_run=dry_run, overwrite_mode="never")
        write_result = await writer.write_all(
            {path: generated.content for path, generated in files.items()}
        )
        result = AddResult(
            added=added,
            files_written=write_result.written,
            files_skipped=write_result.skipped,
            config=updated,
        )

        if partial.dependencies or partial.dev_dependencies or partial.flutter:
            result.pubspec_updated = await self._merge_into_existing_pubspec(
                project_dir, partial, dry_run=dry_run
            )

        if not dry_run:
            await asyncio.to_thread(updated.save, project_dir / DEFAULT_CONFIG_FILENAME)
        return result

    # -- Internals ---------------------------------------------------------

    async def _merge_into_existing_pubspec(
        self, project_dir: Path, partial: DependencyPartial, *, dry_run: bool
    ) -> bool:
        pubspec_path = project_dir / PUBSPEC_FILENAME
        if not await asyncio.to_thread(pubspec_path.is_file):
            logger.warning("No %s in %s; module dependencies were not merged",
                           PUBSPEC_FILENAME, project_dir)
            return False
        original = await asyncio.to_thread(pubspec_path.read_text, encoding="utf-8")
        merged = merge_pubspec_dependencies(
            original, partial.dependencies, partial.dev_dependencies, partial.flutter
        )
        if merged == original:
            return False
        writer = FileWriter(project_dir, dry_run=dry_run, overwrite_mode="always")
        await writer.write_file(PUBSPEC_FILENAME, merged)
        return True

    async def _render_modules(
        self,
        manifests: Sequence[ModuleManifest],
        template_context: TemplateContext,
        files: dict[str, GeneratedFile],
    ) -> DependencyPartial:
        """Render each module tree into *files*; return the merged dependency partials."""
        merged = DependencyPartial()
        for manifest in manifests:
            module_dir = self._module_template_dir(manifest)
            if not module_dir.is_dir():
                logger.debug("Module %s has no template tree at %s", manifest.id, module_dir)
                continue

            for generated in await collect_and_render_templates(
                module_dir, template_context, self.renderer, exclude=(PUBSPEC_PARTIAL_FILENAME,)
            ):
                if generated.relative_path in files:
                    logger.debug("%s overrides %s", manifest.id, generated.relative_path)
                files[generated.relative_path] = generated

            partial = await load_dependency_partial(
                module_dir / PUBSPEC_PARTIAL_FILENAME, self.renderer, template_context
            )
            merged.dependencies = merge_dependency_maps(merged.dependencies, partial.dependencies)
            merged.dev_dependencies = merge_dependency_maps(
                merged.dev_dependencies, partial.dev_dependencies
            )
            merged.flutter.update(partial.flutter)
        return merged

    def _build_registry(self, context: ProjectContext) -> ModuleRegistry:
        if self.registry is not None:
            return self.registry
        registry = ModuleRegistry.with_builtins()
        for package_name in context.external_modules:
            registry.load_external(package_name)
        return registry

    def _module_template_dir(self, manifest: ModuleManifest) -> Path:
        if self.modules_templates_dir is not None:
            return self.modules_templates_dir / manifest.id
        template_dir = Path(manifest.template_dir or f"modules/{manifest.id}")
        if template_dir.is_absolute():
            return template_dir
        return DEFAULT_TEMPLATE_DIR / template_dir

    async def _post_process(self, context: ProjectContext, result: ScaffoldResult) -> None:
        steps = self.post_processors if self.post_processors is not None else default_post_processors()
        settings = context.scaffold.post_processors
        for step in steps:
            if not getattr(settings, step.setting, False):
                continue
            try:
                await step.run(context.output_dir)
            except (PostProcessorError, OSError) as exc:
                logger.warning("%s: %s", step.failure_label, exc)
                result.post_processor_errors.append(f"{step.failure_label}: {exc}")
            else:
                result.post_processors_run.append(step.name)


# ---------------------------------------------------------------------------
# Template helpers
# ---------------------------------------------------------------------------


def enabled_module_ids(context: ProjectContext, registry: ModuleRegistry) -> list[str]:
    """Optional module ids switched on in *context*, in configuration order.

    Raises:
        UnknownModuleError: If an enabled settings key matches no registered module.
    """
    by_key = {m.context_key: m for m in registry.optional()}
    ids: list[str] = []
    for key, value in context.modules.items():
        if value is False or value is None:
            continue
        manifest = by_key.get(key)
        if manifest is None:
            raise UnknownModuleError(key.replace("_", "-"))
        ids.append(manifest.id)
    return ids


async def collect_and_render_templates(
    base_dir: Path,
    template_context: TemplateContext,
    renderer: TemplateRenderer,
    exclude: Sequence[str] = (),
) -> list[GeneratedFile]:
    """Render every file below *base_dir*, sorted by path.

    ``*.j2`` files are rendered and lose the suffix; everything else is
    copied verbatim.  Files named in *exclude* are ignored.
    """
    paths = await asyncio.to_thread(
        lambda: sorted(p for p in base_dir.rglob("*") if p.is_file())
    )
    results: list[GeneratedFile] = []
    for path in paths:
        relative = path.relative_to(base_dir).as_posix()
        if path.name in exclude or relative in exclude:
            continue
        if relative.endswith(TEMPLATE_SUFFIX):
            output_path = relative[: -len(TEMPLATE_SUFFIX)]
            content = await renderer.render_file(path, template_context)
        else:
            output_path = relative
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        results.append(
            GeneratedFile(relative_path=output_path, content=content, template_source=str(path))
        )
    return results


async def load_dependency_partial(
    partial_path: Path,
    renderer: TemplateRenderer,
    template_context: TemplateContext,
) -> DependencyPartial:
    """Render and parse a ``pubspec.partial.yaml``; empty when the file is absent."""
    if not await asyncio.to_thread(partial_path.is_file):
        return DependencyPartial()

    rendered = await renderer.render_file(partial_path, template_context)
    try:
        parsed = yaml.safe_load(rendered)
    except yaml.YAMLError as exc:
        raise TemplateRenderError(str(partial_path), f"invalid YAML: {exc}") from exc
    if parsed is None:
        return DependencyPartial()
    if not isinstance(parsed, Mapping):
        raise TemplateRenderError(str(partial_path), "dependency partial must be a mapping")

    return DependencyPartial(
        dependencies=merge_dependency_maps({}, _section(parsed, "dependencies", partial_path)),
        dev_dependencies=merge_dependency_maps(
            {}, _section(parsed, "dev_dependencies", partial_path)
        ),
        flutter=dict(_section(parsed, "flutter", partial_path)),
    )


def _section(document: Mapping[str, Any], key: str, source: Path) -> Mapping[str, Any]:
    value = document.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TemplateRenderError(str(source), f"'{key}' must be a mapping")
    return value


def merge_pubspec_dependencies(
    pubspec_content: str,
    dependencies: Mapping[str, Any],
    dev_dependencies: Mapping[str, Any],
    flutter_section: Mapping[str, Any] | None = None,
) -> str:
    """Merge module dependencies into rendered ``pubspec.yaml`` text.

    Existing structured entries (``sdk: flutter``) are never replaced by a
    version string; string entries keep whichever constraint is newer.
    """
    try:
        pubspec = yaml.safe_load(pubspec_content) or {}
    except yaml.YAMLError as exc:
        raise TemplateRenderError(PUBSPEC_FILENAME, f"invalid YAML: {exc}") from exc
    if not isinstance(pubspec, dict):
        raise TemplateRenderError(PUBSPEC_FILENAME, "top level must be a mapping")

    pubspec["dependencies"] = merge_dependency_maps(
        pubspec.get("dependencies") or {}, dependencies
    )
    pubspec["dev_dependencies"] = merge_dependency_maps(
        pubspec.get("dev_dependencies") or {}, dev_dependencies
    )
    if flutter_section:
        merged_flutter = dict(pubspec.get("flutter") or {})
        merged_flutter.update(flutter_section)
        pubspec["flutter"] = merged_flutter

    return yaml.safe_dump(
        pubspec, sort_keys=False, default_flow_style=False, width=120, allow_unicode=True
    )
