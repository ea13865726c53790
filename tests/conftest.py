"""Shared pytest fixtures for the appforge test suite.

Provides reusable fixtures for:
- Temporary output directories
- Project contexts with no post-processing
- Registries holding small, hand-built manifests
- Minimal template trees on disk
- Mock subprocess helpers
"""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from appforge.context import PostProcessorSettings, ProjectContext, ScaffoldSettings
from appforge.modules.models import ModuleContribution, ModuleManifest, module_enabled
from appforge.modules.registry import ModuleRegistry

ALL_BUILTIN_KEYS = (
    "auth", "api", "database", "i18n", "theme", "push", "analytics", "cicd", "deep_linking",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_context(
    output_dir: Path,
    modules: dict[str, Any] | None = None,
    *,
    overwrite: str = "always",
    dry_run: bool = False,
    post_processors: PostProcessorSettings | None = None,
    **overrides: Any,
) -> ProjectContext:
    """Build a ``ProjectContext`` with every built-in module disabled by default."""
    all_modules: dict[str, Any] = {key: False for key in ALL_BUILTIN_KEYS}
    all_modules.update(modules or {})
    return ProjectContext(
        project_name=overrides.pop("project_name", "test_app"),
        org_id=overrides.pop("org_id", "com.example"),
        modules=all_modules,
        scaffold=ScaffoldSettings(
            dry_run=dry_run,
            overwrite=overwrite,
            post_processors=post_processors
            or PostProcessorSettings(dart_format=False, flutter_pub_get=False, build_runner=False),
        ),
        output_dir=output_dir,
        **overrides,
    )


def make_manifest(module_id: str, **fields: Any) -> ModuleManifest:
    """A minimal manifest for *module_id*; any field can be overridden."""
    fields.setdefault("name", module_id.title())
    fields.setdefault("template_dir", f"modules/{module_id}")
    fields.setdefault("is_enabled", module_enabled(module_id.replace("-", "_")))
    return ModuleManifest(id=module_id, **fields)


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create *files* (relative path -> dedented content) below *root*."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return root


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Directory the generated project is written into (not pre-created)."""
    return tmp_path / "out"


@pytest.fixture
def template_root(tmp_path: Path) -> Path:
    """Minimal ``core/`` + ``modules/`` template trees for engine tests."""
    root = tmp_path / "templates"
    write_tree(
        root,
        {
            "core/pubspec.yaml.j2": """
                name: {{ project.name }}
                environment:
                  sdk: ">=3.5.0 <4.0.0"
                dependencies:
                  flutter:
                    sdk: flutter
                  dio: ^4.0.0
                dev_dependencies:
                  flutter_test:
                    sdk: flutter
                flutter:
                  uses-material-design: true
                """,
            "core/lib/main.dart.j2": """
                // {{ project.name }}
                {% for provider in contributions.providers %}
                // provider: {{ provider.name }}
                {% endfor %}
                """,
            "core/analysis_options.yaml": "include: package:flutter_lints/flutter.yaml\n",
            "modules/database/pubspec.partial.yaml": """
                dependencies:
                  drift: ^2.22.1
                dev_dependencies:
                  drift_dev: ^2.22.1
                """,
            "modules/database/lib/core/database/app_database.dart.j2": """
                // database for {{ project.name }}
                """,
            "modules/auth/pubspec.partial.yaml": """
                dependencies:
                  dio: ^5.7.0
                  firebase_auth: ^5.3.4
                """,
            "modules/auth/lib/features/auth/auth.dart": "// auth\n",
            "modules/auth/lib/main.dart": "// auth overrides main\n",
        },
    )
    return root


@pytest.fixture
def small_registry() -> ModuleRegistry:
    """Registry with ``core`` plus ``auth`` (requires database) and ``database``."""
    registry = ModuleRegistry()
    registry.register(
        make_manifest(
            "auth",
            requires=("database",),
            contributions=ModuleContribution(
                dependencies={"firebase_auth": "^5.3.4"},
                providers=(
                    {"name": "authProvider", "import_path": "features/auth/auth.dart"},
                ),
            ),
        )
    )
    registry.register(make_manifest("database"))
    return registry


# ---------------------------------------------------------------------------
# Subprocess mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_run_command():
    """Patch ``run_command`` as seen by the post-processors; succeeds by default."""
    with patch(
        "appforge.scaffolder.post_processors.run_command",
        new_callable=AsyncMock,
        return_value=(0, "", ""),
    ) as mocked:
        yield mocked
