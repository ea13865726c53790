"""appforge project configuration.

The declarative project description (``appforge.yaml``) is modelled with
Pydantic v2 so it is validated once, at load time, and can be round-tripped
to YAML.  Every module entry is either ``false`` or a settings mapping with
an ``enabled`` flag plus module-specific options.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    field_validator,
    model_validator,
)

from appforge.errors import ConfigError

Platform = Literal["android", "ios", "web", "macos", "windows", "linux"]
OverwritePolicy = Literal["ask", "always", "never"]

DEFAULT_CONFIG_FILENAME = "appforge.yaml"


# ---------------------------------------------------------------------------
# Module settings
# ---------------------------------------------------------------------------


class ModuleSettings(BaseModel):
    """Settings shared by every module: whether it is switched on."""

    enabled: bool = Field(default=True)


class AuthSettings(ModuleSettings):
    provider: Literal["firebase", "supabase", "custom"] = "firebase"


class ApiSettings(ModuleSettings):
    base_url: Optional[str] = None
    timeout: Optional[int] = Field(default=None, ge=1, description="Request timeout in seconds")


class DatabaseSettings(ModuleSettings):
    engine: Literal["drift", "hive", "isar"] = "drift"


class I18nSettings(ModuleSettings):
    default_locale: str = "en"
    supported_locales: list[str] = Field(default_factory=lambda: ["en"])


class ThemeSettings(ModuleSettings):
    seed_color: Optional[str] = None
    use_material3: bool = True
    dark_mode: bool = True


class PushSettings(ModuleSettings):
    provider: Literal["firebase", "onesignal"] = "firebase"


class AnalyticsSettings(ModuleSettings):
    pass


class CicdSettings(ModuleSettings):
    provider: Literal["github", "gitlab", "bitbucket"] = "github"
    targets: Optional[list[Platform]] = None


class DeepLinkingSettings(ModuleSettings):
    scheme: Optional[str] = None
    host: Optional[str] = None


def _true_means_defaults(value: Any) -> Any:
    """``auth: true`` in YAML is shorthand for ``auth: {}``."""
    return {} if value is True else value


class ModulesConfig(BaseModel):
    """Per-module configuration.

    Unknown keys are accepted so external modules can be configured too;
    their values must be ``false`` or a mapping.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    auth: Union[Literal[False], AuthSettings, None] = None
    api: Union[Literal[False], ApiSettings, None] = None
    database: Union[Literal[False], DatabaseSettings, None] = None
    i18n: Union[Literal[False], I18nSettings, None] = None
    theme: Union[Literal[False], ThemeSettings, None] = None
    push: Union[Literal[False], PushSettings, None] = None
    analytics: Union[Literal[False], AnalyticsSettings, None] = None
    cicd: Union[Literal[False], CicdSettings, None] = None
    deep_linking: Union[Literal[False], DeepLinkingSettings, None] = Field(
        default=None, alias="deep-linking"
    )

    # Keys in the order they were written; requested modules resolve in it.
    _order: list[str] = PrivateAttr(default_factory=list)

    @field_validator(
        "auth", "api", "database", "i18n", "theme", "push", "analytics", "cicd",
        "deep_linking",
        mode="before",
    )
    @classmethod
    def _normalize_true(cls, value: Any) -> Any:
        return _true_means_defaults(value)

    @model_validator(mode="wrap")
    @classmethod
    def _remember_order(cls, data: Any, handler: Any) -> "ModulesConfig":
        instance = handler(data)
        if isinstance(data, Mapping):
            instance._order = [str(key).replace("-", "_") for key in data]
        return instance

    @model_validator(mode="after")
    def _check_extra_modules(self) -> "ModulesConfig":
        for key, value in list((self.model_extra or {}).items()):
            value = _true_means_defaults(value)
            if value is not False and value is not None and not isinstance(value, Mapping):
                raise ValueError(f"module '{key}' must be false or a mapping")
            self.model_extra[key] = value
        return self

    def entries(self) -> Iterator[tuple[str, Any]]:
        """Yield ``(context_key, value)`` for built-in and external modules.

        Keys use the snake_case form (``deep-linking`` -> ``deep_linking``).
        Modules come in the order they were written, then every remaining
        built-in module in declaration order.
        """
        values = {name: getattr(self, name) for name in type(self).model_fields}
        for key, value in (self.model_extra or {}).items():
            values[key.replace("-", "_")] = value
        seen: set[str] = set()
        for key in [*self._order, *values]:
            if key in values and key not in seen:
                seen.add(key)
                yield key, values[key]


# ---------------------------------------------------------------------------
# Top-level sections
# ---------------------------------------------------------------------------


class ProjectSection(BaseModel):
    """Identity of the generated app."""

    name: str = Field(..., min_length=1, description="Dart package name of the app")
    org_id: str = Field(..., min_length=1, description="Reverse-domain organisation id")
    description: str = Field(default="")
    min_sdk_version: Optional[str] = None


class ScaffoldConfig(BaseModel):
    """How generated files are written and post-processed."""

    overwrite_existing: OverwritePolicy = "ask"
    run_dart_format: bool = True
    run_pub_get: bool = True
    run_build_runner: bool = False
    dry_run: bool = False


class ForgeConfig(BaseModel):
    """Complete declarative description of an app to scaffold."""

    version: str = Field(default="1")
    project: ProjectSection
    platforms: list[Platform] = Field(default_factory=lambda: ["android", "ios"])
    modules: ModulesConfig = Field(default_factory=ModulesConfig)
    scaffold: ScaffoldConfig = Field(default_factory=ScaffoldConfig)
    external_modules: list[str] = Field(
        default_factory=list,
        description="Importable Python packages exporting an extra module manifest",
    )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, raw: Any) -> "ForgeConfig":
        """Validate a raw mapping (e.g. parsed YAML).

        Raises:
            ConfigError: Listing every invalid field path.
        """
        if not isinstance(raw, Mapping):
            raise ConfigError("Invalid configuration: top level must be a mapping")
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            lines = [
                f"  - {'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in exc.errors()
            ]
            raise ConfigError("Invalid configuration:\n" + "\n".join(lines)) from exc

    @classmethod
    def load(cls, path: str | Path) -> "ForgeConfig":
        """Load and validate a YAML configuration file."""
        file_path = Path(path)
        try:
            raw = file_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise ConfigError(f"Config file not found: {file_path}") from exc
        except OSError as exc:
            raise ConfigError(f"Failed to read config file {file_path}: {exc}") from exc

        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {file_path}: {exc}") from exc

        return cls.parse(data)

    @classmethod
    def from_cli(
        cls,
        name: str,
        *,
        org_id: str = "com.example",
        modules: list[str] | None = None,
        platforms: list[str] | None = None,
        auth_provider: str | None = None,
    ) -> "ForgeConfig":
        """Build a configuration from command-line style arguments.

        Every listed module is enabled with its default settings.
        """
        module_entries: dict[str, Any] = {}
        for module_id in modules or []:
            module_id = module_id.strip()
            if not module_id:
                continue
            module_entries[module_id] = {"enabled": True}
        if auth_provider and "auth" in module_entries:
            module_entries["auth"]["provider"] = auth_provider

        raw: dict[str, Any] = {
            "project": {"name": name, "org_id": org_id},
            "modules": module_entries,
        }
        if platforms:
            raw["platforms"] = [p.strip() for p in platforms if p.strip()]
        return cls.parse(raw)

    def with_env_overrides(self, environ: Mapping[str, str] | None = None) -> "ForgeConfig":
        """Return a copy with scaffold settings overridden from the environment.

        Recognised variables: ``APPFORGE_OVERWRITE`` (ask|always|never) and
        ``APPFORGE_DRY_RUN`` (1/true/yes).
        """
        env = os.environ if environ is None else environ
        updates: dict[str, Any] = {}
        if env.get("APPFORGE_OVERWRITE"):
            updates["overwrite_existing"] = env["APPFORGE_OVERWRITE"].strip().lower()
        if env.get("APPFORGE_DRY_RUN"):
            updates["dry_run"] = env["APPFORGE_DRY_RUN"].strip().lower() in ("1", "true", "yes")
        if not updates:
            return self
        try:
            scaffold = ScaffoldConfig.model_validate(
                {**self.scaffold.model_dump(), **updates}
            )
        except ValidationError as exc:
            raise ConfigError(f"Invalid environment override: {exc.errors()[0]['msg']}") from exc
        return self.model_copy(update={"scaffold": scaffold})

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def with_modules_enabled(self, module_ids: Sequence[str]) -> "ForgeConfig":
        """Return a copy with every id in *module_ids* switched on.

        A module that is already configured keeps its settings and position;
        a new one is appended with default settings.
        """
        data = self._dump()
        modules = data["modules"]
        by_key = {key.replace("-", "_"): key for key in modules}
        for module_id in module_ids:
            key = by_key.get(module_id.replace("-", "_"), module_id)
            current = modules.get(key)
            settings = dict(current) if isinstance(current, Mapping) else {}
            settings["enabled"] = True
            modules[key] = settings
        return self.parse(data)

    def _dump(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        dumped = data.get("modules") or {}
        by_key = {key.replace("-", "_"): key for key in dumped}
        data["modules"] = {
            by_key[key]: dumped[by_key[key]]
            for key, _ in self.modules.entries()
            if key in by_key
        }
        return data

    def save(self, path: str | Path) -> Path:
        """Write the configuration as YAML and return the path written."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(yaml.safe_dump(self._dump(), sort_keys=False), encoding="utf-8")
        return target


def find_project_root(start: str | Path, max_levels: int = 5) -> Path | None:
    """Walk up from *start* looking for an ``appforge.yaml``.

    Checks *start* and at most ``max_levels - 1`` parents; returns the
    directory holding the file, or ``None``.
    """
    current = Path(start).resolve()
    for _ in range(max_levels):
        if (current / DEFAULT_CONFIG_FILENAME).is_file():
            return current
        if current.parent == current:
            break
        current = current.parent
    return None
