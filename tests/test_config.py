"""Tests for appforge configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from appforge.config import (
    ApiSettings,
    AuthSettings,
    ForgeConfig,
    ModulesConfig,
    ScaffoldConfig,
    find_project_root,
)
from appforge.errors import ConfigError

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# ForgeConfig.parse
# ---------------------------------------------------------------------------


class TestParse:
    def test_minimal_config_gets_defaults(self):
        config = ForgeConfig.parse({"project": {"name": "my_app", "org_id": "com.acme"}})
        assert config.platforms == ["android", "ios"]
        assert config.scaffold == ScaffoldConfig()
        assert config.modules.auth is None
        assert config.external_modules == []

    def test_module_true_means_default_settings(self):
        config = ForgeConfig.parse(
            {"project": {"name": "a", "org_id": "b"}, "modules": {"auth": True}}
        )
        assert isinstance(config.modules.auth, AuthSettings)
        assert config.modules.auth.provider == "firebase"

    def test_module_false_is_kept(self):
        config = ForgeConfig.parse(
            {"project": {"name": "a", "org_id": "b"}, "modules": {"api": False}}
        )
        assert config.modules.api is False

    def test_module_settings_are_validated(self):
        config = ForgeConfig.parse(
            {
                "project": {"name": "a", "org_id": "b"},
                "modules": {"api": {"base_url": "https://x.dev", "timeout": 10}},
            }
        )
        assert config.modules.api == ApiSettings(base_url="https://x.dev", timeout=10)

    def test_deep_linking_accepts_kebab_alias(self):
        config = ForgeConfig.parse(
            {"project": {"name": "a", "org_id": "b"}, "modules": {"deep-linking": {"scheme": "x"}}}
        )
        assert config.modules.deep_linking.scheme == "x"

    def test_unknown_platform_rejected(self):
        with pytest.raises(ConfigError, match="platforms"):
            ForgeConfig.parse({"project": {"name": "a", "org_id": "b"}, "platforms": ["tv"]})

    def test_missing_project_name_lists_field(self):
        with pytest.raises(ConfigError) as exc_info:
            ForgeConfig.parse({"project": {"org_id": "b"}})
        assert "project.name" in str(exc_info.value)

    def test_invalid_auth_provider_rejected(self):
        with pytest.raises(ConfigError):
            ForgeConfig.parse(
                {"project": {"name": "a", "org_id": "b"}, "modules": {"auth": {"provider": "x"}}}
            )

    def test_non_mapping_rejected(self):
        with pytest.raises(ConfigError, match="mapping"):
            ForgeConfig.parse(["not", "a", "mapping"])


# ---------------------------------------------------------------------------
# ModulesConfig.entries
# ---------------------------------------------------------------------------


class TestModulesEntries:
    def test_entries_use_snake_case_keys(self):
        modules = ModulesConfig.model_validate({"deep-linking": True})
        keys = [key for key, _ in modules.entries()]
        assert "deep_linking" in keys
        assert "deep-linking" not in keys

    def test_extra_modules_are_included(self):
        modules = ModulesConfig.model_validate({"payments-stripe": {"mode": "test"}})
        entries = dict(modules.entries())
        assert entries["payments_stripe"] == {"mode": "test"}

    def test_extra_module_scalar_rejected(self):
        with pytest.raises(ValueError):
            ModulesConfig.model_validate({"payments": "yes"})

    def test_entries_follow_written_order(self):
        modules = ModulesConfig.model_validate(
            {"theme": True, "payments-stripe": {}, "auth": {"provider": "custom"}, "api": False}
        )
        keys = [key for key, _ in modules.entries()]
        assert keys[:4] == ["theme", "payments_stripe", "auth", "api"]
        assert set(keys[4:]) == {"database", "i18n", "push", "analytics", "cicd", "deep_linking"}

    def test_cli_module_order_kept(self):
        config = ForgeConfig.from_cli("app", modules=["push", "auth"])
        enabled = [key for key, value in config.modules.entries() if value is not None]
        assert enabled == ["push", "auth"]


# ---------------------------------------------------------------------------
# File round trip
# ---------------------------------------------------------------------------


class TestLoadSave:
    def test_load_yaml(self, tmp_path: Path):
        path = tmp_path / "appforge.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "project": {"name": "shop", "org_id": "com.shop"},
                    "modules": {"database": {"engine": "hive"}, "auth": False},
                    "scaffold": {"overwrite_existing": "never"},
                }
            ),
            encoding="utf-8",
        )
        config = ForgeConfig.load(path)
        assert config.project.name == "shop"
        assert config.modules.database.engine == "hive"
        assert config.scaffold.overwrite_existing == "never"

    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            ForgeConfig.load(tmp_path / "nope.yaml")

    def test_load_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("project: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            ForgeConfig.load(path)

    def test_save_then_load_keeps_modules(self, tmp_path: Path):
        original = ForgeConfig.from_cli("app", org_id="com.x", modules=["auth", "deep-linking"])
        path = original.save(tmp_path / "nested" / "appforge.yaml")
        reloaded = ForgeConfig.load(path)
        assert isinstance(reloaded.modules.auth, AuthSettings)
        assert reloaded.modules.deep_linking is not None
        assert "deep-linking" in path.read_text(encoding="utf-8")

    def test_save_keeps_module_order(self, tmp_path: Path):
        original = ForgeConfig.from_cli("app", modules=["theme", "deep-linking", "auth"])
        reloaded = ForgeConfig.load(original.save(tmp_path / "appforge.yaml"))
        enabled = [key for key, value in reloaded.modules.entries() if value is not None]
        assert enabled == ["theme", "deep_linking", "auth"]


# ---------------------------------------------------------------------------
# Enabling modules in an existing configuration
# ---------------------------------------------------------------------------


class TestWithModulesEnabled:
    def test_new_modules_appended_after_existing(self):
        config = ForgeConfig.from_cli("app", modules=["theme", "auth"])
        updated = config.with_modules_enabled(["deep-linking", "push"])
        enabled = [key for key, value in updated.modules.entries() if value is not None]
        assert enabled == ["theme", "auth", "deep_linking", "push"]
        assert config.modules.push is None

    def test_existing_settings_kept(self):
        config = ForgeConfig.parse(
            {
                "project": {"name": "app", "org_id": "com.x"},
                "modules": {"auth": {"enabled": False, "provider": "custom"}, "api": False},
            }
        )
        updated = config.with_modules_enabled(["auth", "api"])
        assert updated.modules.auth.enabled is True
        assert updated.modules.auth.provider == "custom"
        assert isinstance(updated.modules.api, ApiSettings)

    def test_external_module_enabled(self):
        config = ForgeConfig.parse(
            {"project": {"name": "app", "org_id": "com.x"}, "modules": {"payments": False}}
        )
        updated = config.with_modules_enabled(["payments"])
        assert dict(updated.modules.entries())["payments"] == {"enabled": True}


class TestFindProjectRoot:
    def test_found_from_nested_directory(self, tmp_path: Path):
        (tmp_path / "appforge.yaml").write_text("project: {}\n", encoding="utf-8")
        nested = tmp_path / "lib" / "features"
        nested.mkdir(parents=True)
        assert find_project_root(nested) == tmp_path.resolve()

    def test_search_depth_is_limited(self, tmp_path: Path):
        (tmp_path / "appforge.yaml").write_text("project: {}\n", encoding="utf-8")
        deep = tmp_path / "a" / "b" / "c" / "d" / "e"
        deep.mkdir(parents=True)
        assert find_project_root(deep) is None
        assert find_project_root(deep, max_levels=6) == tmp_path.resolve()


# ---------------------------------------------------------------------------
# from_cli / environment
# ---------------------------------------------------------------------------


class TestFromCli:
    def test_modules_enabled(self):
        config = ForgeConfig.from_cli("app", modules=["api", " database ", ""])
        assert isinstance(config.modules.api, ApiSettings)
        assert config.modules.database is not None
        assert config.modules.auth is None

    def test_auth_provider_applied(self):
        config = ForgeConfig.from_cli("app", modules=["auth"], auth_provider="supabase")
        assert config.modules.auth.provider == "supabase"

    def test_platforms(self):
        config = ForgeConfig.from_cli("app", platforms=["web", "android"])
        assert config.platforms == ["web", "android"]


class TestEnvOverrides:
    def test_overrides_applied(self):
        config = ForgeConfig.from_cli("app")
        updated = config.with_env_overrides(
            {"APPFORGE_OVERWRITE": "Never", "APPFORGE_DRY_RUN": "yes"}
        )
        assert updated.scaffold.overwrite_existing == "never"
        assert updated.scaffold.dry_run is True
        assert config.scaffold.dry_run is False

    def test_no_overrides_returns_same_object(self):
        config = ForgeConfig.from_cli("app")
        assert config.with_env_overrides({}) is config

    def test_invalid_override(self):
        with pytest.raises(ConfigError, match="environment"):
            ForgeConfig.from_cli("app").with_env_overrides({"APPFORGE_OVERWRITE": "maybe"})
