"""用户设置测试"""

import json
from pathlib import Path

import pytest
from tdl.core.exceptions import InvalidConfigError
from tdl.core.settings import (
    UserSettings,
    load_settings,
    save_settings,
    set_color_profile,
    set_scope,
)


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "config.json"


class TestLoadSettings:
    def test_defaults_when_missing(self, config_path):
        settings = load_settings(config_path)
        assert settings.color_profile == "default"
        assert settings.scope == "project"
        assert settings.filter_by_project is True

    def test_invalid_json_falls_back(self, config_path):
        config_path.write_text("{broken", encoding="utf-8")
        assert load_settings(config_path) == UserSettings()

    def test_invalid_value_ignored_individually(self, config_path):
        config_path.write_text(
            json.dumps({"colorProfile": "neon", "scope": "global"}), encoding="utf-8"
        )
        settings = load_settings(config_path)
        assert settings.color_profile == "default"
        assert settings.scope == "global"

    def test_non_object_falls_back(self, config_path):
        config_path.write_text("[1, 2]", encoding="utf-8")
        assert load_settings(config_path) == UserSettings()


class TestSaveSettings:
    def test_round_trip(self, config_path):
        save_settings(UserSettings(color_profile="forest", scope="global"), config_path)
        assert json.loads(config_path.read_text(encoding="utf-8")) == {
            "colorProfile": "forest",
            "scope": "global",
        }
        assert load_settings(config_path).color_profile == "forest"

    def test_set_color_profile(self, config_path):
        assert set_color_profile("sunset", config_path).color_profile == "sunset"
        assert load_settings(config_path).color_profile == "sunset"

    def test_unknown_color_profile(self, config_path):
        with pytest.raises(InvalidConfigError) as exc_info:
            set_color_profile("neon", config_path)
        assert "neon" in exc_info.value.message
        assert not config_path.exists()

    def test_scope_local_alias(self, config_path):
        settings = set_scope("local", config_path)
        assert settings.scope == "project"

    def test_set_scope_global(self, config_path):
        settings = set_scope("global", config_path)
        assert settings.filter_by_project is False
        assert load_settings(config_path).scope == "global"

    def test_invalid_scope(self, config_path):
        with pytest.raises(InvalidConfigError):
            set_scope("everywhere", config_path)
