"""
Tests for configuration loading and user settings
"""

import pytest

from companion_backend.config.loader import ConfigLoader
from companion_backend.core.settings import SettingsManager
from companion_backend.models.activity import Mode


def test_user_file_overrides_project_defaults(tmp_path):
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        '[llm]\nmodel = "llama3"\n\n[user]\ncoach_task = "write the report"\n', encoding="utf-8"
    )

    loader = ConfigLoader(str(config_file))
    loader.load()

    assert loader.get("llm.model") == "llama3"
    assert loader.get("llm.port") == 11434
    assert loader.get("user.coach_task") == "write the report"
    assert loader.get("user.default_mode") == "coach"
    assert loader.get("missing.key", "fallback") == "fallback"


def test_system_sections_ignored_in_user_file(tmp_path):
    config_file = tmp_path / "config.toml"
    config_file.write_text("[monitoring]\ntick_interval = 1\n", encoding="utf-8")

    loader = ConfigLoader(str(config_file))
    loader.load()

    assert loader.get("monitoring.tick_interval") == 60


def test_environment_placeholders(tmp_path, monkeypatch):
    monkeypatch.setenv("COMPANION_AW_HOST", "tracker.local")
    monkeypatch.delenv("COMPANION_LLM_HOST", raising=False)
    config_file = tmp_path / "config.toml"
    config_file.write_text('[llm]\nmodel = "${COMPANION_TEST_MODEL:phi3}"\n', encoding="utf-8")

    loader = ConfigLoader(str(config_file))
    loader.load()

    assert loader.get("activitywatch.host") == "tracker.local"
    assert loader.get("llm.host") == "localhost"
    assert loader.get("llm.model") == "phi3"


def test_yaml_user_file(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("llm:\n  enabled: false\nuser:\n  study_focus: chemistry\n", encoding="utf-8")

    loader = ConfigLoader(str(config_file))
    loader.load()

    assert loader.get("llm.enabled") is False
    assert loader.get("user.study_focus") == "chemistry"


def test_missing_user_file_is_created(tmp_path):
    config_file = tmp_path / "nested" / "config.toml"

    loader = ConfigLoader(str(config_file))
    loader.load()

    assert config_file.exists()
    assert loader.get("activitywatch.port") == 5600


def test_set_persists_value(tmp_path):
    config_file = tmp_path / "config.toml"
    config_file.write_text("", encoding="utf-8")
    loader = ConfigLoader(str(config_file))
    loader.load()

    assert loader.set("llm.model", "gemma")

    reloaded = ConfigLoader(str(config_file))
    reloaded.load()
    assert reloaded.get("llm.model") == "gemma"


class TestSettingsManager:
    def test_user_settings_from_config(self, config, db):
        user = SettingsManager(config, db).get_user_settings()

        assert user.context == "I am a software developer."
        assert user.study_focus == "linear algebra"
        assert user.notifications_enabled is True
        assert user.mode_prompt(Mode.COACH) == "Check your todos."
        assert user.mode_prompt(Mode.GHOST) == ""

    def test_stored_settings_override_config(self, config, db):
        settings = SettingsManager(config, db)

        settings.update_user_settings({"coach_task": "review pull requests", "unknown": 1})

        user = SettingsManager(config, db).get_user_settings()
        assert user.coach_task == "review pull requests"
        assert db.settings.get("user.unknown") is None

    def test_current_mode_fallbacks(self, config, db):
        settings = SettingsManager(config, db)
        assert settings.get_current_mode() == Mode.COACH

        settings.save_current_mode(Mode.GHOST)
        assert settings.get_current_mode() == Mode.GHOST

        db.settings.set("app.current_mode", "turbo")
        assert settings.get_current_mode() == Mode.COACH

    @pytest.mark.parametrize("default_mode", ["chill", "CHILL "])
    def test_configured_default_mode(self, db, default_mode):
        from conftest import StaticConfig

        settings = SettingsManager(StaticConfig({"user": {"default_mode": default_mode}}), db)
        assert settings.get_current_mode() == Mode.CHILL
