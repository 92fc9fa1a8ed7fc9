"""
Tests for authoring settings.
"""

import json
import stat

from tilescript.config import Settings, load_config, load_settings, save_settings


class TestLoadSettings:

    def test_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "config.json", environ={})
        assert settings == Settings()

    def test_file_values(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"tag_prefix": "DL", "grid_size": 50}))

        settings = load_settings(path, environ={})
        assert settings.tag_prefix == "DL"
        assert settings.grid_size == 50

    def test_environment_wins(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"tag_prefix": "DL"}))

        settings = load_settings(path, environ={
            "TILESCRIPT_TAG_PREFIX": "ENV",
            "TILESCRIPT_TOKEN_BAR_ENABLED": "false",
            "TILESCRIPT_GRID_SIZE": "70",
        })
        assert settings.tag_prefix == "ENV"
        assert settings.token_bar_enabled is False
        assert settings.grid_size == 70

    def test_unreadable_file_is_ignored(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{oops")
        assert load_config(path) == {}
        assert load_settings(path, environ={}) == Settings()


class TestSaveSettings:

    def test_round_trip_and_permissions(self, tmp_path):
        path = tmp_path / "config.json"
        save_settings(Settings(default_sound="boom.ogg"), path)

        assert load_settings(path, environ={}).default_sound == "boom.ogg"
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
