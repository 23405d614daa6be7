"""Tests for loading and saving settings."""

import json

from inkburn.config import Settings, load_settings, save_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.highlight_color == "#4ade80"
        assert settings.ink_stroke_width == 20.0
        assert settings.has_text_threshold == 5
        assert settings.dedupe_tolerance == 2.0

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(tmp_path / "missing.json") == Settings()

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"detect_columns": True, "theme": "dark"}), encoding="utf-8")
        settings = load_settings(path)
        assert settings.detect_columns is True

    def test_malformed_file_gives_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2", encoding="utf-8")
        assert load_settings(path) == Settings()

    def test_non_object_root(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[]", encoding="utf-8")
        assert load_settings(path) == Settings()

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        settings = Settings(ocr_language="fra", initial_scale=2.0)
        assert save_settings(settings, path)
        assert load_settings(path) == settings
