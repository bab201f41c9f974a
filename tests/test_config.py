"""
Tests for user configuration persistence.
"""

import pytest

from ascend.config import (
    DEFAULT_CONFIG,
    get_config_path,
    load_config,
    save_config,
    set_feature,
)


class TestConfig:
    """Test loading and saving config."""

    def test_defaults_when_missing(self, tmp_path):
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_round_trip(self, tmp_path):
        config = load_config(tmp_path)
        config["emergency_chance"] = 0.5
        assert save_config(config, tmp_path) is True
        assert load_config(tmp_path)["emergency_chance"] == 0.5

    def test_missing_keys_filled_from_defaults(self, tmp_path):
        save_config({"threat_detection": False}, tmp_path)
        config = load_config(tmp_path)
        assert config["threat_detection"] is False
        assert config["knowledge_quests"] is True

    def test_corrupt_file_gives_defaults(self, tmp_path):
        get_config_path(tmp_path).write_text("{oops", encoding="utf-8")
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_defaults_not_mutated(self, tmp_path):
        config = load_config(tmp_path)
        config["knowledge_quests"] = False
        assert DEFAULT_CONFIG["knowledge_quests"] is True


class TestFeatureToggles:
    """Test set_feature()."""

    def test_toggle_persists(self, tmp_path):
        set_feature("background_generation", False, tmp_path)
        assert load_config(tmp_path)["background_generation"] is False

    def test_unknown_feature(self, tmp_path):
        with pytest.raises(ValueError):
            set_feature("telepathy", True, tmp_path)

    def test_non_boolean_setting(self, tmp_path):
        with pytest.raises(ValueError):
            set_feature("emergency_chance", True, tmp_path)
