"""Unit tests for configuration loading and profile management."""

import os
from pathlib import Path
from unittest import mock

import pytest
import yaml

from colloquy.config import ColloquyConfig, VADHeuristics, validate_config
from colloquy.config.loader import (
    YAMLConfigLoader,
    deep_merge,
    dict_to_config,
    load_config,
    load_yaml_with_inheritance,
)
from colloquy.config.profiles import PROFILE_ENV_VAR, Profile, detect_profile, get_profile_path
from colloquy.errors import ConfigError

CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


class TestDeepMerge:
    """Tests for deep_merge function."""

    def test_simple_merge(self) -> None:
        """Test merging flat dictionaries."""
        result = deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self) -> None:
        """Test merging nested dictionaries."""
        base = {"outer": {"a": 1, "b": 2}}
        override = {"outer": {"b": 3, "c": 4}}
        assert deep_merge(base, override) == {"outer": {"a": 1, "b": 3, "c": 4}}

    def test_override_replaces_non_dict(self) -> None:
        """Test that non-dict values are replaced."""
        assert deep_merge({"a": {"nested": 1}}, {"a": "replaced"}) == {"a": "replaced"}

    def test_base_is_not_mutated(self) -> None:
        """Test that merging leaves the base untouched."""
        base = {"outer": {"a": 1}}
        deep_merge(base, {"outer": {"a": 2}})
        assert base == {"outer": {"a": 1}}


class TestYAMLLoading:
    """Tests for YAML config loading."""

    def test_load_with_inheritance(self, tmp_path: Path) -> None:
        """Test loading YAML with the extends keyword."""
        (tmp_path / "base.yaml").write_text(
            yaml.dump({"colloquy": {"dialog": {"silence_window_s": 20, "capture_duration_ms": 5000}}})
        )
        (tmp_path / "child.yaml").write_text(
            yaml.dump({"extends": "base.yaml", "colloquy": {"dialog": {"silence_window_s": 30}}})
        )

        result = load_yaml_with_inheritance(tmp_path / "child.yaml")

        assert result["colloquy"]["dialog"] == {"silence_window_s": 30, "capture_duration_ms": 5000}
        assert "extends" not in result

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_yaml_with_inheritance(tmp_path / "nope.yaml")

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        """Test that an empty YAML file produces the default config."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = YAMLConfigLoader(tmp_path).load(path)

        assert config == ColloquyConfig()


class TestDictToConfig:
    """Tests for conversion of raw dicts to typed config."""

    def test_sections_are_typed(self) -> None:
        """Test that nested sections become dataclasses."""
        config = dict_to_config(
            {
                "colloquy": {
                    "voice_detection": {"threshold": 40, "heuristics": {"zcr_band": [0.02, 0.25]}},
                    "dictation": {"silence_timeout_s": 15, "silence_interval_s": 1.5},
                    "prompts": [{"name": "Todo", "trigger": "todo", "prompt": "Make a list"}],
                }
            }
        )

        assert config.voice_detection.threshold == 40
        assert config.voice_detection.heuristics.zcr_band == (0.02, 0.25)
        assert config.voice_detection.heuristics.min_score == VADHeuristics().min_score
        assert config.dictation.silence_interval_s == 1.5
        assert config.prompts[0].trigger == "todo"
        assert config.prompts[0].enabled is True

    def test_none_sections_use_defaults(self) -> None:
        """Test that sections left empty in YAML fall back to defaults."""
        config = dict_to_config({"colloquy": {"dialog": None, "wake": None}})
        assert config.dialog.silence_window_s == 20.0
        assert config.wake.phrases == ["hello assistant", "hey assistant"]

    def test_unknown_key_raises_config_error(self) -> None:
        """Test that unknown keys are rejected."""
        with pytest.raises(ConfigError, match="Invalid configuration"):
            dict_to_config({"colloquy": {"dialog": {"bogus": 1}}})


class TestValidation:
    """Tests for range validation."""

    @pytest.mark.parametrize("threshold", [9, 81])
    def test_threshold_range(self, threshold: int) -> None:
        """Test threshold must be within 10-80."""
        config = ColloquyConfig()
        config.voice_detection.threshold = threshold
        with pytest.raises(ConfigError, match="threshold"):
            validate_config(config)

    @pytest.mark.parametrize("sensitivity", [49, 501])
    def test_sensitivity_range(self, sensitivity: int) -> None:
        """Test monitor interval must be within 50-500 ms."""
        config = ColloquyConfig()
        config.voice_detection.sensitivity_ms = sensitivity
        with pytest.raises(ConfigError, match="sensitivity_ms"):
            validate_config(config)

    @pytest.mark.parametrize("timeout", [4, 31])
    def test_dictation_timeout_range(self, timeout: float) -> None:
        """Test dictation timeout must be within 5-30 s."""
        config = ColloquyConfig()
        config.dictation.silence_timeout_s = timeout
        with pytest.raises(ConfigError, match="silence_timeout_s"):
            validate_config(config)

    def test_dictation_interval_step(self) -> None:
        """Test dictation interval must be a multiple of 0.5 s."""
        config = ColloquyConfig()
        config.dictation.silence_interval_s = 1.7
        with pytest.raises(ConfigError, match="multiple of 0.5"):
            validate_config(config)

    def test_wake_interval_range(self) -> None:
        """Test wake detection interval must be within 500-5000 ms."""
        config = ColloquyConfig()
        config.wake.detection_interval_ms = 200
        with pytest.raises(ConfigError, match="detection_interval_ms"):
            validate_config(config)

    def test_enabled_wake_needs_phrases(self) -> None:
        """Test that wake listening without phrases is rejected."""
        config = ColloquyConfig()
        config.wake.enabled = True
        config.wake.phrases = []
        with pytest.raises(ConfigError, match="phrases"):
            validate_config(config)

    def test_defaults_are_valid(self) -> None:
        """Test the default configuration passes validation."""
        config = ColloquyConfig()
        assert validate_config(config) is config


class TestProfiles:
    """Tests for profile detection."""

    def test_env_var_selects_profile(self) -> None:
        """Test COLLOQUY_PROFILE selects the profile."""
        with mock.patch.dict(os.environ, {PROFILE_ENV_VAR: "PROD"}):
            assert detect_profile() == Profile.PROD

    def test_unknown_profile_defaults_to_dev(self) -> None:
        """Test an unknown value falls back to dev."""
        with mock.patch.dict(os.environ, {PROFILE_ENV_VAR: "staging"}):
            assert detect_profile() == Profile.DEV

    def test_profile_path(self, tmp_path: Path) -> None:
        """Test profile file path resolution."""
        assert get_profile_path(Profile.TEST, tmp_path) == tmp_path / "test.yaml"


class TestShippedProfiles:
    """Tests for the YAML files in config/."""

    @pytest.mark.parametrize("profile", ["dev", "prod", "test"])
    def test_profiles_load(self, profile: str) -> None:
        """Test every shipped profile loads and validates."""
        config = YAMLConfigLoader(CONFIG_DIR).load_profile(profile)
        assert config.voice_detection.threshold == 30
        assert config.dialog.silence_window_s == 20
        assert config.prompts

    def test_test_profile_uses_mock_audio(self) -> None:
        """Test the test profile enables mock audio."""
        config = load_config(path=CONFIG_DIR / "test.yaml")
        assert config.testing.mock_audio_enabled is True
        assert config.logging.level == "WARNING"

    def test_prod_profile_overrides(self) -> None:
        """Test the prod profile switches provider and wake listening."""
        config = load_config(path=CONFIG_DIR / "prod.yaml")
        assert config.wake.enabled is True
        assert config.llm.provider == "claude"
        assert config.llm.api_key_env == "ANTHROPIC_API_KEY"
        assert config.storage.save_audio is True
