"""Profile files in YAML.

A profile may name a parent file under `extends`; the parent is read first
and the child overrides it key by key.
"""

from pathlib import Path
from typing import Any

import yaml

from ..errors import ConfigError
from . import (
    AudioConfig,
    ColloquyConfig,
    CustomPromptConfig,
    DialogConfig,
    DictationConfig,
    LLMConfig,
    LoggingConfig,
    PreRecordingConfig,
    STTConfig,
    StorageConfig,
    TestingConfig,
    TTSConfig,
    VADHeuristics,
    VoiceDetectionConfig,
    WakeConfig,
    validate_config,
)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive dict merge where `override` wins on conflicts."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_with_inheritance(path: Path) -> dict[str, Any]:
    """Read a profile and fold in its `extends` chain."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    if "extends" in config:
        base_name = config.pop("extends")
        base_config = load_yaml_with_inheritance(path.parent / base_name)
        config = deep_merge(base_config, config)

    return config


def _parse_voice_detection(data: dict[str, Any]) -> VoiceDetectionConfig:
    """Parse voice detection config, handling the nested heuristics dict."""
    data = dict(data)
    heuristics = dict(data.pop("heuristics", None) or {})
    for key in ("dynamic_range_band", "zcr_band", "zcr_wide_band"):
        if key in heuristics:
            heuristics[key] = tuple(heuristics[key])
    return VoiceDetectionConfig(heuristics=VADHeuristics(**heuristics), **data)


def dict_to_config(data: dict[str, Any]) -> ColloquyConfig:
    """Convert raw dict to typed ColloquyConfig dataclass.

    Raises:
        ConfigError: If a section has unknown keys or values are out of range
    """
    root = data.get("colloquy", {}) or {}

    # Helper to safely get dict values (handles None from YAML)
    def safe_get(key: str) -> dict[str, Any]:
        value = root.get(key, {})
        return value if value is not None else {}

    try:
        config = ColloquyConfig(
            audio=AudioConfig(**safe_get("audio")),
            voice_detection=_parse_voice_detection(safe_get("voice_detection")),
            dialog=DialogConfig(**safe_get("dialog")),
            prerecording=PreRecordingConfig(**safe_get("prerecording")),
            dictation=DictationConfig(**safe_get("dictation")),
            wake=WakeConfig(**safe_get("wake")),
            prompts=[CustomPromptConfig(**p) for p in root.get("prompts") or []],
            stt=STTConfig(**safe_get("stt")),
            llm=LLMConfig(**safe_get("llm")),
            tts=TTSConfig(**safe_get("tts")),
            storage=StorageConfig(**safe_get("storage")),
            logging=LoggingConfig(**safe_get("logging")),
            testing=TestingConfig(**safe_get("testing")),
        )
    except TypeError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    return validate_config(config)


class YAMLConfigLoader:
    """Reads profiles from a config directory."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Create a loader.

        Args:
            config_dir: Profile directory, the repository `config/` by default
        """
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent.parent / "config"
        self._config_dir = config_dir

    def load(self, path: Path) -> ColloquyConfig:
        """Parse and validate one profile file."""
        return dict_to_config(load_yaml_with_inheritance(path))

    def load_profile(self, profile: str) -> ColloquyConfig:
        """Load `<config_dir>/<profile>.yaml`."""
        return self.load(self._config_dir / f"{profile}.yaml")

    def get_config_dir(self) -> Path:
        """Directory profiles are read from."""
        return self._config_dir


def load_config(path: str | Path | None = None, profile: str | None = None) -> ColloquyConfig:
    """Load configuration.

    Args:
        path: Direct path to config file (takes precedence)
        profile: Profile name ('dev', 'prod', 'test') if path not given

    Returns:
        Parsed ColloquyConfig

    Examples:
        >>> config = load_config(profile="dev")
        >>> config = load_config(path="/path/to/config.yaml")
    """
    loader = YAMLConfigLoader()

    if path is not None:
        return loader.load(Path(path))
    elif profile is not None:
        return loader.load_profile(profile)
    else:
        from .profiles import get_profile_path

        return loader.load(get_profile_path(config_dir=loader.get_config_dir()))


__all__ = [
    "YAMLConfigLoader",
    "deep_merge",
    "dict_to_config",
    "load_config",
    "load_yaml_with_inheritance",
]
