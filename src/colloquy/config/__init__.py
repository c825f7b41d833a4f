"""Configuration module for the voice session engine.

This module provides the typed configuration tree, range validation and
profile management.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from ..errors import ConfigError


@dataclass
class AudioConfig:
    """Audio input/output configuration."""

    input_device: str = "default"
    output_device: str = "default"
    sample_rate: int = 16000
    channels: int = 1
    chunk_size: int = 1024


@dataclass
class VADHeuristics:
    """Scoring bands of the energy/zero-crossing voice classifier.

    The defaults are empirically tuned starting points.
    """

    fast_accept_ratio: float = 3.0
    dynamic_range_band: tuple[float, float] = (2.0, 20.0)
    dynamic_range_floor: float = 1.5
    zcr_band: tuple[float, float] = (0.01, 0.3)
    zcr_wide_band: tuple[float, float] = (0.005, 0.5)
    variance_epsilon: float = 0.0001
    peak_ratio: float = 2.0
    frame_ms: int = 25
    min_score: int = 3


@dataclass
class VoiceDetectionConfig:
    """Voice activity and interruption detection configuration."""

    threshold: int = 30
    sensitivity_ms: int = 100
    interruption_enabled: bool = True
    required_consecutive: int = 3
    heuristics: VADHeuristics = field(default_factory=VADHeuristics)


@dataclass
class DialogConfig:
    """Continuous dialog configuration."""

    capture_duration_ms: int = 5000
    silence_window_s: float = 20.0
    listen_between_turns: bool = True
    listen_segment_ms: int = 500
    continuous: bool = True


@dataclass
class PreRecordingConfig:
    """Rolling pre-recording buffer configuration."""

    capacity: int = 10
    segment_ms: int = 200


@dataclass
class DictationConfig:
    """Dictation session configuration."""

    silence_timeout_s: float = 10.0
    silence_interval_s: float = 2.0
    segment_ms: int = 500
    check_interval_s: float = 1.0


@dataclass
class WakeConfig:
    """Wake phrase listening configuration."""

    enabled: bool = False
    phrases: list[str] = field(default_factory=lambda: ["hello assistant", "hey assistant"])
    detection_interval_ms: int = 1000
    auto_enter_dialog: bool = True
    resume_after_dialog: bool = True
    acknowledgement: str = "Hi, I'm listening"
    retry_delay_s: float = 1.0


@dataclass
class CustomPromptConfig:
    """Instruction prepended when a trigger phrase is heard."""

    name: str
    trigger: str
    prompt: str
    enabled: bool = True


@dataclass
class STTConfig:
    """Speech-to-text configuration."""

    model: str = "base.en"
    device: str = "cpu"
    compute_type: str = "int8"
    language: str = "en"
    model_path: str | None = None


@dataclass
class LLMConfig:
    """Language model configuration."""

    provider: str = "ollama"
    model: str = "llama3.2:3b"
    host: str = "http://localhost:11434"
    api_key_env: str = ""
    max_tokens: int = 500
    temperature: float = 0.7
    system_prompt: str = (
        "You are a helpful voice assistant. Keep responses brief and "
        "conversational, and speak naturally without markdown."
    )


@dataclass
class TTSConfig:
    """Text-to-speech configuration."""

    enabled: bool = True
    voice: str = "en_US-lessac-medium"
    speed: float = 1.0
    model_path: str | None = None


@dataclass
class StorageConfig:
    """Where conversation notes and synthesized audio are written."""

    conversation_dir: str = "voice-assistant/conversations"
    save_audio: bool = False
    audio_dir: str = "voice-assistant/audio"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    debug: bool = False


@dataclass
class TestingConfig:
    """Testing configuration."""

    mock_audio_enabled: bool = False


@dataclass
class ColloquyConfig:
    """Main configuration."""

    audio: AudioConfig = field(default_factory=AudioConfig)
    voice_detection: VoiceDetectionConfig = field(default_factory=VoiceDetectionConfig)
    dialog: DialogConfig = field(default_factory=DialogConfig)
    prerecording: PreRecordingConfig = field(default_factory=PreRecordingConfig)
    dictation: DictationConfig = field(default_factory=DictationConfig)
    wake: WakeConfig = field(default_factory=WakeConfig)
    prompts: list[CustomPromptConfig] = field(default_factory=list)
    stt: STTConfig = field(default_factory=STTConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    tts: TTSConfig = field(default_factory=TTSConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    testing: TestingConfig = field(default_factory=TestingConfig)


class ConfigLoader(Protocol):
    """Protocol for configuration loading."""

    def load(self, path: Path) -> ColloquyConfig:
        """Load configuration from file path."""
        ...

    def load_profile(self, profile: str) -> ColloquyConfig:
        """Load configuration by profile name (dev, prod, test)."""
        ...

    def get_config_dir(self) -> Path:
        """Get the configuration directory path."""
        ...


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ConfigError(f"{name} must be between {low} and {high}, got {value}")


def validate_config(config: ColloquyConfig) -> ColloquyConfig:
    """Check every user-facing option against its allowed range.

    Args:
        config: Configuration to validate

    Returns:
        The same configuration, for chaining

    Raises:
        ConfigError: If any option is out of range
    """
    vd = config.voice_detection
    _check_range("voice_detection.threshold", vd.threshold, 10, 80)
    _check_range("voice_detection.sensitivity_ms", vd.sensitivity_ms, 50, 500)
    if vd.required_consecutive < 1:
        raise ConfigError("voice_detection.required_consecutive must be at least 1")

    dictation = config.dictation
    _check_range("dictation.silence_timeout_s", dictation.silence_timeout_s, 5, 30)
    _check_range("dictation.silence_interval_s", dictation.silence_interval_s, 1, 5)
    if (dictation.silence_interval_s * 2) % 1 != 0:
        raise ConfigError("dictation.silence_interval_s must be a multiple of 0.5")

    _check_range("wake.detection_interval_ms", config.wake.detection_interval_ms, 500, 5000)
    if config.wake.enabled and not config.wake.phrases:
        raise ConfigError("wake.phrases must not be empty when wake listening is enabled")

    if config.prerecording.capacity < 1:
        raise ConfigError("prerecording.capacity must be at least 1")
    if config.dialog.silence_window_s <= 0:
        raise ConfigError("dialog.silence_window_s must be positive")
    if config.dialog.capture_duration_ms <= 0:
        raise ConfigError("dialog.capture_duration_ms must be positive")

    return config


# Public API
__all__ = [
    "AudioConfig",
    "ColloquyConfig",
    "ConfigLoader",
    "CustomPromptConfig",
    "DialogConfig",
    "DictationConfig",
    "LLMConfig",
    "LoggingConfig",
    "PreRecordingConfig",
    "STTConfig",
    "StorageConfig",
    "TTSConfig",
    "TestingConfig",
    "VADHeuristics",
    "VoiceDetectionConfig",
    "WakeConfig",
    "validate_config",
]
