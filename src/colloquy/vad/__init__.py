"""Voice activity detection for the voice session engine.

Provides the energy/zero-crossing speech classifier used by dictation,
between-turn listening and the dialog session.
"""

from typing import TYPE_CHECKING

from .classifier import VoiceActivityClassifier, VoiceActivityFeatures, extract_features

if TYPE_CHECKING:
    from ..config import VoiceDetectionConfig


def create_classifier(config: "VoiceDetectionConfig | None" = None) -> VoiceActivityClassifier:
    """Create a classifier from voice detection configuration.

    Args:
        config: Voice detection configuration (uses defaults if None)

    Returns:
        VoiceActivityClassifier instance
    """
    if config is None:
        return VoiceActivityClassifier()
    return VoiceActivityClassifier(threshold=config.threshold, heuristics=config.heuristics)


__all__ = [
    "VoiceActivityClassifier",
    "VoiceActivityFeatures",
    "create_classifier",
    "extract_features",
]
