"""Text-to-speech module for the voice session engine.

Provides speech synthesis with Piper or a mock, plus the Speaker that
archives and plays synthesized audio.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .mock import MockSynthesizer
from .reading import clean_markdown_text
from .speaker import Speaker
from .synthesizer import SynthesisResult, Synthesizer

if TYPE_CHECKING:
    from ..config import TTSConfig

logger = logging.getLogger(__name__)


def create_synthesizer(
    config: "TTSConfig | None" = None,
    use_mock: bool = False,
) -> Synthesizer:
    """Create a synthesizer.

    Args:
        config: TTS configuration (optional)
        use_mock: If True, force mock synthesizer for testing

    Returns:
        Synthesizer implementation. Falls back to MockSynthesizer when
        Piper or its voice model is unavailable.
    """
    if use_mock:
        logger.info("TTS: Using MockSynthesizer (requested)")
        return MockSynthesizer()

    voice = "en_US-lessac-medium"
    speed = 1.0
    models_dir = None

    if config is not None:
        voice = config.voice
        speed = config.speed
        if config.model_path:
            models_dir = Path(config.model_path).expanduser()

    try:
        from .piper import PiperSynthesizer

        synth = PiperSynthesizer(voice=voice, speed=speed, models_dir=models_dir)
        if synth.is_available:
            logger.info("TTS: Using PiperSynthesizer")
            return synth
        logger.warning("TTS: Piper voice model not found")
    except RuntimeError as e:
        logger.warning(f"TTS: {e}")

    logger.warning("TTS: Using MockSynthesizer (fallback)")
    return MockSynthesizer()


__all__ = [
    "MockSynthesizer",
    "Speaker",
    "SynthesisResult",
    "Synthesizer",
    "clean_markdown_text",
    "create_synthesizer",
]
