"""Speech recognition for dialog turns, dictation chunks and wake phrases."""

import logging
from pathlib import Path

from ..config import STTConfig
from .mock import MockTranscriber
from .transcriber import TranscriptionResult, Transcriber

logger = logging.getLogger(__name__)


def create_transcriber(config: STTConfig | None = None, use_mock: bool = False) -> Transcriber:
    """Build the recognizer named by the `stt` config section.

    Without faster-whisper installed the engine still starts, with a mock
    recognizer that hears nothing, and says so in the log.
    """
    if use_mock:
        return MockTranscriber()

    from .whisper import WhisperTranscriber

    settings = config or STTConfig()

    try:
        return WhisperTranscriber(
            model_size=settings.model,
            device=settings.device,
            compute_type=settings.compute_type,
            model_path=Path(settings.model_path) if settings.model_path else None,
            language=settings.language,
        )
    except RuntimeError as e:
        logger.warning(f"Speech recognition unavailable, falling back to mock: {e}")
        return MockTranscriber()


__all__ = [
    "MockTranscriber",
    "TranscriptionResult",
    "Transcriber",
    "create_transcriber",
]
