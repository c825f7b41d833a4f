"""Transcriber protocol and data classes.

Defines the interface for speech-to-text recognition.
"""

from dataclasses import dataclass, field
from typing import Protocol

from ..audio.capture import AudioSegment


@dataclass
class TranscriptionResult:
    """Result of speech-to-text transcription.

    Attributes:
        text: Transcribed text
        confidence: Overall confidence score (0.0 to 1.0)
        language: Detected language code (e.g., "en")
        duration_ms: Duration of audio processed in milliseconds
        segments: Optional word-level timestamps
    """

    text: str
    confidence: float
    language: str
    duration_ms: int
    segments: list[dict] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Return True if nothing was recognized."""
        return not self.text.strip()


class Transcriber(Protocol):
    """Interface for speech-to-text recognition.

    Implementations convert audio segments to text using various engines.
    """

    async def transcribe(self, audio: AudioSegment) -> TranscriptionResult:
        """Transcribe an audio segment to text.

        Args:
            audio: Captured audio segment

        Returns:
            TranscriptionResult with transcribed text (possibly empty)

        Raises:
            RecognitionError: If the recognition service fails
        """
        ...

    def set_language(self, language: str) -> None:
        """Set expected language for transcription.

        Args:
            language: Language code (e.g., "en", "es", "fr")
        """
        ...


__all__ = ["TranscriptionResult", "Transcriber"]
