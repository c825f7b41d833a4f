"""Mock transcriber for testing.

Provides a controllable mock implementation for unit and integration testing.
"""

from collections import deque

from ..audio.capture import AudioSegment
from ..errors import RecognitionError
from .transcriber import TranscriptionResult


class MockTranscriber:
    """Mock transcriber for testing.

    Responses queued with queue_response() are returned in order; once the
    queue is empty the fixed response from set_response() is used.
    """

    def __init__(self) -> None:
        """Initialize mock transcriber."""
        self._language: str = "en"
        self._response_text: str = ""
        self._response_confidence: float = 0.0
        self._queue: deque[str | RecognitionError] = deque()
        self._call_count: int = 0
        self._error_message: str | None = None
        self._received: list[AudioSegment] = []

    def set_response(self, text: str, confidence: float = 0.95) -> None:
        """Set the response to return when the queue is empty.

        Args:
            text: Text to return
            confidence: Confidence score to return
        """
        self._response_text = text
        self._response_confidence = confidence
        self._error_message = None

    def queue_response(self, *texts: str) -> None:
        """Queue one-shot responses returned in order."""
        self._queue.extend(texts)

    def queue_error(self, message: str) -> None:
        """Queue a one-shot recognition failure."""
        self._queue.append(RecognitionError(message))

    def set_error(self, message: str) -> None:
        """Make every transcription fail until set_response() is called.

        Args:
            message: Error message
        """
        self._error_message = message

    async def transcribe(self, audio: AudioSegment) -> TranscriptionResult:
        """Return the next queued or preset transcription result."""
        self._call_count += 1
        self._received.append(audio)

        if self._error_message:
            raise RecognitionError(self._error_message)

        text = self._response_text
        if self._queue:
            item = self._queue.popleft()
            if isinstance(item, RecognitionError):
                raise item
            text = item

        return TranscriptionResult(
            text=text,
            confidence=self._response_confidence if text else 0.0,
            language=self._language,
            duration_ms=int(audio.duration_ms),
            segments=[],
        )

    def set_language(self, language: str) -> None:
        """Set language."""
        self._language = language

    @property
    def language(self) -> str:
        """Get current language setting."""
        return self._language

    @property
    def call_count(self) -> int:
        """Get number of transcribe calls."""
        return self._call_count

    @property
    def received_audio(self) -> list[AudioSegment]:
        """Segments passed to transcribe, in call order."""
        return list(self._received)

    def clear(self) -> None:
        """Reset mock state."""
        self._response_text = ""
        self._response_confidence = 0.0
        self._queue.clear()
        self._call_count = 0
        self._error_message = None
        self._received.clear()


__all__ = ["MockTranscriber"]
