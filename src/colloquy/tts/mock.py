"""Mock synthesizer for testing.

Provides a controllable mock implementation for unit and integration testing.
"""

import numpy as np

from ..errors import SynthesisError
from .synthesizer import SynthesisResult


class MockSynthesizer:
    """Mock synthesizer for testing.

    Generates simple tones instead of actual speech. The tone length is
    proportional to the number of words.
    """

    def __init__(self, sample_rate: int = 22050, ms_per_word: int = 100) -> None:
        """Initialize mock synthesizer.

        Args:
            sample_rate: Output sample rate
            ms_per_word: Tone length generated per word
        """
        self._sample_rate = sample_rate
        self._ms_per_word = ms_per_word
        self._voice: str = "en_US-mock-medium"
        self._speed: float = 1.0
        self._error_message: str | None = None
        self._synthesized_texts: list[str] = []

    async def synthesize(self, text: str) -> SynthesisResult:
        """Synthesize text to audio (generates tone)."""
        self._synthesized_texts.append(text)
        if self._error_message:
            raise SynthesisError(self._error_message)

        words = len(text.split())
        duration_ms = int(max(100, words * self._ms_per_word) / self._speed)

        return SynthesisResult(
            audio=self._generate_tone(440, duration_ms),
            sample_rate=self._sample_rate,
            duration_ms=duration_ms,
            latency_ms=0,
        )

    def _generate_tone(self, frequency: int, duration_ms: int) -> bytes:
        """Generate a sine tone with a short attack and release."""
        num_samples = int(self._sample_rate * duration_ms / 1000)
        t = np.arange(num_samples) / self._sample_rate
        ramp = max(1, int(self._sample_rate * 0.01))
        envelope = np.minimum(1.0, np.minimum(np.arange(num_samples), num_samples - np.arange(num_samples)) / ramp)
        samples = 0.3 * envelope * np.sin(2 * np.pi * frequency * t)
        return (samples * 32767).astype("<i2").tobytes()

    def set_error(self, message: str | None) -> None:
        """Make subsequent synthesis fail (None clears)."""
        self._error_message = message

    def set_voice(self, voice_id: str) -> None:
        """Set voice."""
        self._voice = voice_id

    def set_speed(self, speed: float) -> None:
        """Set speech speed."""
        self._speed = max(0.5, min(2.0, speed))

    @property
    def call_count(self) -> int:
        """Get number of synthesize calls."""
        return len(self._synthesized_texts)

    @property
    def synthesized_texts(self) -> list[str]:
        """Texts passed to synthesize, in call order."""
        return list(self._synthesized_texts)


__all__ = ["MockSynthesizer"]
