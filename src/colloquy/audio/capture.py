"""Audio capture protocol and data classes.

Defines the immutable audio segment passed between components and the
interface every microphone source must follow.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class AudioSegment:
    """Immutable block of captured PCM audio.

    Attributes:
        data: Raw PCM audio bytes (little-endian, interleaved)
        sample_rate: Sample rate in Hz (e.g., 16000)
        channels: Number of audio channels (1=mono, 2=stereo)
        sample_width: Bytes per sample (2 for 16-bit audio)
        captured_at: Clock time in seconds when capture started
    """

    data: bytes
    sample_rate: int = 16000
    channels: int = 1
    sample_width: int = 2
    captured_at: float = 0.0

    @property
    def duration_ms(self) -> float:
        """Calculate duration of this segment in milliseconds."""
        if self.sample_rate == 0 or self.sample_width == 0 or self.channels == 0:
            return 0.0
        num_samples = len(self.data) / (self.sample_width * self.channels)
        return (num_samples / self.sample_rate) * 1000

    @property
    def num_frames(self) -> int:
        """Number of audio frames in this segment."""
        if self.sample_width == 0 or self.channels == 0:
            return 0
        return len(self.data) // (self.sample_width * self.channels)

    @property
    def is_empty(self) -> bool:
        """Return True if the segment holds no audio."""
        return len(self.data) == 0

    @classmethod
    def concat(cls, segments: Sequence["AudioSegment"]) -> "AudioSegment":
        """Join segments in order into one segment.

        The format of the first segment is used for the result.

        Raises:
            ValueError: If no segments are given
        """
        if not segments:
            raise ValueError("Cannot concatenate an empty list of segments")
        first = segments[0]
        return cls(
            data=b"".join(s.data for s in segments),
            sample_rate=first.sample_rate,
            channels=first.channels,
            sample_width=first.sample_width,
            captured_at=first.captured_at,
        )

    @classmethod
    def silence(
        cls,
        duration_ms: float,
        sample_rate: int = 16000,
        channels: int = 1,
        sample_width: int = 2,
        captured_at: float = 0.0,
    ) -> "AudioSegment":
        """Create a segment of digital silence."""
        frames = int(sample_rate * duration_ms / 1000)
        return cls(
            data=bytes(frames * channels * sample_width),
            sample_rate=sample_rate,
            channels=channels,
            sample_width=sample_width,
            captured_at=captured_at,
        )


class AudioCapture(Protocol):
    """Interface for microphone sources.

    Several readers may record from the same source at once (the turn
    recorder plus the pre-recording buffer); each sees the same audio.
    """

    async def record(self, duration_ms: int) -> AudioSegment:
        """Record audio for a fixed duration.

        Args:
            duration_ms: Length of audio to capture

        Returns:
            AudioSegment covering the requested span

        Raises:
            CaptureError: If the microphone is unavailable
        """
        ...

    async def level(self) -> float:
        """Return the live spectral level of the input on a 0-255 scale.

        Raises:
            CaptureError: If the microphone is unavailable
        """
        ...

    def close(self) -> None:
        """Release the underlying device. Safe to call more than once."""
        ...

    @property
    def sample_rate(self) -> int:
        """Get the configured sample rate in Hz."""
        ...

    @property
    def channels(self) -> int:
        """Get the number of channels."""
        ...


__all__ = ["AudioCapture", "AudioSegment"]
