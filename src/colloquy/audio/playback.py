"""Audio playback protocol.

Defines the interface for audio output that the dialog session drives.
"""

from typing import Protocol


class AudioPlayback(Protocol):
    """Interface for audio output playback.

    Only one stream plays at a time; starting a new one while another is
    active stops the previous one first.
    """

    async def play(self, audio: bytes, sample_rate: int) -> bool:
        """Play audio until it finishes or stop() is called.

        Args:
            audio: Raw PCM audio bytes (16-bit, mono)
            sample_rate: Sample rate in Hz

        Returns:
            True if playback ran to completion, False if it was stopped

        Raises:
            SynthesisError: If the output device fails
        """
        ...

    def stop(self) -> None:
        """Stop current playback immediately.

        Safe to call even if nothing is playing.
        """
        ...

    @property
    def is_playing(self) -> bool:
        """Return True if audio is currently playing."""
        ...


__all__ = ["AudioPlayback"]
