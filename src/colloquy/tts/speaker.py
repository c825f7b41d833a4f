"""Speech output: synthesis, optional archiving and playback."""

import logging

from ..audio.playback import AudioPlayback
from ..errors import PersistenceError
from ..storage.audio_archive import AudioArchive
from .synthesizer import SynthesisResult, Synthesizer

logger = logging.getLogger(__name__)


class Speaker:
    """Turns text into audible speech.

    Synthesized audio is archived when an archive is configured, unless
    the caller opts out (the wake acknowledgement always does).
    """

    def __init__(
        self,
        synthesizer: Synthesizer,
        playback: AudioPlayback,
        archive: AudioArchive | None = None,
        enabled: bool = True,
    ) -> None:
        """Initialize speaker.

        Args:
            synthesizer: Text-to-speech engine
            playback: Audio output
            archive: Where to keep synthesized audio, or None
            enabled: False disables all speech output
        """
        self._synthesizer = synthesizer
        self._playback = playback
        self._archive = archive
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        """Return True if speech output is enabled."""
        return self._enabled

    @property
    def is_playing(self) -> bool:
        """Return True while audio plays."""
        return self._playback.is_playing

    async def synthesize(self, text: str, persist: bool = True) -> SynthesisResult:
        """Synthesize text, archiving the audio if configured.

        Raises:
            SynthesisError: If synthesis fails
        """
        result = await self._synthesizer.synthesize(text)
        if persist and self._archive is not None:
            try:
                await self._archive.save(result.audio, result.sample_rate)
            except PersistenceError as e:
                logger.warning(f"Synthesized audio not archived: {e}")
        return result

    async def play(self, result: SynthesisResult) -> bool:
        """Play synthesized audio.

        Returns:
            True if playback completed, False if it was stopped

        Raises:
            SynthesisError: If the output device fails
        """
        return await self._playback.play(result.audio, result.sample_rate)

    async def say(self, text: str, persist: bool = True) -> bool:
        """Synthesize and play text.

        Returns:
            True if playback completed, False if it was stopped
        """
        return await self.play(await self.synthesize(text, persist=persist))

    def stop(self) -> None:
        """Stop playback immediately."""
        self._playback.stop()


__all__ = ["Speaker"]
