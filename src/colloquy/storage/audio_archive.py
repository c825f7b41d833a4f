"""Archive of synthesized speech as WAV files."""

import asyncio
import logging
import wave
from datetime import datetime
from pathlib import Path

from ..errors import PersistenceError
from .conversations import unique_path

logger = logging.getLogger(__name__)


class AudioArchive:
    """Writes 16-bit mono PCM audio into timestamped WAV files."""

    def __init__(self, folder: Path | str, prefix: str = "voice") -> None:
        """Initialize archive.

        Args:
            folder: Destination folder, created on first write
            prefix: File name prefix
        """
        self._folder = Path(folder).expanduser()
        self._prefix = prefix

    @property
    def folder(self) -> Path:
        """Destination folder."""
        return self._folder

    def _write_sync(self, audio: bytes, sample_rate: int, name: str) -> Path:
        self._folder.mkdir(parents=True, exist_ok=True)
        path = unique_path(self._folder, name)
        with wave.open(str(path), "wb") as wf:
            wf.setnchannels(1)
            wf.setsampwidth(2)
            wf.setframerate(sample_rate)
            wf.writeframes(audio)
        return path

    async def save(self, audio: bytes, sample_rate: int, when: datetime | None = None) -> Path:
        """Save audio as a WAV file.

        Args:
            audio: Raw 16-bit mono PCM
            sample_rate: Sample rate in Hz
            when: Timestamp for the file name (defaults to now)

        Returns:
            Path of the written file

        Raises:
            PersistenceError: If the file cannot be written
        """
        stamp = (when or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S-%f")[:-3]
        name = f"{self._prefix}-{stamp}.wav"
        try:
            path = await asyncio.to_thread(self._write_sync, audio, sample_rate, name)
        except OSError as e:
            raise PersistenceError(f"Could not save audio {name}: {e}") from e
        logger.debug(f"Audio saved to {path}")
        return path


__all__ = ["AudioArchive"]
