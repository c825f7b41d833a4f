"""Speech synthesis with Piper voices."""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any

import numpy as np

from ..errors import SynthesisError
from .synthesizer import SynthesisResult

logger = logging.getLogger(__name__)

PIPER_AVAILABLE = False
try:
    import piper

    PIPER_AVAILABLE = True
except ImportError:
    pass


class PiperSynthesizer:
    """Renders replies and notes to PCM with an ONNX Piper voice.

    Synthesis runs in a worker thread.
    """

    def __init__(
        self,
        voice: str = "en_US-lessac-medium",
        speed: float = 1.0,
        models_dir: Path | None = None,
    ) -> None:
        """Load a voice from the models directory.

        Args:
            voice: Voice file stem
            speed: Playback rate, clamped to 0.5-2.0
            models_dir: Directory holding .onnx voices and their .json configs

        Raises:
            RuntimeError: If piper-tts is missing
        """
        if not PIPER_AVAILABLE:
            raise RuntimeError("piper-tts not available. Install with: pip install piper-tts")

        self._voice = voice
        self._speed = max(0.5, min(2.0, speed))
        self._models_dir = models_dir or Path("models/piper")
        self._piper: Any = None
        self._init_piper()

    def _init_piper(self) -> None:
        """Load the Piper voice model if present."""
        model_path = self._models_dir / f"{self._voice}.onnx"
        config_path = self._models_dir / f"{self._voice}.onnx.json"

        if not model_path.exists():
            logger.warning(f"Piper model not found: {model_path}")
            self._piper = None
            return

        self._piper = piper.PiperVoice.load(str(model_path), str(config_path))
        logger.info(f"Piper voice loaded: {self._voice}")

    def _synthesize_sync(self, text: str) -> SynthesisResult:
        start_time = time.time()
        sample_rate = self._piper.config.sample_rate
        audio_data = b"".join(chunk.audio_int16_bytes for chunk in self._piper.synthesize(text))

        if self._speed != 1.0:
            audio_data = self._adjust_speed(audio_data)

        duration_ms = int(len(audio_data) / (sample_rate * 2) * 1000)
        latency_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"Synthesized '{text[:30]}' in {latency_ms}ms ({duration_ms}ms audio)")

        return SynthesisResult(
            audio=audio_data,
            sample_rate=sample_rate,
            duration_ms=duration_ms,
            latency_ms=latency_ms,
        )

    async def synthesize(self, text: str) -> SynthesisResult:
        """Render text to 16-bit PCM.

        Raises:
            SynthesisError: If no voice is loaded or Piper fails
        """
        if self._piper is None:
            raise SynthesisError(f"Piper voice not loaded: {self._voice}")
        try:
            return await asyncio.to_thread(self._synthesize_sync, text)
        except (RuntimeError, ValueError) as e:
            logger.error(f"Piper synthesis failed: {e}")
            raise SynthesisError(f"Piper synthesis failed: {e}") from e

    def _adjust_speed(self, audio: bytes) -> bytes:
        """Adjust playback speed by resampling."""
        audio_array = np.frombuffer(audio, dtype=np.int16)
        new_length = int(len(audio_array) / self._speed)
        indices = np.linspace(0, len(audio_array) - 1, new_length).astype(int)
        return audio_array[indices].tobytes()

    def set_voice(self, voice_id: str) -> None:
        """Switch to another voice file."""
        self._voice = voice_id
        self._init_piper()

    def set_speed(self, speed: float) -> None:
        """Set speech speed."""
        self._speed = max(0.5, min(2.0, speed))

    @property
    def is_available(self) -> bool:
        """Check if a Piper voice is loaded."""
        return self._piper is not None


__all__ = ["PiperSynthesizer"]
