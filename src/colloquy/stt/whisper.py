"""Recognition backed by faster-whisper.

Inference runs in a worker thread so the event loop keeps polling timers
and the interrupt monitor.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any

import numpy as np

from ..audio.analysis import decode_pcm16
from ..audio.capture import AudioSegment
from ..errors import RecognitionError
from .transcriber import TranscriptionResult

try:
    from faster_whisper import WhisperModel

    FASTER_WHISPER_AVAILABLE = True
except ImportError:
    FASTER_WHISPER_AVAILABLE = False
    WhisperModel = None  # type: ignore

logger = logging.getLogger(__name__)

WHISPER_SAMPLE_RATE = 16000


class WhisperTranscriber:
    """Turns recorded turns and dictation chunks into text.

    The model is loaded lazily on the first transcription.
    """

    def __init__(
        self,
        model_size: str = "base.en",
        device: str = "cpu",
        compute_type: str = "int8",
        model_path: Path | None = None,
        language: str = "en",
    ) -> None:
        """Configure the recognizer without loading the model.

        Args:
            model_size: Model name such as "base.en"
            device: "cpu", "cuda" or "auto"
            compute_type: CTranslate2 quantization, for example "int8"
            model_path: Local model directory used instead of a download
            language: Expected language code, or "auto"

        Raises:
            RuntimeError: If the faster-whisper package is missing
        """
        if not FASTER_WHISPER_AVAILABLE:
            raise RuntimeError(
                "faster-whisper not available. Install with: pip install faster-whisper"
            )

        self._model_size = model_size
        self._device = device
        self._compute_type = compute_type
        self._model_path = model_path
        self._model: Any = None
        self._language = language

    def _ensure_model_loaded(self) -> None:
        """Load the model on first use."""
        if self._model is not None:
            return

        logger.info(
            f"Loading recognizer {self._model_size} "
            f"(device={self._device}, compute={self._compute_type})"
        )
        start = time.time()

        source = str(self._model_path) if self._model_path and self._model_path.exists() else self._model_size
        self._model = WhisperModel(source, device=self._device, compute_type=self._compute_type)

        logger.info(f"Whisper model loaded in {(time.time() - start) * 1000:.0f}ms")

    def _transcribe_sync(self, audio: AudioSegment) -> TranscriptionResult:
        self._ensure_model_loaded()
        start_time = time.time()

        samples = decode_pcm16(audio.data, audio.channels, audio.sample_width).astype(np.float32)

        # Whisper expects 16kHz
        if audio.sample_rate != WHISPER_SAMPLE_RATE:
            new_length = int(len(samples) * WHISPER_SAMPLE_RATE / audio.sample_rate)
            indices = np.linspace(0, len(samples) - 1, new_length).astype(int)
            samples = samples[indices]

        segments, info = self._model.transcribe(
            samples,
            language=self._language if self._language != "auto" else None,
            beam_size=1,
            vad_filter=True,
        )

        text = " ".join(segment.text.strip() for segment in segments).strip()
        latency_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"Transcribed {audio.duration_ms:.0f}ms audio in {latency_ms}ms: '{text[:50]}'")

        return TranscriptionResult(
            text=text,
            confidence=info.language_probability if info else 0.9,
            language=info.language if info else self._language,
            duration_ms=int(audio.duration_ms),
        )

    async def transcribe(self, audio: AudioSegment) -> TranscriptionResult:
        """Transcribe audio to text in a worker thread."""
        try:
            return await asyncio.to_thread(self._transcribe_sync, audio)
        except ValueError as e:
            raise RecognitionError(f"Audio could not be decoded: {e}") from e
        except RuntimeError as e:
            raise RecognitionError(f"Whisper transcription failed: {e}") from e

    def set_language(self, language: str) -> None:
        """Change the expected language."""
        self._language = language

    @property
    def model_size(self) -> str:
        """Configured model name."""
        return self._model_size

    @property
    def is_loaded(self) -> bool:
        """Whether the model has been loaded."""
        return self._model is not None


__all__ = ["WhisperTranscriber"]
