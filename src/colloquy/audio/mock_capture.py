"""Mock audio capture and playback for testing.

MockAudioCapture renders a scripted timeline of sound against a Clock, so
every reader that records the same span of time gets the same audio, just
like a real microphone. MockAudioPlayback sleeps on the clock for the
length of the audio and records what was played.
"""

import asyncio
import wave
from pathlib import Path

import numpy as np

from ..errors import CaptureError, SynthesisError
from ..timing import Clock
from .analysis import FFT_SIZE, decode_pcm16, encode_pcm16, spectral_level
from .capture import AudioSegment


class MockAudioCapture:
    """Mock microphone driven by a scripted sound timeline.

    Implements the AudioCapture protocol. Time not covered by a scripted
    sound is silence.
    """

    def __init__(
        self,
        clock: Clock,
        sample_rate: int = 16000,
        channels: int = 1,
        sample_width: int = 2,
        seed: int = 0,
    ) -> None:
        """Initialize mock capture.

        Args:
            clock: Clock that paces recordings
            sample_rate: Sample rate in Hz
            channels: Number of audio channels
            sample_width: Bytes per sample
            seed: Seed for generated speech-like noise
        """
        self._clock = clock
        self._sample_rate = sample_rate
        self._channels = channels
        self._sample_width = sample_width
        self._rng = np.random.default_rng(seed)
        self._sources: list[tuple[int, np.ndarray]] = []
        self._error: CaptureError | None = None
        self._closed = False
        self.record_log: list[tuple[float, int]] = []

    def add_speech(self, start_s: float, duration_s: float, amplitude: float = 0.3) -> None:
        """Schedule broadband speech-like sound.

        Args:
            start_s: Clock time the sound begins
            duration_s: Length of the sound
            amplitude: Peak amplitude in [0, 1]
        """
        frames = int(duration_s * self._sample_rate)
        noise = self._rng.uniform(-amplitude, amplitude, frames)
        self._add_source(start_s, noise)

    def add_tone(
        self,
        start_s: float,
        duration_s: float,
        frequency: float = 220.0,
        amplitude: float = 0.3,
    ) -> None:
        """Schedule a pure sine tone."""
        t = np.arange(int(duration_s * self._sample_rate)) / self._sample_rate
        self._add_source(start_s, amplitude * np.sin(2 * np.pi * frequency * t))

    def add_audio(self, start_s: float, data: bytes) -> None:
        """Schedule raw 16-bit mono PCM audio."""
        self._add_source(start_s, decode_pcm16(data))

    def set_audio_file(self, path: Path | str, start_s: float = 0.0) -> None:
        """Schedule audio from a WAV file.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format doesn't match configuration
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")

        with wave.open(str(path), "rb") as wf:
            if wf.getframerate() != self._sample_rate:
                raise ValueError(
                    f"Sample rate mismatch: file={wf.getframerate()}, expected={self._sample_rate}"
                )
            samples = decode_pcm16(
                wf.readframes(wf.getnframes()),
                channels=wf.getnchannels(),
                sample_width=wf.getsampwidth(),
            )
        self._add_source(start_s, samples)

    def set_error(self, error: CaptureError | None) -> None:
        """Make every subsequent capture call raise error (None clears)."""
        self._error = error

    async def record(self, duration_ms: int) -> AudioSegment:
        """Record the scripted timeline for duration_ms of clock time."""
        self._check()
        begin = self._clock.now()
        self.record_log.append((begin, duration_ms))
        await self._clock.sleep(duration_ms / 1000)
        self._check()

        frames = int(self._sample_rate * duration_ms / 1000)
        samples = self._render(begin, frames)
        if self._channels > 1:
            samples = np.repeat(samples, self._channels)
        return AudioSegment(
            data=encode_pcm16(samples),
            sample_rate=self._sample_rate,
            channels=self._channels,
            sample_width=self._sample_width,
            captured_at=begin,
        )

    async def level(self) -> float:
        """Spectral level of the most recent FFT_SIZE samples."""
        self._check()
        start = self._clock.now() - FFT_SIZE / self._sample_rate
        return spectral_level(self._render(start, FFT_SIZE))

    def close(self) -> None:
        """Mark capture closed."""
        self._closed = True

    @property
    def is_closed(self) -> bool:
        """Return True after close()."""
        return self._closed

    @property
    def sample_rate(self) -> int:
        """Get sample rate."""
        return self._sample_rate

    @property
    def channels(self) -> int:
        """Get channel count."""
        return self._channels

    @property
    def sample_width(self) -> int:
        """Get sample width."""
        return self._sample_width

    def recordings_of(self, duration_ms: int) -> list[float]:
        """Start times of recordings with the given length."""
        return [start for start, length in self.record_log if length == duration_ms]

    def _check(self) -> None:
        if self._error is not None:
            raise self._error

    def _add_source(self, start_s: float, samples: np.ndarray) -> None:
        self._sources.append((int(round(start_s * self._sample_rate)), samples))

    def _render(self, start_s: float, frames: int) -> np.ndarray:
        out = np.zeros(frames)
        begin = int(round(start_s * self._sample_rate))
        end = begin + frames
        for offset, samples in self._sources:
            lo = max(begin, offset)
            hi = min(end, offset + samples.size)
            if lo < hi:
                out[lo - begin : hi - begin] += samples[lo - offset : hi - offset]
        return np.clip(out, -1.0, 1.0)


class MockAudioPlayback:
    """Mock audio playback for testing.

    Playback lasts as long as the audio on the given clock. Records all
    audio played and how each playback ended. Implements the AudioPlayback
    protocol.
    """

    def __init__(self, clock: Clock) -> None:
        """Initialize mock playback.

        Args:
            clock: Clock that paces playback
        """
        self._clock = clock
        self._stop_event: asyncio.Event | None = None
        self._stream: asyncio.Future[bool] | None = None
        self._active_streams = 0
        self._error: str | None = None
        self._played_audio: list[tuple[bytes, int]] = []
        self.max_concurrent_streams = 0
        self.completed_count = 0
        self.stopped_at: list[float] = []

    def set_error(self, message: str | None) -> None:
        """Make subsequent play() calls fail (None clears)."""
        self._error = message

    async def play(self, audio: bytes, sample_rate: int) -> bool:
        """Sleep for the audio's duration unless stopped first."""
        if self._error:
            raise SynthesisError(self._error)
        if self._stop_event is not None:
            self.stop()

        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._played_audio.append((audio, sample_rate))
        self._active_streams += 1
        self.max_concurrent_streams = max(self.max_concurrent_streams, self._active_streams)

        duration = len(audio) / (sample_rate * 2) if sample_rate else 0.0
        # like a device, the stream keeps going if the caller is cancelled
        self._stream = asyncio.ensure_future(self._run_stream(duration, stop_event))
        return await asyncio.shield(self._stream)

    async def _run_stream(self, duration: float, stop_event: asyncio.Event) -> bool:
        sleeper = asyncio.ensure_future(self._clock.sleep(duration))
        waiter = asyncio.ensure_future(stop_event.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            waiter.cancel()
            if self._stop_event is stop_event:
                self._stop_event = None
                self._active_streams -= 1

        if stop_event.is_set():
            return False
        self.completed_count += 1
        return True

    def stop(self) -> None:
        """Stop the current playback, if any."""
        if self._stop_event is None:
            return
        self._stop_event.set()
        self._stop_event = None
        self._active_streams -= 1
        self.stopped_at.append(self._clock.now())

    @property
    def is_playing(self) -> bool:
        """Return True while a playback is in progress."""
        return self._stop_event is not None

    @property
    def play_count(self) -> int:
        """Get number of times play was called."""
        return len(self._played_audio)

    @property
    def played_audio(self) -> bytes | None:
        """Get the last played audio bytes (convenience property)."""
        if not self._played_audio:
            return None
        return self._played_audio[-1][0]

    @property
    def all_played_audio(self) -> list[tuple[bytes, int]]:
        """Get list of all (audio, sample_rate) pairs that were played."""
        return self._played_audio.copy()

    def clear(self) -> None:
        """Clear recorded audio."""
        self._played_audio.clear()
        self.completed_count = 0
        self.stopped_at.clear()


__all__ = ["MockAudioCapture", "MockAudioPlayback"]
