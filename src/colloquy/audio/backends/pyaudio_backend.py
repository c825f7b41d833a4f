"""Audio backend using PyAudio.

Provides AudioCapture and AudioPlayback implementations on top of
PyAudio (PortAudio wrapper). Capture runs one callback stream and fans its
frames out to every pending recording, so the turn recorder and the
pre-recording buffer can read the microphone at the same time.
"""

import asyncio
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from ...errors import CaptureError, SynthesisError
from ..analysis import FFT_SIZE, decode_pcm16, spectral_level
from ..capture import AudioSegment

# PyAudio import with fallback for type hints
try:
    import pyaudio

    PYAUDIO_AVAILABLE = True
except ImportError:
    PYAUDIO_AVAILABLE = False
    pyaudio = None

logger = logging.getLogger(__name__)


def _resolve(future: "asyncio.Future[bytes]", data: bytes) -> None:
    if not future.done():
        future.set_result(data)


def _fail(future: "asyncio.Future[bytes]", error: Exception) -> None:
    if not future.done():
        future.set_exception(error)


@dataclass
class _PendingRecording:
    """A recording waiting for enough frames."""

    needed: int
    future: "asyncio.Future[bytes]"
    loop: asyncio.AbstractEventLoop
    data: bytearray = field(default_factory=bytearray)


class PyAudioCapture:
    """Microphone capture using a PyAudio callback stream.

    Implements the AudioCapture protocol.
    """

    def __init__(
        self,
        device_name: str = "default",
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_size: int = 1024,
    ) -> None:
        """Initialize PyAudio capture.

        Args:
            device_name: Audio input device name or "default"
            sample_rate: Sample rate in Hz
            channels: Number of channels (1 for mono)
            chunk_size: Frames per buffer

        Raises:
            RuntimeError: If PyAudio is not available
        """
        if not PYAUDIO_AVAILABLE:
            raise RuntimeError("PyAudio not available. Install with: pip install pyaudio")

        self._device_name = device_name
        self._sample_rate = sample_rate
        self._channels = channels
        self._chunk_size = chunk_size
        self._sample_width = 2  # 16-bit audio

        self._pa: Any = None
        self._stream: Any = None
        self._lock = threading.Lock()
        self._pending: list[_PendingRecording] = []
        self._recent: deque[bytes] = deque(maxlen=max(1, FFT_SIZE // chunk_size + 1))

    def _get_device_index(self) -> int | None:
        """Get device index for configured device name."""
        if self._device_name == "default" or self._pa is None:
            return None

        for i in range(self._pa.get_device_count()):
            info = self._pa.get_device_info_by_index(i)
            if self._device_name.lower() in info["name"].lower() and info["maxInputChannels"] > 0:
                return i

        return None  # Fall back to default

    def _ensure_open(self) -> None:
        if self._stream is not None:
            return
        try:
            self._pa = pyaudio.PyAudio()
            self._stream = self._pa.open(
                format=pyaudio.paInt16,
                channels=self._channels,
                rate=self._sample_rate,
                input=True,
                input_device_index=self._get_device_index(),
                frames_per_buffer=self._chunk_size,
                stream_callback=self._on_frames,
            )
            self._stream.start_stream()
        except OSError as e:
            self.close()
            raise CaptureError(f"Microphone unavailable: {e}") from e
        logger.info(f"Microphone opened ({self._sample_rate}Hz, {self._channels}ch)")

    def _on_frames(self, in_data: bytes, frame_count: int, time_info: Any, status: Any) -> tuple:
        with self._lock:
            self._recent.append(in_data)
            finished = []
            for pending in self._pending:
                pending.data.extend(in_data)
                if len(pending.data) >= pending.needed:
                    finished.append(pending)
            for pending in finished:
                self._pending.remove(pending)
        for pending in finished:
            pending.loop.call_soon_threadsafe(
                _resolve, pending.future, bytes(pending.data[: pending.needed])
            )
        return (None, pyaudio.paContinue)

    async def record(self, duration_ms: int) -> AudioSegment:
        """Record audio for a fixed duration."""
        self._ensure_open()
        loop = asyncio.get_running_loop()
        started = loop.time()
        frames = int(self._sample_rate * duration_ms / 1000)
        pending = _PendingRecording(
            needed=frames * self._channels * self._sample_width,
            future=loop.create_future(),
            loop=loop,
        )
        with self._lock:
            self._pending.append(pending)
        try:
            data = await pending.future
        finally:
            with self._lock:
                if pending in self._pending:
                    self._pending.remove(pending)

        return AudioSegment(
            data=data,
            sample_rate=self._sample_rate,
            channels=self._channels,
            sample_width=self._sample_width,
            captured_at=started,
        )

    async def level(self) -> float:
        """Spectral level of the most recent input frames."""
        self._ensure_open()
        with self._lock:
            recent = b"".join(self._recent)
        if not recent:
            return 0.0
        try:
            samples = decode_pcm16(recent, channels=self._channels)
        except ValueError:
            return 0.0
        return spectral_level(samples)

    def close(self) -> None:
        """Stop the stream and release PortAudio."""
        with self._lock:
            pending, self._pending = self._pending, []
        for item in pending:
            item.loop.call_soon_threadsafe(
                _fail, item.future, CaptureError("Microphone closed during recording")
            )

        if self._stream is not None:
            try:
                self._stream.stop_stream()
                self._stream.close()
            finally:
                self._stream = None

        if self._pa is not None:
            self._pa.terminate()
            self._pa = None

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


class PyAudioPlayback:
    """Speaker playback using PyAudio.

    Blocking writes run in a worker thread; stop() sets a flag checked
    between chunks. Implements the AudioPlayback protocol.
    """

    def __init__(self, device_name: str = "default", chunk_size: int = 1024) -> None:
        """Initialize PyAudio playback.

        Args:
            device_name: Audio output device name or "default"
            chunk_size: Frames written per blocking call

        Raises:
            RuntimeError: If PyAudio is not available
        """
        if not PYAUDIO_AVAILABLE:
            raise RuntimeError("PyAudio not available. Install with: pip install pyaudio")

        self._device_name = device_name
        self._chunk_size = chunk_size
        self._stop_flag: threading.Event | None = None
        self._is_playing = False
        self._lock: asyncio.Lock | None = None

    def _get_device_index(self, pa: Any) -> int | None:
        """Get device index for configured device name."""
        if self._device_name == "default":
            return None

        for i in range(pa.get_device_count()):
            info = pa.get_device_info_by_index(i)
            if self._device_name.lower() in info["name"].lower() and info["maxOutputChannels"] > 0:
                return i

        return None

    def _write(self, audio: bytes, sample_rate: int, stop_flag: threading.Event) -> bool:
        pa = pyaudio.PyAudio()
        try:
            stream = pa.open(
                format=pyaudio.paInt16,
                channels=1,
                rate=sample_rate,
                output=True,
                output_device_index=self._get_device_index(pa),
            )
            try:
                step = self._chunk_size * 2
                for i in range(0, len(audio), step):
                    if stop_flag.is_set():
                        return False
                    stream.write(audio[i : i + step])
            finally:
                stream.stop_stream()
                stream.close()
        finally:
            pa.terminate()
        return not stop_flag.is_set()

    async def play(self, audio: bytes, sample_rate: int) -> bool:
        """Play audio in a worker thread until done or stopped."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        if self._is_playing:
            self.stop()

        async with self._lock:
            stop_flag = threading.Event()
            self._stop_flag = stop_flag
            self._is_playing = True
            worker = asyncio.get_running_loop().run_in_executor(
                None, self._write, audio, sample_rate, stop_flag
            )
            try:
                return await asyncio.shield(worker)
            except asyncio.CancelledError:
                # the stream must be closed before the lock is released
                stop_flag.set()
                await asyncio.wait({worker})
                raise
            except OSError as e:
                raise SynthesisError(f"Audio output failed: {e}") from e
            finally:
                self._is_playing = False

    def stop(self) -> None:
        """Stop current playback."""
        if self._stop_flag is not None:
            self._stop_flag.set()
        self._is_playing = False

    @property
    def is_playing(self) -> bool:
        """Return True if audio is playing."""
        return self._is_playing


__all__ = ["PYAUDIO_AVAILABLE", "PyAudioCapture", "PyAudioPlayback"]
