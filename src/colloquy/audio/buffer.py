"""Rolling pre-recording buffer.

Keeps the last couple of seconds of microphone audio while the assistant
speaks, so words said just before an interruption is detected are not lost.
"""

import logging
from collections import deque
from contextlib import ExitStack

from ..errors import CaptureError
from ..timing import Clock, PeriodicTask
from .capture import AudioCapture, AudioSegment
from .microphone import Microphone

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY: int = 10
DEFAULT_SEGMENT_MS: int = 200


class RollingAudioBuffer:
    """Fixed-capacity FIFO of audio segments.

    Pushing beyond capacity evicts the oldest segment.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize buffer.

        Args:
            capacity: Maximum number of segments held

        Raises:
            ValueError: If capacity is not positive
        """
        if capacity < 1:
            raise ValueError(f"Buffer capacity must be positive, got {capacity}")
        self._segments: deque[AudioSegment] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        """Maximum number of segments held."""
        return self._segments.maxlen or 0

    def __len__(self) -> int:
        return len(self._segments)

    def push(self, segment: AudioSegment) -> None:
        """Append a segment, evicting the oldest when full."""
        self._segments.append(segment)

    def segments(self) -> list[AudioSegment]:
        """Return held segments, oldest first."""
        return list(self._segments)

    def snapshot(self) -> AudioSegment | None:
        """Concatenate held segments, or None when empty."""
        if not self._segments:
            return None
        return AudioSegment.concat(list(self._segments))

    def clear(self) -> None:
        """Drop all held segments."""
        self._segments.clear()


class PreRecordingBuffer:
    """Continuously records short segments into a RollingAudioBuffer."""

    OWNER = "prerecording"

    def __init__(
        self,
        microphone: Microphone,
        clock: Clock,
        capacity: int = DEFAULT_CAPACITY,
        segment_ms: int = DEFAULT_SEGMENT_MS,
    ) -> None:
        """Initialize pre-recording buffer.

        Args:
            microphone: Shared microphone to tap
            clock: Clock for the recording loop
            capacity: Number of segments retained
            segment_ms: Length of each recorded segment
        """
        self._microphone = microphone
        self._clock = clock
        self._segment_ms = segment_ms
        self._buffer = RollingAudioBuffer(capacity)
        self._capture: AudioCapture | None = None
        self._resources = ExitStack()
        self._loop = PeriodicTask(self._record_segment, 0.0, clock, name="prerecording")

    @property
    def is_running(self) -> bool:
        """Return True while segments are being recorded."""
        return self._loop.is_running

    @property
    def buffer(self) -> RollingAudioBuffer:
        """The underlying rolling buffer."""
        return self._buffer

    def start(self) -> None:
        """Start recording into a fresh buffer. No-op if already running."""
        if self._loop.is_running:
            return
        self._buffer.clear()
        self._capture = self._resources.enter_context(self._microphone.tap(self.OWNER))
        self._loop.start()
        logger.debug("Pre-recording started")

    def stop(self) -> None:
        """Stop recording and release the microphone tap.

        Buffered segments stay available to snapshot().
        """
        self._loop.stop()
        self._capture = None
        self._resources.close()

    def snapshot(self) -> AudioSegment | None:
        """Concatenate buffered audio without stopping capture."""
        return self._buffer.snapshot()

    async def _record_segment(self) -> None:
        if self._capture is None:
            return
        try:
            segment = await self._capture.record(self._segment_ms)
        except CaptureError as e:
            logger.warning(f"Pre-recording stopped after capture failure: {e}")
            self.stop()
            return
        self._buffer.push(segment)


__all__ = ["PreRecordingBuffer", "RollingAudioBuffer"]
