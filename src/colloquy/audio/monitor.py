"""Background interruption detection during playback.

Polls the live spectral level of the microphone while the assistant is
speaking and signals a barge-in after a short run of loud polls.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from contextlib import ExitStack

from ..errors import CaptureError
from ..timing import Clock, PeriodicTask
from .capture import AudioCapture
from .microphone import Microphone

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD: float = 30.0
DEFAULT_INTERVAL_MS: int = 100
REQUIRED_CONSECUTIVE: int = 3

InterruptCallback = Callable[[], "Awaitable[None] | None"]


class BackgroundInterruptMonitor:
    """Fires a callback once the input stays above threshold.

    The counter resets on any quiet poll. After firing, the monitor stops
    itself; callers restart it for the next playback.
    """

    OWNER = "interrupt-monitor"

    def __init__(
        self,
        microphone: Microphone,
        clock: Clock,
        threshold: float = DEFAULT_THRESHOLD,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        required: int = REQUIRED_CONSECUTIVE,
    ) -> None:
        """Initialize monitor.

        Args:
            microphone: Shared microphone to tap
            clock: Clock for polling
            threshold: Spectral level (0-255) a poll must exceed
            interval_ms: Time between polls
            required: Consecutive loud polls needed to fire
        """
        self._microphone = microphone
        self._threshold = threshold
        self._required = required
        self._consecutive = 0
        self._callback: InterruptCallback | None = None
        self._capture: AudioCapture | None = None
        self._resources = ExitStack()
        self._loop = PeriodicTask(
            self._poll,
            interval_ms / 1000,
            clock,
            name="interrupt-monitor",
            initial_delay=True,
        )
        self.fired_count = 0

    @property
    def is_running(self) -> bool:
        """Return True while polling."""
        return self._loop.is_running

    @property
    def consecutive(self) -> int:
        """Current run of above-threshold polls."""
        return self._consecutive

    def start(self, on_interrupt: InterruptCallback) -> None:
        """Begin polling, replacing any previous run.

        Args:
            on_interrupt: Called once when an interruption is detected
        """
        self.stop()
        self._consecutive = 0
        self._callback = on_interrupt
        self._capture = self._resources.enter_context(self._microphone.tap(self.OWNER))
        self._loop.start()
        logger.debug(f"Interrupt monitor started (threshold={self._threshold})")

    def stop(self) -> None:
        """Stop polling. The callback never fires after this returns."""
        self._loop.stop()
        self._callback = None
        self._capture = None
        self._consecutive = 0
        self._resources.close()

    async def _poll(self) -> None:
        if self._capture is None:
            return
        try:
            level = await self._capture.level()
        except CaptureError as e:
            logger.warning(f"Interrupt monitor stopped after capture failure: {e}")
            self.stop()
            return

        callback = self._callback
        if callback is None:
            return

        if level > self._threshold:
            self._consecutive += 1
            logger.debug(f"Voice level {level:.1f} above threshold ({self._consecutive}/{self._required})")
        else:
            self._consecutive = 0

        if self._consecutive >= self._required:
            self.stop()
            self.fired_count += 1
            logger.info("Voice interruption detected")
            result = callback()
            if inspect.isawaitable(result):
                await result


__all__ = ["BackgroundInterruptMonitor"]
