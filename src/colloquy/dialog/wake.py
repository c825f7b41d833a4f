"""Wake phrase listening.

Records short windows, transcribes them and looks for a configured wake
phrase. On a match the listener stops, acknowledges the user and hands
over to the wake handler, which normally opens a wake-triggered dialog.
"""

import inspect
import logging
import re
from collections.abc import Awaitable, Callable, Iterable

from ..audio.microphone import Microphone
from ..config import WakeConfig
from ..errors import CaptureError, RecognitionError, SynthesisError
from ..status import StatusLevel, StatusReporter
from ..stt.transcriber import Transcriber
from ..timing import Clock, PeriodicTask
from ..tts.speaker import Speaker

logger = logging.getLogger(__name__)

WakeHandler = Callable[[], "Awaitable[None] | None"]

_NON_WORD = re.compile(r"[^\w\s]+")
_SPACES = re.compile(r"\s+")


def _normalize(text: str) -> str:
    return _SPACES.sub(" ", _NON_WORD.sub(" ", text.lower())).strip()


def matches_wake_phrase(text: str, phrases: Iterable[str]) -> str | None:
    """Return the first wake phrase contained in text, ignoring case and punctuation.

    Args:
        text: Transcribed audio
        phrases: Configured wake phrases

    Returns:
        The matching phrase, or None
    """
    normalized = _normalize(text)
    if not normalized:
        return None
    for phrase in phrases:
        target = _normalize(phrase)
        if target and target in normalized:
            return phrase
    return None


class WakeListener:
    """Listens for wake phrases until one is heard or it is stopped."""

    OWNER = "wake"

    def __init__(
        self,
        microphone: Microphone,
        clock: Clock,
        transcriber: Transcriber,
        speaker: Speaker,
        status: StatusReporter,
        config: WakeConfig | None = None,
        on_wake: WakeHandler | None = None,
    ) -> None:
        """Initialize wake listener.

        Args:
            microphone: Shared microphone arbiter
            clock: Clock for recordings and retry pauses
            transcriber: Speech-to-text client
            speaker: Speech output for the acknowledgement
            status: User notification channel
            config: Wake settings
            on_wake: Called after the acknowledgement when auto-dialog is on
        """
        self._microphone = microphone
        self._clock = clock
        self._transcriber = transcriber
        self._speaker = speaker
        self._status = status
        self._config = config or WakeConfig()
        self._on_wake = on_wake
        self._loop = PeriodicTask(self._listen_once, 0.0, clock, name="wake-listener")
        self.detections = 0

    @property
    def is_listening(self) -> bool:
        """Return True while the listen loop runs."""
        return self._loop.is_running

    def set_handler(self, on_wake: WakeHandler | None) -> None:
        """Replace the wake handler."""
        self._on_wake = on_wake

    def start(self) -> bool:
        """Start listening.

        Returns:
            False if already listening
        """
        if self._loop.is_running:
            return False
        self._loop.start()
        phrase = self._config.phrases[0] if self._config.phrases else ""
        logger.info(f"Wake listening started ({len(self._config.phrases)} phrases)")
        self._status.notify(f"Wake listening started, say '{phrase}' to begin")
        return True

    def stop(self) -> None:
        """Stop listening and release the microphone."""
        was_running = self._loop.is_running
        self._loop.stop()
        self._microphone.release(self.OWNER)
        if was_running:
            logger.info("Wake listening stopped")

    async def _listen_once(self) -> None:
        try:
            with self._microphone.claim(self.OWNER) as capture:
                segment = await capture.record(self._config.detection_interval_ms)
        except CaptureError as e:
            logger.warning(f"Wake capture failed, retrying in {self._config.retry_delay_s:g}s: {e}")
            await self._clock.sleep(self._config.retry_delay_s)
            return

        try:
            result = await self._transcriber.transcribe(segment)
        except RecognitionError as e:
            logger.warning(f"Wake recognition failed: {e}")
            return

        phrase = matches_wake_phrase(result.text, self._config.phrases)
        if phrase is None:
            if result.text.strip():
                logger.debug(f"No wake phrase in '{result.text.strip()}'")
            return

        logger.info(f"Wake phrase detected: '{phrase}'")
        self.detections += 1
        self.stop()
        await self._handle_wake()

    async def _handle_wake(self) -> None:
        self._status.notify("Wake phrase detected", StatusLevel.SUCCESS)
        if self._speaker.enabled and self._config.acknowledgement:
            try:
                await self._speaker.say(self._config.acknowledgement, persist=False)
            except SynthesisError as e:
                logger.warning(f"Wake acknowledgement failed: {e}")

        if not self._config.auto_enter_dialog or self._on_wake is None:
            return
        result = self._on_wake()
        if inspect.isawaitable(result):
            await result


__all__ = ["WakeListener", "matches_wake_phrase"]
