"""Dictation into the current note.

Speech is collected in short segments. After a pause of a couple of
seconds the collected audio is transcribed and inserted at a tracked
cursor, so text keeps flowing into the note while the user speaks. A long
silence ends the session.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from .audio.capture import AudioCapture, AudioSegment
from .audio.microphone import Microphone
from .config import DictationConfig
from .errors import CaptureError, RecognitionError
from .notes.editor import Cursor, NoteEditor
from .status import StatusLevel, StatusReporter
from .stt.transcriber import Transcriber
from .timing import Clock, PeriodicTask
from .vad.classifier import VoiceActivityClassifier

logger = logging.getLogger(__name__)


class DictationPhase(Enum):
    """Lifecycle of a dictation session."""

    IDLE = "idle"
    LISTENING = "listening"
    ENDED = "ended"


@dataclass
class DictationState:
    """Observable state of a dictation session.

    Attributes:
        active: True while listening
        accumulated_segments: Speech segments not yet transcribed
        last_speech_at: Clock time of the most recent speech segment
        session_start_at: Clock time the session started
        insert_cursor: Where the next recognized text goes
        recognized: Text inserted so far, in order
        phase: Lifecycle phase
    """

    active: bool = False
    accumulated_segments: list[AudioSegment] = field(default_factory=list)
    last_speech_at: float | None = None
    session_start_at: float | None = None
    insert_cursor: Cursor | None = None
    recognized: list[str] = field(default_factory=list)
    phase: DictationPhase = DictationPhase.IDLE

    @property
    def text(self) -> str:
        """All recognized text joined with spaces."""
        return " ".join(self.recognized)


class DictationSession:
    """Voice dictation that streams recognized text into a note."""

    OWNER = "dictation"

    def __init__(
        self,
        microphone: Microphone,
        clock: Clock,
        classifier: VoiceActivityClassifier,
        transcriber: Transcriber,
        editor: NoteEditor,
        status: StatusReporter,
        config: DictationConfig | None = None,
    ) -> None:
        """Initialize dictation session.

        Args:
            microphone: Shared microphone arbiter
            clock: Clock for recordings and the timeout check
            classifier: Decides which segments hold speech
            transcriber: Speech-to-text client
            editor: Note receiving the text
            status: User notification channel
            config: Dictation timing settings
        """
        self._microphone = microphone
        self._clock = clock
        self._classifier = classifier
        self._transcriber = transcriber
        self._editor = editor
        self._status = status
        self._config = config or DictationConfig()

        self._state = DictationState()
        self._capture: AudioCapture | None = None
        self._flush_task: asyncio.Task[None] | None = None
        self._ending = False
        self._closed = asyncio.Event()
        self._closed.set()
        self._end_listeners: list[Callable[[], None]] = []
        self._listen_loop = PeriodicTask(self._listen_step, 0.0, clock, name="dictation-listen")
        self._timeout_loop = PeriodicTask(
            self._check_timeout,
            self._config.check_interval_s,
            clock,
            name="dictation-timeout",
            initial_delay=True,
        )

    @property
    def state(self) -> DictationState:
        """Live session state."""
        return self._state

    @property
    def is_active(self) -> bool:
        """Return True while dictating."""
        return self._state.active

    def add_end_listener(self, listener: Callable[[], None]) -> None:
        """Register a callback run after every session has ended."""
        self._end_listeners.append(listener)

    def start(self) -> bool:
        """Begin dictating at the editor's cursor.

        Returns:
            False if already active or the microphone is busy
        """
        if self._state.active:
            return False
        try:
            self._capture = self._microphone.acquire(self.OWNER)
        except CaptureError as e:
            logger.warning(f"Dictation could not start: {e}")
            self._status.notify(f"Microphone unavailable: {e}", StatusLevel.ERROR)
            return False

        now = self._clock.now()
        self._state = DictationState(
            active=True,
            last_speech_at=now,
            session_start_at=now,
            insert_cursor=self._editor.get_cursor(),
            phase=DictationPhase.LISTENING,
        )
        self._closed.clear()
        self._listen_loop.start()
        self._timeout_loop.start()
        logger.info("Dictation started")
        self._status.notify(
            f"Dictation started, it ends after {self._config.silence_timeout_s:g} seconds of silence"
        )
        return True

    async def stop(self) -> None:
        """End dictation now.

        Segments not yet transcribed are discarded and a transcription in
        progress is abandoned.
        """
        if not self._state.active or self._ending:
            return
        logger.info("Dictation stopped manually")
        await self._end(cancel_flush=True)

    async def toggle(self) -> bool:
        """Stop if dictating, otherwise start.

        Returns:
            True if dictation is active afterwards
        """
        if self._state.active:
            await self.stop()
            return False
        return self.start()

    async def wait_closed(self) -> None:
        """Wait until the running session, if any, has ended."""
        await self._closed.wait()

    async def _listen_step(self) -> None:
        capture = self._capture
        if capture is None:
            return
        try:
            segment = await capture.record(self._config.segment_ms)
        except CaptureError as e:
            logger.error(f"Dictation capture failed: {e}")
            self._status.notify(f"Microphone error, dictation ended: {e}", StatusLevel.ERROR)
            await self._end(cancel_flush=False)
            return

        state = self._state
        now = self._clock.now()
        if self._classifier.classify(segment):
            state.accumulated_segments.append(segment)
            state.last_speech_at = now
            return

        last = state.last_speech_at if state.last_speech_at is not None else now
        silent_for = now - last
        if state.accumulated_segments and silent_for >= self._config.silence_interval_s:
            segments, state.accumulated_segments = state.accumulated_segments, []
            self._flush_task = asyncio.create_task(self._flush(segments), name="dictation-flush")
            # Outlives the listen loop; only stop() cancels it
            await asyncio.shield(self._flush_task)

    async def _flush(self, segments: list[AudioSegment]) -> None:
        audio = AudioSegment.concat(segments)
        logger.debug(f"Transcribing {len(segments)} dictation segments ({audio.duration_ms:.0f}ms)")
        try:
            result = await self._transcriber.transcribe(audio)
        except RecognitionError as e:
            logger.warning(f"Dictation recognition failed: {e}")
            self._status.notify("Dictation recognition failed, continuing", StatusLevel.WARNING)
            return

        text = result.text.strip()
        if not text:
            return

        state = self._state
        cursor = state.insert_cursor or self._editor.get_cursor()
        insertion = text + " "
        self._editor.set_cursor(cursor)
        self._editor.insert_at_cursor(insertion)
        state.insert_cursor = cursor.advanced(len(insertion))
        state.recognized.append(text)
        logger.info(f"Dictated: '{text}'")

    async def _check_timeout(self) -> None:
        state = self._state
        if not state.active or state.last_speech_at is None:
            return
        silent_for = self._clock.now() - state.last_speech_at
        if silent_for >= self._config.silence_timeout_s:
            logger.info(f"Dictation timed out after {silent_for:.1f}s of silence")
            await self._end(cancel_flush=False)

    async def _end(self, cancel_flush: bool) -> None:
        if self._ending:
            return
        self._ending = True
        try:
            self._timeout_loop.stop()
            self._listen_loop.stop()

            flush = self._flush_task
            if flush is not None and not flush.done():
                if cancel_flush:
                    flush.cancel()
                await asyncio.wait({flush})
            self._flush_task = None
            self._state.accumulated_segments.clear()
        finally:
            self._close()

    def _close(self) -> None:
        state = self._state
        state.active = False
        state.phase = DictationPhase.ENDED
        self._capture = None
        self._microphone.release(self.OWNER)
        self._ending = False
        self._closed.set()

        if state.recognized:
            self._status.notify(f"Dictation complete: {state.text}", StatusLevel.SUCCESS)
        else:
            self._status.notify("Dictation ended, no speech recognized", StatusLevel.WARNING)

        for listener in list(self._end_listeners):
            listener()


__all__ = ["DictationPhase", "DictationSession", "DictationState"]
