"""Continuous dialog session.

Drives the record, recognize, respond, speak cycle. While the reply plays
the microphone is monitored for a barge-in; between turns a silence
deadline ends the session and triggers the end-of-session summary.

Session flow:
    IDLE → RECORDING → RECOGNIZING → RESPONDING → PLAYING → WAITING
    WAITING → RECORDING (next turn or detected speech) | ENDED (silence)
    PLAYING → RECORDING (interruption, buffered audio carried over)
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..audio.buffer import PreRecordingBuffer
from ..audio.capture import AudioSegment
from ..audio.microphone import Microphone
from ..audio.monitor import BackgroundInterruptMonitor
from ..config import CustomPromptConfig, DialogConfig
from ..errors import CaptureError, RecognitionError, ResponseError, SynthesisError
from ..llm.model import LanguageModel
from ..notes.editor import NoteEditor, format_turn_entry
from ..status import StatusLevel, StatusReporter
from ..stt.transcriber import Transcriber
from ..timing import Clock, Deadline
from ..tts.speaker import Speaker
from ..vad.classifier import VoiceActivityClassifier
from .prompts import apply_prompt
from .summary import SessionSummaryBuilder, session_file_name

logger = logging.getLogger(__name__)


class DialogPhase(Enum):
    """Where a dialog session is in its turn cycle."""

    IDLE = "idle"
    RECORDING = "recording"
    RECOGNIZING = "recognizing"
    RESPONDING = "responding"
    PLAYING = "playing"
    WAITING = "waiting"
    ENDED = "ended"


class TurnOutcome(Enum):
    """How a single turn finished."""

    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    NO_SPEECH = "no_speech"
    NO_RESPONSE = "no_response"


@dataclass(frozen=True)
class Turn:
    """One completed exchange.

    Attributes:
        user_text: Recognized user utterance
        assistant_text: Reply from the language model
        timestamp: Wall-clock time the reply arrived
    """

    user_text: str
    assistant_text: str
    timestamp: datetime


@dataclass
class DialogSessionState:
    """Observable state of a dialog session.

    Attributes:
        active: True between start and the end of the summary
        turns: Completed turns, oldest first
        is_wake_triggered: Session was started by a wake phrase
        session_id: Epoch-millisecond id of a wake session
        file_name: Fixed note name of a wake session
        silence_deadline: Clock time the silence window closes, if armed
        phase: Current point in the turn cycle
    """

    active: bool = False
    turns: list[Turn] = field(default_factory=list)
    is_wake_triggered: bool = False
    session_id: str | None = None
    file_name: str | None = None
    silence_deadline: float | None = None
    phase: DialogPhase = DialogPhase.IDLE


EndListener = Callable[[], None]


class DialogSession:
    """Multi-turn voice conversation with interruption support."""

    OWNER = "dialog"

    def __init__(
        self,
        microphone: Microphone,
        clock: Clock,
        classifier: VoiceActivityClassifier,
        transcriber: Transcriber,
        model: LanguageModel,
        speaker: Speaker,
        summary: SessionSummaryBuilder,
        status: StatusReporter,
        prebuffer: PreRecordingBuffer,
        monitor: BackgroundInterruptMonitor,
        settings: DialogConfig | None = None,
        prompts: Sequence[CustomPromptConfig] = (),
        interruption_enabled: bool = True,
        editor: NoteEditor | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize dialog session.

        Args:
            microphone: Shared microphone arbiter
            clock: Clock for recordings and the silence deadline
            classifier: Voice activity classifier for between-turn listening
            transcriber: Speech-to-text client
            model: Language model client
            speaker: Speech output
            summary: End-of-session summary writer
            status: User notification channel
            prebuffer: Rolling buffer kept while the session runs
            monitor: Barge-in detector used during playback
            settings: Dialog timing settings
            prompts: Trigger-phrase instructions
            interruption_enabled: Monitor playback for barge-in
            editor: Note that single-shot turns are inserted into
            now: Wall-clock source for turn timestamps
        """
        self._microphone = microphone
        self._clock = clock
        self._classifier = classifier
        self._transcriber = transcriber
        self._model = model
        self._speaker = speaker
        self._summary = summary
        self._status = status
        self._prebuffer = prebuffer
        self._monitor = monitor
        self._settings = settings or DialogConfig()
        self._prompts = list(prompts)
        self._interruption_enabled = interruption_enabled
        self._editor = editor
        self._now = now

        self._state = DialogSessionState()
        self._silence = Deadline(clock, name="dialog-silence")
        self._next_turn_requested = asyncio.Event()
        self._closed = asyncio.Event()
        self._closed.set()
        self._task: asyncio.Task[None] | None = None
        self._end_listeners: list[EndListener] = []
        self._continuous = True
        self._interrupted = False
        self._finishing = False
        self._carry: AudioSegment | None = None

    @property
    def state(self) -> DialogSessionState:
        """Live session state."""
        return self._state

    @property
    def is_active(self) -> bool:
        """Return True while a session is running."""
        return self._state.active

    @property
    def phase(self) -> DialogPhase:
        """Current point in the turn cycle."""
        return self._state.phase

    def add_end_listener(self, listener: EndListener) -> None:
        """Register a callback run after every session has ended."""
        self._end_listeners.append(listener)

    def start(self, wake_triggered: bool = False) -> bool:
        """Begin a continuous session.

        Args:
            wake_triggered: Session was started by a wake phrase

        Returns:
            False if a session is already running
        """
        if self._state.active:
            logger.warning("Dialog session already active")
            return False

        started = self._now()
        self._state = DialogSessionState(active=True, is_wake_triggered=wake_triggered)
        if wake_triggered:
            self._state.session_id = str(int(started.timestamp() * 1000))
            self._state.file_name = session_file_name(started)
            logger.info(f"Wake session {self._state.session_id} started")

        self._continuous = True
        self._carry = None
        self._closed.clear()
        self._model.clear_context()
        self._prebuffer.start()
        self._status.notify("Continuous dialog started, please speak...")
        self._task = asyncio.create_task(self._run(), name="dialog-session")
        return True

    def next_turn(self) -> bool:
        """Start the next turn immediately while waiting.

        Returns:
            True if a waiting session was advanced
        """
        if self._state.active and self._state.phase is DialogPhase.WAITING:
            self._next_turn_requested.set()
            return True
        return False

    async def end(self) -> None:
        """End the session from any state and wait for the summary."""
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        if not self._finishing:
            logger.info("Ending dialog session")
            task.cancel()
        await asyncio.wait({task})
        if self._state.active and not self._finishing:
            # Cancelled before its first step, so _run never cleaned up
            await self._finish()

    async def wait_closed(self) -> None:
        """Wait until the running session, if any, has fully ended."""
        await self._closed.wait()

    async def run_single_turn(self) -> TurnOutcome:
        """Run one turn outside of a continuous session.

        The turn is inserted into the note editor unless the turn came from
        a wake phrase. No interruption monitoring takes place.

        Raises:
            RuntimeError: If a continuous session is running
        """
        if self._state.active:
            raise RuntimeError("Dialog session already active")

        self._state = DialogSessionState(active=True)
        self._continuous = False
        self._model.clear_context()
        try:
            return await self._run_turn(None)
        finally:
            self._state.active = False
            self._set_phase(DialogPhase.IDLE)
            self._continuous = True

    async def _run(self) -> None:
        try:
            prefix: AudioSegment | None = None
            while self._state.active:
                outcome = await self._run_turn(prefix)
                if outcome is TurnOutcome.INTERRUPTED:
                    prefix, self._carry = self._carry, None
                    continue
                prefix = await self._wait_for_next_turn()
        except CaptureError as e:
            logger.error(f"Dialog capture failed: {e}")
            self._status.notify(f"Microphone error, conversation ended: {e}", StatusLevel.ERROR)
        finally:
            await self._finish()

    async def _run_turn(self, prefix: AudioSegment | None) -> TurnOutcome:
        self._cancel_silence()
        self._interrupted = False

        self._set_phase(DialogPhase.RECORDING)
        self._status.notify("Listening...")
        with self._microphone.claim(self.OWNER) as capture:
            fresh = await capture.record(self._settings.capture_duration_ms)
        audio = AudioSegment.concat([prefix, fresh]) if prefix is not None else fresh

        self._set_phase(DialogPhase.RECOGNIZING)
        user_text = await self._recognize(audio)
        if not user_text:
            self._status.notify("Speech recognition failed, please try again", StatusLevel.WARNING)
            return TurnOutcome.NO_SPEECH

        self._set_phase(DialogPhase.RESPONDING)
        reply = await self._respond(user_text)
        if not reply:
            return TurnOutcome.NO_RESPONSE

        turn = Turn(user_text, reply, self._now())
        self._state.turns.append(turn)
        logger.info(f"Turn {len(self._state.turns)}: '{user_text}' -> '{reply[:60]}'")

        if not self._continuous and not self._state.is_wake_triggered:
            self._insert_into_note(turn)

        if self._speaker.enabled:
            await self._speak(reply)
        return TurnOutcome.INTERRUPTED if self._interrupted else TurnOutcome.COMPLETED

    async def _recognize(self, audio: AudioSegment) -> str:
        self._status.notify("Recognizing speech...")
        try:
            result = await self._transcriber.transcribe(audio)
        except RecognitionError as e:
            logger.warning(f"Speech recognition failed: {e}")
            return ""
        return result.text.strip()

    async def _respond(self, user_text: str) -> str:
        self._status.notify("Thinking...")
        prompt = apply_prompt(user_text, self._prompts)
        try:
            response = await self._model.generate(prompt)
        except ResponseError as e:
            logger.error(f"Response generation failed: {e}")
            self._status.notify(f"AI response failed: {e}", StatusLevel.ERROR)
            return ""

        reply = response.text.strip()
        if not reply:
            self._status.notify("AI returned an empty response", StatusLevel.WARNING)
        return reply

    async def _speak(self, reply: str) -> bool:
        self._set_phase(DialogPhase.PLAYING)
        try:
            result = await self._speaker.synthesize(reply)
        except SynthesisError as e:
            logger.warning(f"Speech synthesis failed: {e}")
            self._status.notify(f"Speech synthesis failed: {e}", StatusLevel.WARNING)
            return False

        if self._continuous:
            self._prebuffer.start()
            if self._interruption_enabled:
                self._monitor.start(self._on_interrupt)

        try:
            return await self._speaker.play(result)
        except SynthesisError as e:
            logger.warning(f"Playback failed: {e}")
            self._status.notify(f"Playback failed: {e}", StatusLevel.WARNING)
            return False
        finally:
            self._monitor.stop()

    def _on_interrupt(self) -> None:
        if self._state.phase is not DialogPhase.PLAYING:
            return
        logger.info("Playback interrupted by user speech")
        self._interrupted = True
        self._speaker.stop()
        self._cancel_silence()
        self._carry = self._prebuffer.snapshot()
        self._status.notify("Voice input detected, listening...")

    async def _wait_for_next_turn(self) -> AudioSegment | None:
        self._set_phase(DialogPhase.WAITING)
        self._arm_silence()
        self._status.notify(
            f"Keep talking or wait {self._settings.silence_window_s:g} seconds to end the conversation..."
        )

        self._next_turn_requested.clear()
        waiters = [asyncio.create_task(self._next_turn_requested.wait())]
        if self._settings.listen_between_turns:
            waiters.append(asyncio.create_task(self._listen_for_speech()))
        try:
            done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                task.result()
        finally:
            for task in waiters:
                task.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

        self._cancel_silence()
        carry, self._carry = self._carry, None
        return carry

    async def _listen_for_speech(self) -> None:
        while True:
            with self._microphone.claim(self.OWNER) as capture:
                segment = await capture.record(self._settings.listen_segment_ms)
            if self._classifier.classify(segment):
                logger.info("Speech detected between turns")
                self._carry = segment
                return

    def _arm_silence(self) -> None:
        self._silence.arm(self._settings.silence_window_s, self._on_silence_expired)
        self._state.silence_deadline = self._silence.expires_at

    def _cancel_silence(self) -> None:
        self._silence.cancel()
        self._state.silence_deadline = None

    async def _on_silence_expired(self) -> None:
        self._state.silence_deadline = None
        logger.info("Silence window elapsed, ending dialog")
        self._status.notify("No speech detected, ending conversation")
        await self.end()

    def _insert_into_note(self, turn: Turn) -> None:
        if self._editor is None:
            return
        stamp = turn.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        self._editor.insert_at_cursor(format_turn_entry(turn.user_text, turn.assistant_text, stamp))

    def _set_phase(self, phase: DialogPhase) -> None:
        if self._state.phase is not phase:
            logger.debug(f"Dialog phase: {self._state.phase.value} -> {phase.value}")
        self._state.phase = phase

    async def _finish(self) -> None:
        self._finishing = True
        state = self._state
        state.active = False
        try:
            self._cancel_silence()
            self._monitor.stop()
            self._prebuffer.stop()
            self._speaker.stop()
            self._microphone.release(self.OWNER)
            self._set_phase(DialogPhase.ENDED)

            turns = list(state.turns)
            if turns:
                self._status.notify(f"Conversation ended after {len(turns)} turns, summarizing...")
                await self._summary.persist(turns, file_name=state.file_name, session_id=state.session_id)
            else:
                self._status.notify("Continuous dialog ended")
        finally:
            state.turns.clear()
            state.session_id = None
            state.file_name = None
            state.is_wake_triggered = False
            self._carry = None
            self._task = None
            self._finishing = False
            self._closed.set()
            for listener in list(self._end_listeners):
                listener()


__all__ = [
    "DialogPhase",
    "DialogSession",
    "DialogSessionState",
    "Turn",
    "TurnOutcome",
]
