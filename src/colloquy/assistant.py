"""Voice assistant wiring.

Builds every component from configuration and exposes the user commands:
start or advance a conversation, end it, toggle dictation, wake phrase
listening and reading a note aloud. Dialog and dictation never run at the
same time.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from .audio import (
    BackgroundInterruptMonitor,
    Microphone,
    PreRecordingBuffer,
    create_audio_capture,
    create_audio_playback,
)
from .audio.capture import AudioCapture
from .audio.playback import AudioPlayback
from .config import ColloquyConfig
from .dialog import DialogSession, SessionSummaryBuilder, TurnOutcome, WakeListener
from .dictation import DictationSession
from .errors import CaptureError, SynthesisError
from .llm import create_language_model
from .llm.model import LanguageModel
from .notes.editor import MarkdownNoteEditor, NoteEditor
from .status import LoggingStatusReporter, StatusLevel, StatusReporter
from .storage import AudioArchive, ConversationStore
from .stt import create_transcriber
from .stt.transcriber import Transcriber
from .timing import Clock, MonotonicClock
from .tts import create_synthesizer
from .tts.reading import clean_markdown_text
from .tts.speaker import Speaker
from .tts.synthesizer import Synthesizer
from .vad import create_classifier

logger = logging.getLogger(__name__)


class VoiceAssistant:
    """Owns the shared microphone and routes commands to sessions."""

    def __init__(
        self,
        config: ColloquyConfig,
        microphone: Microphone,
        speaker: Speaker,
        dialog: DialogSession,
        dictation: DictationSession,
        wake: WakeListener,
        status: StatusReporter,
    ) -> None:
        """Initialize assistant.

        Args:
            config: Full configuration
            microphone: Shared microphone arbiter
            speaker: Speech output
            dialog: Dialog session engine
            dictation: Dictation session
            wake: Wake phrase listener
            status: User notification channel
        """
        self._config = config
        self._microphone = microphone
        self._speaker = speaker
        self._dialog = dialog
        self._dictation = dictation
        self._wake = wake
        self._status = status
        self._resume_wake = False

        self._wake.set_handler(self._on_wake)
        self._dialog.add_end_listener(self._resume_wake_listening)
        self._dictation.add_end_listener(self._resume_wake_listening)

    @classmethod
    def from_config(
        cls,
        config: ColloquyConfig,
        use_mocks: bool = False,
        clock: Clock | None = None,
        editor: NoteEditor | None = None,
        status: StatusReporter | None = None,
        capture: AudioCapture | None = None,
        playback: AudioPlayback | None = None,
        transcriber: Transcriber | None = None,
        model: LanguageModel | None = None,
        synthesizer: Synthesizer | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> "VoiceAssistant":
        """Create an assistant from configuration.

        Components passed explicitly take precedence over configured ones.

        Args:
            config: Full configuration
            use_mocks: Use mock implementations for testing
            clock: Clock for every timer (monotonic if None)
            editor: Note editor for single-shot turns and dictation
            status: Notification channel (logging reporter if None)
            capture: Audio capture override
            playback: Audio playback override
            transcriber: Speech-to-text override
            model: Language model override
            synthesizer: Text-to-speech override
            now: Wall-clock source for timestamps and file names

        Returns:
            Configured VoiceAssistant
        """
        clock = clock or MonotonicClock()
        status = status or LoggingStatusReporter()
        editor = editor or MarkdownNoteEditor()

        use_mock_audio = use_mocks or config.testing.mock_audio_enabled
        capture = capture or create_audio_capture(config.audio, use_mock=use_mock_audio, clock=clock)
        playback = playback or create_audio_playback(config.audio, use_mock=use_mock_audio, clock=clock)
        transcriber = transcriber or create_transcriber(config.stt, use_mock=use_mocks)
        model = model or create_language_model(config.llm, use_mock=use_mocks)
        synthesizer = synthesizer or create_synthesizer(config.tts, use_mock=use_mocks)
        model.set_system_prompt(config.llm.system_prompt)

        archive = None
        if config.storage.save_audio:
            archive = AudioArchive(Path(config.storage.audio_dir).expanduser())

        microphone = Microphone(capture)
        speaker = Speaker(synthesizer, playback, archive=archive, enabled=config.tts.enabled)
        classifier = create_classifier(config.voice_detection)
        vd = config.voice_detection

        summary = SessionSummaryBuilder(
            model,
            ConversationStore(Path(config.storage.conversation_dir).expanduser()),
            status,
            now=now,
        )
        dialog = DialogSession(
            microphone,
            clock,
            classifier,
            transcriber,
            model,
            speaker,
            summary,
            status,
            prebuffer=PreRecordingBuffer(
                microphone,
                clock,
                capacity=config.prerecording.capacity,
                segment_ms=config.prerecording.segment_ms,
            ),
            monitor=BackgroundInterruptMonitor(
                microphone,
                clock,
                threshold=vd.threshold,
                interval_ms=vd.sensitivity_ms,
                required=vd.required_consecutive,
            ),
            settings=config.dialog,
            prompts=config.prompts,
            interruption_enabled=vd.interruption_enabled,
            editor=editor,
            now=now,
        )
        dictation = DictationSession(
            microphone, clock, classifier, transcriber, editor, status, config.dictation
        )
        wake = WakeListener(microphone, clock, transcriber, speaker, status, config.wake)

        return cls(config, microphone, speaker, dialog, dictation, wake, status)

    @property
    def dialog(self) -> DialogSession:
        """The dialog session engine."""
        return self._dialog

    @property
    def dictation(self) -> DictationSession:
        """The dictation session."""
        return self._dictation

    @property
    def wake(self) -> WakeListener:
        """The wake phrase listener."""
        return self._wake

    @property
    def microphone(self) -> Microphone:
        """The shared microphone arbiter."""
        return self._microphone

    async def start_conversation(self) -> bool:
        """Start a conversation, or advance a waiting one to its next turn.

        In single-shot mode one turn is run and inserted into the note.

        Returns:
            True if a turn was started
        """
        if self._dictation.is_active:
            self._status.notify("Stop dictation before starting a conversation", StatusLevel.WARNING)
            return False

        if self._dialog.is_active:
            if self._dialog.next_turn():
                return True
            self._status.notify("Conversation in progress, please wait", StatusLevel.WARNING)
            return False

        self._pause_wake()
        if self._config.dialog.continuous:
            return self._dialog.start()

        try:
            outcome = await self._dialog.run_single_turn()
        except CaptureError as e:
            logger.error(f"Single-shot turn failed: {e}")
            self._status.notify(f"Microphone unavailable: {e}", StatusLevel.ERROR)
            return False
        finally:
            self._resume_wake_listening()
        return outcome is TurnOutcome.COMPLETED

    def next_turn(self) -> bool:
        """Start the next turn of a waiting conversation."""
        return self._dialog.next_turn()

    async def end_conversation(self) -> None:
        """End the running conversation, if any."""
        await self._dialog.end()

    async def toggle_dictation(self) -> bool:
        """Start dictation, or stop it if running.

        Returns:
            True if dictation is active afterwards
        """
        if self._dictation.is_active:
            await self._dictation.stop()
            return False

        if self._dialog.is_active:
            self._status.notify("End the conversation before dictating", StatusLevel.WARNING)
            return False

        self._pause_wake()
        started = self._dictation.start()
        if not started:
            self._resume_wake_listening()
        return started

    def start_wake_listening(self) -> bool:
        """Listen for wake phrases until stopped."""
        if self._dialog.is_active or self._dictation.is_active:
            self._resume_wake = True
            return False
        self._resume_wake = False
        return self._wake.start()

    def stop_wake_listening(self) -> None:
        """Stop listening for wake phrases."""
        self._resume_wake = False
        self._wake.stop()

    async def read_aloud(self, text: str) -> bool:
        """Speak a note or selection with markdown removed.

        Returns:
            True if the whole text was played
        """
        if not self._speaker.enabled:
            self._status.notify("Text-to-speech is disabled", StatusLevel.ERROR)
            return False

        cleaned = clean_markdown_text(text)
        if not cleaned:
            self._status.notify("Nothing to read", StatusLevel.WARNING)
            return False

        self._status.notify("Reading aloud...")
        try:
            return await self._speaker.say(cleaned)
        except SynthesisError as e:
            logger.error(f"Read aloud failed: {e}")
            self._status.notify(f"Read aloud failed: {e}", StatusLevel.ERROR)
            return False

    async def shutdown(self) -> None:
        """Stop every session and close the microphone."""
        logger.info("Shutting down voice assistant")
        self._resume_wake = False
        self._wake.stop()
        await self._dictation.stop()
        await self._dialog.end()
        self._speaker.stop()
        self._microphone.close()

    def _pause_wake(self) -> None:
        if self._wake.is_listening:
            self._wake.stop()
            self._resume_wake = self._config.wake.resume_after_dialog

    def _resume_wake_listening(self) -> None:
        if self._resume_wake and not self._dialog.is_active and not self._dictation.is_active:
            self._resume_wake = False
            self._wake.start()

    def _on_wake(self) -> None:
        if self._dialog.is_active or self._dictation.is_active:
            logger.warning("Wake phrase ignored, a session is already running")
            return
        self._resume_wake = self._config.wake.resume_after_dialog
        self._dialog.start(wake_triggered=True)


__all__ = ["VoiceAssistant"]
