"""Shared fixtures for end-to-end session tests.

Every component runs against a VirtualClock with mock audio, speech and
language backends, so whole conversations play out in virtual time.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import pytest

from colloquy.assistant import VoiceAssistant
from colloquy.audio.mock_capture import MockAudioCapture, MockAudioPlayback
from colloquy.config import ColloquyConfig
from colloquy.llm import MockLanguageModel
from colloquy.notes import MarkdownNoteEditor
from colloquy.status import RecordingStatusReporter
from colloquy.stt import MockTranscriber
from colloquy.timing import VirtualClock
from colloquy.tts import MockSynthesizer

NOW = datetime(2024, 5, 1, 14, 3, 59)


@dataclass
class Rig:
    """A fully mocked assistant and handles on its parts."""

    config: ColloquyConfig
    clock: VirtualClock
    capture: MockAudioCapture
    playback: MockAudioPlayback
    transcriber: MockTranscriber
    model: MockLanguageModel
    synthesizer: MockSynthesizer
    status: RecordingStatusReporter
    editor: MarkdownNoteEditor
    assistant: VoiceAssistant
    conversations: Path
    audio: Path


@pytest.fixture
def make_rig(tmp_path: Path) -> Callable[..., Rig]:
    """Factory for rigs; call it inside the running event loop."""

    def build(configure: Callable[[ColloquyConfig], None] | None = None) -> Rig:
        config = ColloquyConfig()
        config.storage.conversation_dir = str(tmp_path / "conversations")
        config.storage.audio_dir = str(tmp_path / "audio")
        if configure is not None:
            configure(config)

        clock = VirtualClock()
        capture = MockAudioCapture(clock)
        playback = MockAudioPlayback(clock)
        transcriber = MockTranscriber()
        model = MockLanguageModel()
        synthesizer = MockSynthesizer()
        status = RecordingStatusReporter()
        editor = MarkdownNoteEditor()
        assistant = VoiceAssistant.from_config(
            config,
            use_mocks=True,
            clock=clock,
            editor=editor,
            status=status,
            capture=capture,
            playback=playback,
            transcriber=transcriber,
            model=model,
            synthesizer=synthesizer,
            now=lambda: NOW,
        )
        return Rig(
            config=config,
            clock=clock,
            capture=capture,
            playback=playback,
            transcriber=transcriber,
            model=model,
            synthesizer=synthesizer,
            status=status,
            editor=editor,
            assistant=assistant,
            conversations=tmp_path / "conversations",
            audio=tmp_path / "audio",
        )

    return build
