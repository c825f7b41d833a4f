"""Integration tests for the assistant commands.

Wake phrase hand-over, exclusivity between dialog and dictation, reading
notes aloud and the command line entry point.
"""

import asyncio
from datetime import datetime
from pathlib import Path

import pytest

from colloquy.__main__ import main
from colloquy.dialog import DialogPhase
from colloquy.errors import MicrophoneBusyError
from colloquy.status import StatusLevel

NOW = datetime(2024, 5, 1, 14, 3, 59)
CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


class TestWakeFlow:
    """A wake phrase opens a wake-triggered dialog."""

    def test_wake_phrase_starts_dialog(self, make_rig) -> None:
        """Verify acknowledgement, session id, file name and no archived audio."""

        def configure(config) -> None:
            config.storage.save_audio = True

        async def scenario():
            rig = make_rig(configure)
            rig.transcriber.queue_response("", "well hello assistant how are you")
            assistant = rig.assistant
            assert assistant.start_wake_listening() is True
            assert await rig.clock.run_until(lambda: assistant.dialog.is_active, 5)
            started_at = rig.clock.now()
            state = assistant.dialog.state
            snapshot = (state.is_wake_triggered, state.session_id, state.file_name)
            listening = assistant.wake.is_listening
            archived = list(rig.audio.glob("*.wav")) if rig.audio.exists() else []
            await assistant.shutdown()
            return rig, started_at, snapshot, listening, archived

        rig, started_at, snapshot, listening, archived = asyncio.run(scenario())

        assert started_at == pytest.approx(2.3, abs=0.15)
        assert snapshot == (True, str(int(NOW.timestamp() * 1000)), "2024-05-01 14-03-59.md")
        assert listening is False
        assert archived == []
        assert rig.synthesizer.synthesized_texts == ["Hi, I'm listening"]
        assert rig.assistant.wake.detections == 1
        assert rig.status.contains("Wake phrase detected", StatusLevel.SUCCESS)

    def test_wake_listening_resumes_after_dialog(self, make_rig) -> None:
        """Verify the listener restarts once the wake session has ended."""

        async def scenario():
            rig = make_rig()
            rig.transcriber.queue_response("hey assistant")
            assistant = rig.assistant
            assistant.start_wake_listening()
            assert await rig.clock.run_until(lambda: assistant.dialog.is_active, 5)
            await assistant.end_conversation()
            resumed = assistant.wake.is_listening
            assistant.stop_wake_listening()
            return resumed

        assert asyncio.run(scenario()) is True

    def test_wake_session_summary_uses_fixed_name(self, make_rig) -> None:
        """Verify the wake session note carries its id."""

        async def scenario():
            rig = make_rig(lambda config: setattr(config.wake, "resume_after_dialog", False))
            rig.transcriber.queue_response("hello assistant", "What time is it?")
            rig.model.queue_response("Noon")
            assistant = rig.assistant
            assistant.start_wake_listening()
            assert await rig.clock.run_until(lambda: assistant.dialog.is_active, 5)
            assert await rig.clock.run_until(lambda: assistant.dialog.phase is DialogPhase.WAITING, 10)
            await assistant.end_conversation()
            return rig

        rig = asyncio.run(scenario())
        content = (rig.conversations / "2024-05-01 14-03-59.md").read_text(encoding="utf-8")
        assert content.startswith("## Voice conversation summary (wake session)\n")
        assert f"**Session ID:** {int(NOW.timestamp() * 1000)}" in content
        assert not rig.assistant.wake.is_listening


class TestExclusivity:
    """Dialog and dictation never run together."""

    def test_dictation_blocks_conversation(self, make_rig) -> None:
        """Verify a conversation cannot start while dictating."""

        async def scenario():
            rig = make_rig()
            assert await rig.assistant.toggle_dictation() is True
            started = await rig.assistant.start_conversation()
            holder = rig.assistant.microphone.holder
            await rig.assistant.toggle_dictation()
            return rig, started, holder

        rig, started, holder = asyncio.run(scenario())
        assert started is False
        assert holder == "dictation"
        assert not rig.assistant.dialog.is_active
        assert rig.status.contains("Stop dictation before starting a conversation", StatusLevel.WARNING)

    def test_conversation_blocks_dictation(self, make_rig) -> None:
        """Verify dictation cannot start during a conversation."""

        async def scenario():
            rig = make_rig()
            await rig.assistant.start_conversation()
            await rig.clock.advance(1.0)
            started = await rig.assistant.toggle_dictation()
            with pytest.raises(MicrophoneBusyError):
                rig.assistant.microphone.acquire("dictation")
            await rig.assistant.end_conversation()
            return rig, started

        rig, started = asyncio.run(scenario())
        assert started is False
        assert not rig.assistant.dictation.is_active
        assert rig.status.contains("End the conversation before dictating", StatusLevel.WARNING)

    def test_start_while_waiting_advances_turn(self, make_rig) -> None:
        """Verify the start command moves a waiting dialog to its next turn."""

        async def scenario():
            rig = make_rig(lambda config: setattr(config.dialog, "listen_between_turns", False))
            rig.transcriber.queue_response("hi")
            rig.model.queue_response("hello")
            dialog = rig.assistant.dialog
            await rig.assistant.start_conversation()
            assert await rig.clock.run_until(lambda: dialog.phase is DialogPhase.WAITING, 10)
            advanced = await rig.assistant.start_conversation()
            await rig.clock.run_until(lambda: dialog.phase is DialogPhase.RECORDING, 1)
            phase = dialog.phase
            await rig.assistant.end_conversation()
            return advanced, phase

        advanced, phase = asyncio.run(scenario())
        assert advanced is True
        assert phase is DialogPhase.RECORDING


class TestReadAloud:
    """Reading a note aloud."""

    def test_reads_cleaned_text(self, make_rig) -> None:
        """Verify markdown is stripped before synthesis."""

        async def scenario():
            rig = make_rig()
            task = asyncio.create_task(rig.assistant.read_aloud("# Title\n**Bold** text"))
            await rig.clock.advance(1.0)
            return rig, await task

        rig, completed = asyncio.run(scenario())
        assert completed is True
        assert rig.synthesizer.synthesized_texts == ["Title\nBold text"]

    def test_nothing_to_read(self, make_rig) -> None:
        """Verify empty notes are reported."""

        async def scenario():
            rig = make_rig()
            return rig, await rig.assistant.read_aloud("```\n```")

        rig, completed = asyncio.run(scenario())
        assert completed is False
        assert rig.status.contains("Nothing to read", StatusLevel.WARNING)
        assert rig.synthesizer.call_count == 0

    def test_tts_disabled(self, make_rig) -> None:
        """Verify reading is refused when speech output is off."""

        async def scenario():
            rig = make_rig(lambda config: setattr(config.tts, "enabled", False))
            return rig, await rig.assistant.read_aloud("hello")

        rig, completed = asyncio.run(scenario())
        assert completed is False
        assert rig.status.texts(StatusLevel.ERROR) == ["Text-to-speech is disabled"]


class TestCommandLine:
    """Tests for the colloquy entry point."""

    def test_dry_run(self) -> None:
        """Verify config loads and the process exits cleanly."""
        assert main(["--dry-run", "--config", str(CONFIG_DIR / "test.yaml")]) == 0

    def test_missing_config(self, tmp_path: Path) -> None:
        """Verify a missing config file is an error exit."""
        assert main(["--config", str(tmp_path / "missing.yaml")]) == 1

    def test_read_mode_with_mocks(self, tmp_path: Path) -> None:
        """Verify read mode speaks the given text with mock audio."""
        note = tmp_path / "note.md"
        code = main(
            [
                "--config",
                str(CONFIG_DIR / "test.yaml"),
                "--mode",
                "read",
                "--text",
                "hello",
                "--note",
                str(note),
            ]
        )
        assert code == 0
        assert note.exists()
