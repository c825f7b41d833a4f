"""Integration tests for dictation into a note."""

import asyncio

import pytest

from colloquy.dictation import DictationPhase
from colloquy.errors import CaptureError
from colloquy.notes import Cursor
from colloquy.status import StatusLevel


class TestDictationFlow:
    """Speech is flushed after short pauses and ends on long silence."""

    def test_two_phrases_then_timeout(self, make_rig) -> None:
        """Verify flush times, inserted text and the silence timeout."""

        async def scenario():
            rig = make_rig()
            rig.capture.add_speech(0.0, 1.0)
            rig.capture.add_speech(4.5, 1.0)
            rig.transcriber.queue_response("hello", "world")
            dictation = rig.assistant.dictation
            flushes: list[float] = []

            assert await rig.assistant.toggle_dictation() is True
            while dictation.is_active and rig.clock.now() < 30:
                calls = rig.transcriber.call_count
                await rig.clock.advance(0.5)
                if rig.transcriber.call_count > calls:
                    flushes.append(rig.clock.now())
            ended_at = rig.clock.now()
            await asyncio.wait_for(dictation.wait_closed(), 5)
            return rig, flushes, ended_at

        rig, flushes, ended_at = asyncio.run(scenario())

        assert flushes == [pytest.approx(3.0), pytest.approx(7.5)]
        assert ended_at == pytest.approx(16.0)
        assert rig.editor.text == "hello world "
        state = rig.assistant.dictation.state
        assert state.phase is DictationPhase.ENDED
        assert state.text == "hello world"
        assert rig.status.texts(StatusLevel.SUCCESS) == ["Dictation complete: hello world"]
        assert rig.assistant.microphone.is_idle

    def test_segments_cleared_after_every_flush(self, make_rig) -> None:
        """Verify the pending audio is dropped even when nothing is recognized."""

        async def scenario():
            rig = make_rig()
            rig.capture.add_speech(0.0, 1.0)
            rig.transcriber.queue_response("")
            dictation = rig.assistant.dictation
            dictation.start()
            await rig.clock.advance(1.0)
            pending_before = len(dictation.state.accumulated_segments)
            await rig.clock.advance(2.0)
            pending_after = len(dictation.state.accumulated_segments)
            await dictation.stop()
            return rig, pending_before, pending_after

        rig, pending_before, pending_after = asyncio.run(scenario())
        assert pending_before == 2
        assert pending_after == 0
        assert rig.transcriber.call_count == 1
        assert rig.editor.text == ""
        assert rig.status.contains("Dictation ended, no speech recognized", StatusLevel.WARNING)

    def test_text_goes_to_cursor_at_start(self, make_rig) -> None:
        """Verify text is inserted where the cursor was when dictation began."""

        async def scenario():
            rig = make_rig()
            rig.editor.insert_at_cursor("Title\nBody")
            rig.editor.set_cursor(Cursor(1, 0))
            rig.capture.add_speech(0.0, 0.5)
            rig.transcriber.queue_response("Dictated")
            rig.assistant.dictation.start()
            await rig.clock.advance(3.0)
            await rig.assistant.dictation.stop()
            return rig

        rig = asyncio.run(scenario())
        assert rig.editor.text == "Title\nDictated Body"

    def test_manual_stop_discards_pending_speech(self, make_rig) -> None:
        """Verify stop() drops audio not yet transcribed."""

        async def scenario():
            rig = make_rig()
            rig.capture.add_speech(0.0, 3.0)
            rig.transcriber.set_response("never")
            dictation = rig.assistant.dictation
            dictation.start()
            await rig.clock.advance(1.5)
            assert dictation.state.accumulated_segments
            active = await rig.assistant.toggle_dictation()
            await rig.clock.advance(5.0)
            return rig, active

        rig, active = asyncio.run(scenario())
        assert active is False
        assert rig.transcriber.call_count == 0
        assert rig.assistant.dictation.state.accumulated_segments == []
        assert rig.editor.text == ""

    def test_recognition_error_keeps_listening(self, make_rig) -> None:
        """Verify a failed flush is reported and dictation continues."""

        async def scenario():
            rig = make_rig()
            rig.capture.add_speech(0.0, 0.5)
            rig.capture.add_speech(3.0, 0.5)
            rig.transcriber.queue_error("garbled")
            rig.transcriber.queue_response("second")
            dictation = rig.assistant.dictation
            dictation.start()
            await rig.clock.advance(6.0)
            active = dictation.is_active
            await dictation.stop()
            return rig, active

        rig, active = asyncio.run(scenario())
        assert active is True
        assert rig.status.contains("Dictation recognition failed, continuing", StatusLevel.WARNING)
        assert rig.editor.text == "second "

    def test_capture_error_ends_dictation(self, make_rig) -> None:
        """Verify a microphone failure ends the session."""

        async def scenario():
            rig = make_rig()
            dictation = rig.assistant.dictation
            dictation.start()
            await rig.clock.advance(0.5)
            rig.capture.set_error(CaptureError("unplugged"))
            await rig.clock.advance(1.0)
            await asyncio.wait_for(dictation.wait_closed(), 5)
            return rig

        rig = asyncio.run(scenario())
        assert not rig.assistant.dictation.is_active
        assert rig.status.contains("Microphone error, dictation ended", StatusLevel.ERROR)
        assert rig.assistant.microphone.is_idle

    def test_no_activity_after_end(self, make_rig) -> None:
        """Verify no recordings happen once dictation has ended."""

        async def scenario():
            rig = make_rig()
            rig.assistant.dictation.start()
            await rig.clock.advance(11.0)
            assert not rig.assistant.dictation.is_active
            recorded = len(rig.capture.record_log)
            await rig.clock.advance(10.0)
            return rig, recorded

        rig, recorded = asyncio.run(scenario())
        assert len(rig.capture.record_log) == recorded
        assert rig.clock.pending_sleepers == 0
