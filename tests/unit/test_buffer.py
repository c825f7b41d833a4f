"""Unit tests for the rolling buffer, pre-recording and interrupt monitor."""

import asyncio

import pytest

from colloquy.audio import (
    AudioSegment,
    BackgroundInterruptMonitor,
    Microphone,
    PreRecordingBuffer,
    RollingAudioBuffer,
)
from colloquy.audio.mock_capture import MockAudioCapture
from colloquy.errors import CaptureError
from colloquy.timing import VirtualClock


def _marked(index: int) -> AudioSegment:
    return AudioSegment(data=index.to_bytes(2, "little"), captured_at=float(index))


class TestRollingAudioBuffer:
    """Tests for the fixed-capacity FIFO."""

    @pytest.mark.parametrize("capacity", [1, 3, 10])
    @pytest.mark.parametrize("pushes", [0, 1, 5, 25])
    def test_never_exceeds_capacity_and_keeps_newest(self, capacity: int, pushes: int) -> None:
        """Verify size bound, eviction of the oldest and preserved order."""
        buffer = RollingAudioBuffer(capacity)
        for i in range(pushes):
            buffer.push(_marked(i))
            assert len(buffer) <= capacity

        expected = list(range(max(0, pushes - capacity), pushes))
        assert [int(s.captured_at) for s in buffer.segments()] == expected

    def test_push_beyond_capacity_evicts_exactly_one(self) -> None:
        """Verify one push past capacity drops only the oldest entry."""
        buffer = RollingAudioBuffer(3)
        for i in range(3):
            buffer.push(_marked(i))
        buffer.push(_marked(3))
        assert [int(s.captured_at) for s in buffer.segments()] == [1, 2, 3]

    def test_snapshot(self) -> None:
        """Verify snapshot concatenates without draining."""
        buffer = RollingAudioBuffer(2)
        assert buffer.snapshot() is None
        buffer.push(_marked(1))
        buffer.push(_marked(2))
        snapshot = buffer.snapshot()
        assert snapshot is not None
        assert snapshot.data == b"\x01\x00\x02\x00"
        assert len(buffer) == 2

    def test_clear(self) -> None:
        """Verify clear empties the buffer."""
        buffer = RollingAudioBuffer(2)
        buffer.push(_marked(1))
        buffer.clear()
        assert len(buffer) == 0

    def test_invalid_capacity(self) -> None:
        """Verify a non-positive capacity is rejected."""
        with pytest.raises(ValueError):
            RollingAudioBuffer(0)


class TestPreRecordingBuffer:
    """Tests for continuous pre-recording."""

    def test_keeps_last_two_seconds(self) -> None:
        """Verify ten 200ms segments are retained while recording."""

        async def scenario() -> tuple[AudioSegment | None, Microphone, PreRecordingBuffer]:
            clock = VirtualClock()
            mic = Microphone(MockAudioCapture(clock))
            prebuffer = PreRecordingBuffer(mic, clock)
            prebuffer.start()
            await clock.advance(5.0)
            snapshot = prebuffer.snapshot()
            assert prebuffer.is_running
            assert mic.taps == frozenset({PreRecordingBuffer.OWNER})
            prebuffer.stop()
            return snapshot, mic, prebuffer

        snapshot, mic, prebuffer = asyncio.run(scenario())
        assert snapshot is not None
        assert snapshot.duration_ms == pytest.approx(2000.0)
        assert snapshot.captured_at == pytest.approx(3.0)
        assert mic.is_idle
        assert not prebuffer.is_running

    def test_restart_clears_old_audio(self) -> None:
        """Verify start() begins with an empty buffer."""

        async def scenario() -> int:
            clock = VirtualClock()
            prebuffer = PreRecordingBuffer(Microphone(MockAudioCapture(clock)), clock)
            prebuffer.start()
            await clock.advance(1.0)
            prebuffer.stop()
            prebuffer.start()
            size = len(prebuffer.buffer)
            prebuffer.stop()
            return size

        assert asyncio.run(scenario()) == 0

    def test_capture_failure_stops_buffer(self) -> None:
        """Verify a capture error stops recording and drops the tap."""

        async def scenario() -> tuple[bool, Microphone]:
            clock = VirtualClock()
            capture = MockAudioCapture(clock)
            mic = Microphone(capture)
            prebuffer = PreRecordingBuffer(mic, clock)
            prebuffer.start()
            await clock.advance(0.5)
            capture.set_error(CaptureError("unplugged"))
            await clock.advance(0.5)
            return prebuffer.is_running, mic

        running, mic = asyncio.run(scenario())
        assert running is False
        assert mic.is_idle


class TestBackgroundInterruptMonitor:
    """Tests for barge-in detection."""

    def test_fires_after_three_loud_polls(self) -> None:
        """Verify the callback fires once after three consecutive loud polls."""

        async def scenario() -> tuple[list[float], BackgroundInterruptMonitor, Microphone]:
            clock = VirtualClock()
            capture = MockAudioCapture(clock)
            capture.add_speech(1.0, 3.0)
            mic = Microphone(capture)
            monitor = BackgroundInterruptMonitor(mic, clock)
            fired: list[float] = []
            monitor.start(lambda: fired.append(clock.now()))
            await clock.advance(5.0)
            return fired, monitor, mic

        fired, monitor, mic = asyncio.run(scenario())
        assert fired == [pytest.approx(1.3)]
        assert monitor.fired_count == 1
        assert not monitor.is_running
        assert mic.is_idle

    def test_quiet_poll_resets_count(self) -> None:
        """Verify two loud polls then a quiet one do not fire."""

        async def scenario() -> tuple[list[float], int]:
            clock = VirtualClock()
            capture = MockAudioCapture(clock)
            capture.add_speech(1.02, 0.2)
            capture.add_speech(1.52, 0.2)
            monitor = BackgroundInterruptMonitor(Microphone(capture), clock)
            fired: list[float] = []
            monitor.start(lambda: fired.append(clock.now()))
            await clock.advance(3.0)
            consecutive = monitor.consecutive
            monitor.stop()
            return fired, consecutive

        fired, consecutive = asyncio.run(scenario())
        assert fired == []
        assert consecutive == 0

    def test_never_fires_after_stop(self) -> None:
        """Verify stop() prevents any later callback."""

        async def scenario() -> list[float]:
            clock = VirtualClock()
            capture = MockAudioCapture(clock)
            capture.add_speech(0.0, 10.0)
            monitor = BackgroundInterruptMonitor(Microphone(capture), clock)
            fired: list[float] = []
            monitor.start(lambda: fired.append(clock.now()))
            await clock.advance(0.25)
            monitor.stop()
            await clock.advance(5.0)
            return fired

        assert asyncio.run(scenario()) == []

    def test_threshold_and_interval(self) -> None:
        """Verify a higher threshold ignores speech and interval paces polls."""

        async def scenario() -> tuple[list[float], list[float]]:
            clock = VirtualClock()
            capture = MockAudioCapture(clock)
            capture.add_speech(0.0, 10.0, amplitude=0.3)
            mic = Microphone(capture)
            deaf = BackgroundInterruptMonitor(mic, clock, threshold=250)
            slow = BackgroundInterruptMonitor(mic, clock, interval_ms=500)
            deaf_fired: list[float] = []
            slow_fired: list[float] = []
            deaf.start(lambda: deaf_fired.append(clock.now()))
            slow.start(lambda: slow_fired.append(clock.now()))
            await clock.advance(3.0)
            deaf.stop()
            return deaf_fired, slow_fired

        deaf_fired, slow_fired = asyncio.run(scenario())
        assert deaf_fired == []
        assert slow_fired == [pytest.approx(1.5)]

    def test_async_callback(self) -> None:
        """Verify a coroutine callback is awaited."""

        async def scenario() -> list[str]:
            clock = VirtualClock()
            capture = MockAudioCapture(clock)
            capture.add_speech(0.0, 1.0)
            monitor = BackgroundInterruptMonitor(Microphone(capture), clock)
            events: list[str] = []

            async def on_interrupt() -> None:
                await asyncio.sleep(0)
                events.append("interrupted")

            monitor.start(on_interrupt)
            await clock.advance(1.0)
            return events

        assert asyncio.run(scenario()) == ["interrupted"]
