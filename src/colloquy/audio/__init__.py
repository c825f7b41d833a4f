"""Audio module for the voice session engine.

Provides microphone capture and speaker playback, the shared microphone
arbiter, the pre-recording buffer and the background interrupt monitor.

Usage:
    capture = create_audio_capture(config.audio)
    playback = create_audio_playback(config.audio)

    # For testing, use mock implementations driven by a VirtualClock
    from colloquy.audio.mock_capture import MockAudioCapture, MockAudioPlayback
"""

from typing import TYPE_CHECKING

from .buffer import PreRecordingBuffer, RollingAudioBuffer
from .capture import AudioCapture, AudioSegment
from .microphone import Microphone
from .monitor import BackgroundInterruptMonitor
from .playback import AudioPlayback

if TYPE_CHECKING:
    from ..config import AudioConfig
    from ..timing import Clock


def create_audio_capture(
    config: "AudioConfig | None" = None,
    use_mock: bool = False,
    clock: "Clock | None" = None,
) -> AudioCapture:
    """Create an audio capture instance.

    Args:
        config: Audio configuration (uses defaults if None)
        use_mock: If True, return mock implementation for testing
        clock: Clock pacing the mock implementation

    Returns:
        AudioCapture implementation

    Raises:
        RuntimeError: If PyAudio is not installed
    """
    device_name = "default"
    sample_rate = 16000
    channels = 1
    chunk_size = 1024

    if config is not None:
        device_name = config.input_device
        sample_rate = config.sample_rate
        channels = config.channels
        chunk_size = config.chunk_size

    if use_mock:
        from ..timing import MonotonicClock
        from .mock_capture import MockAudioCapture

        return MockAudioCapture(
            clock or MonotonicClock(),
            sample_rate=sample_rate,
            channels=channels,
        )

    from .backends.pyaudio_backend import PyAudioCapture

    return PyAudioCapture(
        device_name=device_name,
        sample_rate=sample_rate,
        channels=channels,
        chunk_size=chunk_size,
    )


def create_audio_playback(
    config: "AudioConfig | None" = None,
    use_mock: bool = False,
    clock: "Clock | None" = None,
) -> AudioPlayback:
    """Create an audio playback instance.

    Args:
        config: Audio configuration (uses defaults if None)
        use_mock: If True, return mock implementation for testing
        clock: Clock pacing the mock implementation

    Returns:
        AudioPlayback implementation

    Raises:
        RuntimeError: If PyAudio is not installed
    """
    device_name = "default"
    if config is not None:
        device_name = config.output_device

    if use_mock:
        from ..timing import MonotonicClock
        from .mock_capture import MockAudioPlayback

        return MockAudioPlayback(clock or MonotonicClock())

    from .backends.pyaudio_backend import PyAudioPlayback

    return PyAudioPlayback(device_name=device_name)


__all__ = [
    "AudioCapture",
    "AudioPlayback",
    "AudioSegment",
    "BackgroundInterruptMonitor",
    "Microphone",
    "PreRecordingBuffer",
    "RollingAudioBuffer",
    "create_audio_capture",
    "create_audio_playback",
]
