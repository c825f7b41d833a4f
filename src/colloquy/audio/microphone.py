"""Microphone ownership arbitration.

The dialog recorder, the dictation session and the wake listener each need
exclusive use of the microphone. The pre-recording buffer and the interrupt
monitor only tap the live stream and may run alongside anything.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from ..errors import MicrophoneBusyError
from .capture import AudioCapture

logger = logging.getLogger(__name__)


class Microphone:
    """Grants exclusive claims and shared taps on one capture source."""

    def __init__(self, capture: AudioCapture) -> None:
        """Initialize arbiter.

        Args:
            capture: The underlying capture source
        """
        self._capture = capture
        self._holder: str | None = None
        self._taps: dict[str, int] = {}

    @property
    def capture(self) -> AudioCapture:
        """The shared capture source."""
        return self._capture

    @property
    def holder(self) -> str | None:
        """Owner of the current exclusive claim, if any."""
        return self._holder

    @property
    def taps(self) -> frozenset[str]:
        """Owners currently tapping the stream."""
        return frozenset(self._taps)

    @property
    def is_idle(self) -> bool:
        """Return True if nothing holds or taps the microphone."""
        return self._holder is None and not self._taps

    def acquire(self, owner: str) -> AudioCapture:
        """Take the exclusive claim.

        Re-acquiring by the current holder is allowed.

        Raises:
            MicrophoneBusyError: If another owner holds the claim
        """
        if self._holder is not None and self._holder != owner:
            raise MicrophoneBusyError(owner, self._holder)
        if self._holder is None:
            logger.debug(f"Microphone claimed by {owner}")
        self._holder = owner
        return self._capture

    def release(self, owner: str) -> None:
        """Drop the exclusive claim if owner holds it."""
        if self._holder == owner:
            logger.debug(f"Microphone released by {owner}")
            self._holder = None

    @contextmanager
    def claim(self, owner: str) -> Iterator[AudioCapture]:
        """Hold the exclusive claim for the duration of a block."""
        capture = self.acquire(owner)
        try:
            yield capture
        finally:
            self.release(owner)

    @contextmanager
    def tap(self, owner: str) -> Iterator[AudioCapture]:
        """Register a shared, non-exclusive reader for a block."""
        self._taps[owner] = self._taps.get(owner, 0) + 1
        try:
            yield self._capture
        finally:
            remaining = self._taps.get(owner, 0) - 1
            if remaining > 0:
                self._taps[owner] = remaining
            else:
                self._taps.pop(owner, None)

    def close(self) -> None:
        """Close the underlying capture source."""
        self._capture.close()


__all__ = ["Microphone"]
