"""Error types for the voice session engine.

Every failure the engine surfaces to the user maps onto one of these.
Provider adapters wrap library exceptions into them.
"""


class ColloquyError(Exception):
    """Base exception for all session engine errors."""

    pass


class CaptureError(ColloquyError):
    """Raised when the microphone is unavailable or capture fails."""

    pass


class MicrophoneBusyError(CaptureError):
    """Raised when the microphone is already claimed by another owner."""

    def __init__(self, requested: str, holder: str) -> None:
        """Initialize busy error.

        Args:
            requested: Owner that asked for the microphone.
            holder: Owner currently holding it.
        """
        super().__init__(f"Microphone requested by {requested} is held by {holder}")
        self.requested = requested
        self.holder = holder


class RecognitionError(ColloquyError):
    """Raised when speech recognition fails."""

    pass


class ResponseError(ColloquyError):
    """Raised when the language model call fails."""

    pass


class SynthesisError(ColloquyError):
    """Raised when speech synthesis or playback fails."""

    pass


class PersistenceError(ColloquyError):
    """Raised when a session file cannot be written."""

    pass


class ConfigError(ColloquyError):
    """Raised when configuration values are out of range."""

    pass


__all__ = [
    "CaptureError",
    "ColloquyError",
    "ConfigError",
    "MicrophoneBusyError",
    "PersistenceError",
    "RecognitionError",
    "ResponseError",
    "SynthesisError",
]
