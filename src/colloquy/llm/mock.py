"""Mock language model for testing.

Provides a controllable mock implementation for unit and integration testing.
"""

from collections import deque

from ..errors import ResponseError
from .model import LLMResponse


class MockLanguageModel:
    """Mock language model for testing.

    Responses queued with queue_response() are returned in order; once the
    queue is empty the fixed response from set_response() is used.
    """

    def __init__(self) -> None:
        """Initialize mock language model."""
        self._system_prompt: str = ""
        self._response_text: str = "This is a mock response."
        self._queue: deque[str | ResponseError] = deque()
        self._call_count: int = 0
        self._context: list[dict[str, str]] = []
        self._prompts: list[str] = []
        self._error_message: str | None = None

    def set_response(self, text: str) -> None:
        """Set the response to return when the queue is empty.

        Args:
            text: Text to return
        """
        self._response_text = text
        self._error_message = None

    def queue_response(self, *texts: str) -> None:
        """Queue one-shot responses returned in order."""
        self._queue.extend(texts)

    def queue_error(self, message: str) -> None:
        """Queue a one-shot generation failure."""
        self._queue.append(ResponseError(message))

    def set_error(self, message: str) -> None:
        """Make every generation fail until set_response() is called.

        Args:
            message: Error message
        """
        self._error_message = message

    async def generate(self, prompt: str) -> LLMResponse:
        """Return the next queued or preset response."""
        self._call_count += 1
        self._prompts.append(prompt)

        if self._error_message:
            raise ResponseError(self._error_message)

        text = self._response_text
        if self._queue:
            item = self._queue.popleft()
            if isinstance(item, ResponseError):
                raise item
            text = item

        self._context.append({"role": "user", "content": prompt})
        self._context.append({"role": "assistant", "content": text})

        return LLMResponse(
            text=text,
            tokens_used=len(text.split()) + len(prompt.split()),
            model="mock-model",
            latency_ms=0,
        )

    def set_system_prompt(self, prompt: str) -> None:
        """Set system prompt."""
        self._system_prompt = prompt

    def clear_context(self) -> None:
        """Clear conversation history."""
        self._context.clear()

    @property
    def system_prompt(self) -> str:
        """Get system prompt."""
        return self._system_prompt

    @property
    def call_count(self) -> int:
        """Get number of generate calls."""
        return self._call_count

    @property
    def prompts(self) -> list[str]:
        """Prompts passed to generate, in call order."""
        return list(self._prompts)

    @property
    def context(self) -> list[dict[str, str]]:
        """Get conversation context."""
        return self._context.copy()


__all__ = ["MockLanguageModel"]
