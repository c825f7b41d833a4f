"""Language model protocol and data classes.

Defines the interface for the response backend of a dialog turn.
"""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class LLMResponse:
    """Response from language model.

    Attributes:
        text: Generated response text
        tokens_used: Number of tokens consumed
        model: Model identifier
        latency_ms: Response latency in milliseconds
    """

    text: str
    tokens_used: int
    model: str
    latency_ms: int


class LanguageModel(Protocol):
    """Interface for language model inference.

    Implementations keep the running conversation so follow-up turns have
    context; clear_context() starts a fresh conversation.
    """

    async def generate(self, prompt: str) -> LLMResponse:
        """Generate response for prompt.

        Args:
            prompt: User input text, possibly prefixed with an instruction

        Returns:
            LLMResponse with generated text

        Raises:
            ResponseError: If generation fails
        """
        ...

    def set_system_prompt(self, prompt: str) -> None:
        """Set system prompt for conversation context.

        Args:
            prompt: System prompt text
        """
        ...

    def clear_context(self) -> None:
        """Clear conversation history."""
        ...


__all__ = ["LLMResponse", "LanguageModel"]
