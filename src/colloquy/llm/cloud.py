"""Cloud LLM integration using Anthropic Claude API.

Provides a cloud-based response backend for dialog turns.
"""

import logging
import os
import time
from dataclasses import dataclass

from ..errors import ResponseError
from .model import LLMResponse

# Try to import anthropic, gracefully handle if not installed
try:
    import anthropic

    ANTHROPIC_AVAILABLE = True
except ImportError:
    anthropic = None
    ANTHROPIC_AVAILABLE = False

logger = logging.getLogger(__name__)


@dataclass
class CloudLLMConfig:
    """Configuration for cloud LLM."""

    api_key: str
    model: str = "claude-3-5-haiku-latest"
    max_tokens: int = 1024
    temperature: float = 0.7

    @classmethod
    def from_env(cls, env_var: str = "ANTHROPIC_API_KEY", **kwargs: object) -> "CloudLLMConfig":
        """Create config from environment variables.

        Returns:
            CloudLLMConfig with API key from environment.

        Raises:
            ValueError: If the API key variable is not set.
        """
        api_key = os.environ.get(env_var)
        if not api_key:
            raise ValueError(
                f"{env_var} environment variable is not set. "
                "Set it to use cloud LLM features."
            )
        return cls(api_key=api_key, **kwargs)  # type: ignore[arg-type]


class CloudLanguageModel:
    """Cloud-based language model using Claude API.

    Implements the LanguageModel protocol for cloud inference.
    """

    def __init__(self, config: CloudLLMConfig) -> None:
        """Initialize the cloud language model.

        Args:
            config: Cloud LLM configuration.

        Raises:
            RuntimeError: If the Anthropic SDK is not installed.
        """
        if not ANTHROPIC_AVAILABLE:
            raise RuntimeError("Anthropic SDK not installed. Run: pip install anthropic")

        self._config = config
        self._system_prompt: str | None = None
        self._context: list[dict[str, str]] = []
        self._client = anthropic.AsyncAnthropic(api_key=config.api_key)

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._config.model

    async def generate(self, prompt: str) -> LLMResponse:
        """Generate a response using the cloud API.

        Args:
            prompt: User prompt.

        Returns:
            LLMResponse with generated text.

        Raises:
            ResponseError: If the API call fails.
        """
        kwargs = {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "temperature": self._config.temperature,
            "messages": [*self._context, {"role": "user", "content": prompt}],
        }
        if self._system_prompt:
            kwargs["system"] = self._system_prompt

        start_time = time.time()
        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIError as e:
            logger.error(f"Claude request failed: {e}")
            raise ResponseError(f"Claude request failed: {e}") from e
        latency_ms = int((time.time() - start_time) * 1000)

        text = "".join(block.text for block in response.content if block.type == "text")
        self._context.append({"role": "user", "content": prompt})
        self._context.append({"role": "assistant", "content": text})

        return LLMResponse(
            text=text,
            tokens_used=response.usage.input_tokens + response.usage.output_tokens,
            model=self._config.model,
            latency_ms=latency_ms,
        )

    def set_system_prompt(self, prompt: str) -> None:
        """Set the system prompt.

        Args:
            prompt: System prompt to use.
        """
        self._system_prompt = prompt

    def clear_context(self) -> None:
        """Clear conversation context."""
        self._context.clear()


__all__ = ["CloudLLMConfig", "CloudLanguageModel"]
