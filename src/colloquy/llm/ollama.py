"""Dialog replies from a local Ollama server."""

import logging
import time

import httpx

from ..errors import ResponseError
from .model import LLMResponse

try:
    import ollama

    OLLAMA_AVAILABLE = True
except ImportError:
    OLLAMA_AVAILABLE = False
    ollama = None  # type: ignore

logger = logging.getLogger(__name__)


class OllamaLanguageModel:
    """Chat client for a local Ollama daemon.

    Keeps the running exchange of user and assistant turns so every reply
    sees the whole conversation.
    """

    def __init__(
        self,
        model: str = "llama3.2:3b",
        host: str = "http://localhost:11434",
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> None:
        """Create the client.

        Args:
            model: Model tag pulled into the daemon
            host: Daemon base URL
            max_tokens: Reply length cap
            temperature: Sampling temperature

        Raises:
            RuntimeError: If the ollama package is missing
        """
        if not OLLAMA_AVAILABLE:
            raise RuntimeError(
                "Ollama client not available. Install with: pip install ollama"
            )

        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._system_prompt: str = ""
        self._history: list[dict[str, str]] = []
        self._client = ollama.AsyncClient(host=host)

        logger.info(f"Ollama client ready: {model} via {host}")

    def _build_messages(self, prompt: str) -> list[dict[str, str]]:
        """System prompt, then history, then the new turn."""
        messages = []
        if self._system_prompt:
            messages.append({"role": "system", "content": self._system_prompt})
        messages.extend(self._history)
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(self, prompt: str) -> LLMResponse:
        """Send one user turn and record the exchange.

        Raises:
            ResponseError: If the daemon fails or is unreachable
        """
        start_time = time.time()

        try:
            response = await self._client.chat(
                model=self._model,
                messages=self._build_messages(prompt),
                options={
                    "num_predict": self._max_tokens,
                    "temperature": self._temperature,
                },
            )
        except (ollama.ResponseError, httpx.HTTPError, OSError) as e:
            logger.error(f"Ollama chat failed: {e}")
            raise ResponseError(f"LLM generation failed: {e}") from e

        latency_ms = int((time.time() - start_time) * 1000)
        response_text = response["message"]["content"]

        self._history.append({"role": "user", "content": prompt})
        self._history.append({"role": "assistant", "content": response_text})

        tokens_used = response.get("eval_count") or len(response_text.split())
        logger.debug(f"Generated {tokens_used} tokens in {latency_ms}ms: '{response_text[:50]}'")

        return LLMResponse(
            text=response_text,
            tokens_used=tokens_used,
            model=self._model,
            latency_ms=latency_ms,
        )

    def set_system_prompt(self, prompt: str) -> None:
        """Set system prompt."""
        self._system_prompt = prompt

    def clear_context(self) -> None:
        """Forget earlier turns."""
        self._history.clear()
        logger.debug("Ollama history cleared")

    @property
    def model(self) -> str:
        """Get model name."""
        return self._model


__all__ = ["OllamaLanguageModel"]
