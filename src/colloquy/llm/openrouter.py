"""OpenRouter language model using its chat-completions HTTP API.

Also works with any OpenAI-compatible endpoint through the host setting.
"""

import logging
import os
import time

import httpx

from ..errors import ResponseError
from .model import LLMResponse

logger = logging.getLogger(__name__)

OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"
OPENROUTER_TIMEOUT = 30.0  # seconds


class OpenRouterLanguageModel:
    """Language model served through an OpenAI-compatible HTTP endpoint.

    Implements the LanguageModel protocol.
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        url: str = OPENROUTER_API_URL,
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout: float = OPENROUTER_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize OpenRouter client.

        Args:
            model: Model identifier (e.g. "openai/gpt-4o-mini")
            api_key: API key; falls back to OPENROUTER_API_KEY
            url: Chat completions endpoint
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used in tests)
        """
        self._model = model
        self._api_key = api_key or os.environ.get("OPENROUTER_API_KEY", "")
        self._url = url
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout
        self._transport = transport
        self._system_prompt = ""
        self._context: list[dict[str, str]] = []

        if not self._api_key:
            logger.warning("OPENROUTER_API_KEY not set - requests will be rejected")

    async def generate(self, prompt: str) -> LLMResponse:
        """Generate a response with one chat-completions request.

        Raises:
            ResponseError: On network failure, HTTP error or empty reply
        """
        messages = []
        if self._system_prompt:
            messages.append({"role": "system", "content": self._system_prompt})
        messages.extend(self._context)
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self._model,
            "messages": messages,
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, headers=headers, json=payload)
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ResponseError(f"Request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise ResponseError(f"HTTP error {e.response.status_code}: {e.response.text}") from e
        except httpx.HTTPError as e:
            raise ResponseError(f"Request failed: {e}") from e
        latency_ms = int((time.time() - start_time) * 1000)

        try:
            data = response.json()
        except ValueError as e:
            raise ResponseError(f"Response was not JSON: {e}") from e
        if not isinstance(data, dict):
            raise ResponseError(f"Unexpected response body: {str(data)[:80]}")
        choices = data.get("choices") or []
        if not choices:
            raise ResponseError("Response contained no choices")
        text = (choices[0].get("message", {}).get("content") or "").strip()

        self._context.append({"role": "user", "content": prompt})
        self._context.append({"role": "assistant", "content": text})

        usage = data.get("usage") or {}
        return LLMResponse(
            text=text,
            tokens_used=usage.get("total_tokens", len(text.split())),
            model=data.get("model", self._model),
            latency_ms=latency_ms,
        )

    def set_system_prompt(self, prompt: str) -> None:
        """Set system prompt."""
        self._system_prompt = prompt

    def clear_context(self) -> None:
        """Clear conversation history."""
        self._context.clear()


__all__ = ["OpenRouterLanguageModel"]
