"""Language model module for the voice session engine.

Provides response generation using Ollama, Claude, OpenRouter or a mock.
"""

import logging
from typing import TYPE_CHECKING

from .mock import MockLanguageModel
from .model import LanguageModel, LLMResponse

if TYPE_CHECKING:
    from ..config import LLMConfig

logger = logging.getLogger(__name__)


def create_language_model(
    config: "LLMConfig | None" = None,
    use_mock: bool = False,
) -> LanguageModel:
    """Create a language model instance.

    Args:
        config: LLM configuration
        use_mock: If True, return mock implementation for testing

    Returns:
        LanguageModel implementation

    Raises:
        ValueError: If the configured provider is unknown
    """
    if use_mock:
        return MockLanguageModel()

    if config is None:
        from ..config import LLMConfig

        config = LLMConfig()

    provider = config.provider.lower()
    llm: LanguageModel

    if provider == "ollama":
        try:
            from .ollama import OllamaLanguageModel

            llm = OllamaLanguageModel(
                model=config.model,
                host=config.host,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
            )
        except RuntimeError:
            logger.warning("Ollama not available, using mock language model")
            return MockLanguageModel()
    elif provider == "claude":
        from .cloud import CloudLanguageModel, CloudLLMConfig

        llm = CloudLanguageModel(
            CloudLLMConfig.from_env(
                config.api_key_env or "ANTHROPIC_API_KEY",
                model=config.model,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
            )
        )
    elif provider == "openrouter":
        import os

        from .openrouter import OPENROUTER_API_URL, OpenRouterLanguageModel

        url = config.host if config.host.startswith("https://") else OPENROUTER_API_URL
        llm = OpenRouterLanguageModel(
            model=config.model,
            api_key=os.environ.get(config.api_key_env or "OPENROUTER_API_KEY"),
            url=url,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )
    else:
        raise ValueError(f"Unknown LLM provider: {config.provider}")

    if config.system_prompt:
        llm.set_system_prompt(config.system_prompt)
    return llm


__all__ = [
    "LLMResponse",
    "LanguageModel",
    "MockLanguageModel",
    "create_language_model",
]
