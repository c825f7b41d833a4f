"""Trigger-phrase instructions for dialog turns.

When a recognized utterance contains a configured trigger phrase, the
associated instruction is sent to the language model ahead of it.
"""

import logging
from collections.abc import Iterable

from ..config import CustomPromptConfig

logger = logging.getLogger(__name__)


def match_prompt(text: str, prompts: Iterable[CustomPromptConfig]) -> CustomPromptConfig | None:
    """Find the first enabled prompt whose trigger occurs in text.

    Matching is a case-insensitive substring test.
    """
    lowered = text.lower()
    for prompt in prompts:
        if prompt.enabled and prompt.trigger and prompt.trigger.lower() in lowered:
            return prompt
    return None


def apply_prompt(text: str, prompts: Iterable[CustomPromptConfig]) -> str:
    """Prefix text with the instruction of the matching prompt, if any."""
    prompt = match_prompt(text, prompts)
    if prompt is None:
        return text
    logger.debug(f"Matched custom prompt: {prompt.name}")
    return f"{prompt.prompt}\n\nUser input: {text}"


__all__ = ["apply_prompt", "match_prompt"]
