"""Colloquy - voice conversation and dictation engine.

Colloquy turns a microphone stream into conversation:
- Continuous dialog with spoken barge-in
- Dictation into a markdown note
- Wake phrase activation
- Session summaries written as markdown notes

Usage:
    python -m colloquy --profile dev
    python -m colloquy --mode dictate --note notes/today.md
"""

__version__ = "0.1.0"

from .config import ColloquyConfig
from .config.loader import load_config

__all__ = [
    "ColloquyConfig",
    "__version__",
    "load_config",
]
