"""Persistence for conversation notes and synthesized audio."""

from .audio_archive import AudioArchive
from .conversations import ConversationStore, SessionStore, unique_path

__all__ = ["AudioArchive", "ConversationStore", "SessionStore", "unique_path"]
