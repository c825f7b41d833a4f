"""Conversation note persistence.

Writes session summaries as markdown files into a folder, never
overwriting an existing file.
"""

import asyncio
import logging
from pathlib import Path
from typing import Protocol

from ..errors import PersistenceError

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Interface for persisting finished sessions."""

    async def write_session(self, name: str, content: str) -> Path:
        """Write a session file.

        If name already exists, a numeric suffix is added before the
        extension (name-1.md, name-2.md, ...).

        Args:
            name: File name including extension
            content: Markdown content

        Returns:
            Path of the file actually written

        Raises:
            PersistenceError: If the file cannot be written
        """
        ...


def unique_path(folder: Path, name: str) -> Path:
    """Return folder/name, or the first free name-N variant."""
    candidate = folder / name
    stem, suffix = Path(name).stem, Path(name).suffix
    counter = 1
    while candidate.exists():
        candidate = folder / f"{stem}-{counter}{suffix}"
        counter += 1
    return candidate


class ConversationStore:
    """Stores session notes under a base folder.

    Implements the SessionStore protocol.
    """

    def __init__(self, folder: Path | str) -> None:
        """Initialize store.

        Args:
            folder: Destination folder, created on first write
        """
        self._folder = Path(folder).expanduser()

    @property
    def folder(self) -> Path:
        """Destination folder."""
        return self._folder

    def _write_sync(self, name: str, content: str) -> Path:
        self._folder.mkdir(parents=True, exist_ok=True)
        path = unique_path(self._folder, name)
        # "x" mode fails instead of overwriting if another writer got there first
        with open(path, "x", encoding="utf-8") as f:
            f.write(content)
        return path

    async def write_session(self, name: str, content: str) -> Path:
        """Write a session file without overwriting."""
        try:
            path = await asyncio.to_thread(self._write_sync, name, content)
        except OSError as e:
            raise PersistenceError(f"Could not save {name}: {e}") from e
        logger.info(f"Conversation saved to {path}")
        return path


__all__ = ["ConversationStore", "SessionStore", "unique_path"]
