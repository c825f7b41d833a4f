"""Note editor interface and a file-backed markdown implementation.

Single-shot conversation turns and dictation insert text at a tracked
cursor position.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cursor:
    """Position in a note as (line, column), both zero-based."""

    line: int = 0
    ch: int = 0

    def advanced(self, count: int) -> "Cursor":
        """Cursor moved count characters along the same line."""
        return Cursor(self.line, self.ch + count)


class NoteEditor(Protocol):
    """Interface to the note being edited."""

    def get_cursor(self) -> Cursor:
        """Current cursor position."""
        ...

    def set_cursor(self, cursor: Cursor) -> None:
        """Move the cursor."""
        ...

    def insert_at_cursor(self, text: str) -> None:
        """Insert text at the cursor without moving it."""
        ...


class MarkdownNoteEditor:
    """In-memory markdown note, optionally backed by a file.

    Implements the NoteEditor protocol. Inserted text may contain line
    breaks; the cursor is clamped to the document.
    """

    def __init__(self, text: str = "", path: Path | None = None) -> None:
        """Initialize editor.

        Args:
            text: Initial content
            path: File that save() writes to
        """
        self._lines = text.split("\n")
        self._path = path
        self._cursor = Cursor()

    @classmethod
    def open(cls, path: Path | str) -> "MarkdownNoteEditor":
        """Load a note from disk, or start an empty one if it is missing.

        The cursor is placed at the end of the note.
        """
        path = Path(path).expanduser()
        text = path.read_text(encoding="utf-8") if path.exists() else ""
        editor = cls(text, path)
        last = len(editor._lines) - 1
        editor.set_cursor(Cursor(last, len(editor._lines[last])))
        return editor

    @property
    def text(self) -> str:
        """Full note content."""
        return "\n".join(self._lines)

    @property
    def path(self) -> Path | None:
        """Backing file, if any."""
        return self._path

    def get_cursor(self) -> Cursor:
        return self._cursor

    def set_cursor(self, cursor: Cursor) -> None:
        line = min(max(cursor.line, 0), len(self._lines) - 1)
        ch = min(max(cursor.ch, 0), len(self._lines[line]))
        self._cursor = Cursor(line, ch)

    def insert_at_cursor(self, text: str) -> None:
        line = self._lines[self._cursor.line]
        head, tail = line[: self._cursor.ch], line[self._cursor.ch :]
        self._lines[self._cursor.line : self._cursor.line + 1] = (head + text + tail).split("\n")

    def save(self) -> None:
        """Write the note back to its file."""
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(self.text, encoding="utf-8")
        logger.debug(f"Note saved to {self._path}")


def format_turn_entry(user_text: str, assistant_text: str, timestamp: str) -> str:
    """Markdown block inserted into a note for a single-shot turn."""
    return f"\n## Voice conversation - {timestamp}\n\n**User:** {user_text}\n\n**AI:** {assistant_text}\n\n"


__all__ = ["Cursor", "MarkdownNoteEditor", "NoteEditor", "format_turn_entry"]
