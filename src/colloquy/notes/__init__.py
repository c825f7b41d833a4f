"""Note editing for single-shot turns and dictation."""

from .editor import Cursor, MarkdownNoteEditor, NoteEditor, format_turn_entry

__all__ = ["Cursor", "MarkdownNoteEditor", "NoteEditor", "format_turn_entry"]
