"""Unit tests for the markdown note editor."""

from pathlib import Path

from colloquy.notes import Cursor, MarkdownNoteEditor, format_turn_entry


class TestCursor:
    """Tests for Cursor."""

    def test_advanced(self) -> None:
        """Test advancing moves along the line."""
        assert Cursor(2, 3).advanced(4) == Cursor(2, 7)


class TestMarkdownNoteEditor:
    """Tests for MarkdownNoteEditor."""

    def test_insert_at_cursor_keeps_cursor(self) -> None:
        """Test insertion does not move the cursor."""
        editor = MarkdownNoteEditor("hello world")
        editor.set_cursor(Cursor(0, 6))
        editor.insert_at_cursor("big ")
        assert editor.text == "hello big world"
        assert editor.get_cursor() == Cursor(0, 6)

    def test_multiline_insert(self) -> None:
        """Test inserted line breaks split the line."""
        editor = MarkdownNoteEditor("ab")
        editor.set_cursor(Cursor(0, 1))
        editor.insert_at_cursor("1\n2")
        assert editor.text == "a1\n2b"

    def test_cursor_is_clamped(self) -> None:
        """Test out-of-range positions are clamped to the document."""
        editor = MarkdownNoteEditor("one\ntwo")
        editor.set_cursor(Cursor(9, 99))
        assert editor.get_cursor() == Cursor(1, 3)
        editor.set_cursor(Cursor(-1, -1))
        assert editor.get_cursor() == Cursor(0, 0)

    def test_open_places_cursor_at_end(self, tmp_path: Path) -> None:
        """Test opening a note puts the cursor after the last character."""
        path = tmp_path / "note.md"
        path.write_text("# Title\nbody", encoding="utf-8")
        editor = MarkdownNoteEditor.open(path)
        assert editor.get_cursor() == Cursor(1, 4)

    def test_open_missing_and_save(self, tmp_path: Path) -> None:
        """Test a missing note starts empty and save creates it."""
        path = tmp_path / "sub" / "new.md"
        editor = MarkdownNoteEditor.open(path)
        editor.insert_at_cursor("dictated ")
        editor.save()
        assert path.read_text(encoding="utf-8") == "dictated "

    def test_save_without_path_is_noop(self) -> None:
        """Test an in-memory note can be saved safely."""
        MarkdownNoteEditor("x").save()


class TestFormatTurnEntry:
    """Tests for the single-shot turn block."""

    def test_format(self) -> None:
        """Test the inserted markdown block."""
        entry = format_turn_entry("Hi", "Hello!", "2024-05-01 14:03:59")
        assert entry == (
            "\n## Voice conversation - 2024-05-01 14:03:59\n\n**User:** Hi\n\n**AI:** Hello!\n\n"
        )
