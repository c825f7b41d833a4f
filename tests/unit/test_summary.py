"""Unit tests for end-of-session summaries."""

import asyncio
from datetime import datetime
from pathlib import Path

from colloquy.dialog import SessionSummaryBuilder, Turn, session_file_name
from colloquy.errors import PersistenceError
from colloquy.llm import MockLanguageModel
from colloquy.status import RecordingStatusReporter, StatusLevel
from colloquy.storage import ConversationStore

WHEN = datetime(2024, 5, 1, 14, 3, 59)
TURNS = [
    Turn("What's the weather?", "It's sunny", datetime(2024, 5, 1, 14, 1, 2)),
    Turn("And tomorrow?", "Rain", datetime(2024, 5, 1, 14, 2, 30)),
]


class FailingStore:
    """Session store whose writes always fail."""

    async def write_session(self, name: str, content: str) -> Path:
        raise PersistenceError("disk full")


def _builder(store, model: MockLanguageModel | None = None) -> tuple[SessionSummaryBuilder, RecordingStatusReporter]:
    status = RecordingStatusReporter()
    return SessionSummaryBuilder(model or MockLanguageModel(), store, status, now=lambda: WHEN), status


class TestRendering:
    """Tests for summary prompt and note formats."""

    def test_file_name(self) -> None:
        """Test the session file name format."""
        assert session_file_name(WHEN) == "2024-05-01 14-03-59.md"

    def test_prompt_lists_turns(self) -> None:
        """Test the summary prompt contains every turn with its time."""
        builder, _ = _builder(FailingStore())
        prompt = builder.build_prompt(TURNS)
        assert prompt.startswith("Please summarize the following conversation")
        assert "[14:01:02] User: What's the weather?\n[14:01:02] Assistant: It's sunny\n" in prompt
        assert "[14:02:30] User: And tomorrow?" in prompt
        assert "action items" in prompt

    def test_summary_note(self) -> None:
        """Test the note header, summary section and transcript."""
        builder, _ = _builder(FailingStore())
        note = builder.render_summary(TURNS, "Weather talk.", WHEN)
        assert note.startswith(
            "## Voice conversation summary\n\n**Time:** 2024-05-01 14:03:59\n**Turns:** 2\n\n"
        )
        assert "### Summary\nWeather talk.\n\n### Detailed transcript\n\n" in note
        assert "**[14:01:02] User:** What's the weather?\n\n**[14:01:02] Assistant:** It's sunny\n\n---\n\n" in note

    def test_wake_session_header(self) -> None:
        """Test wake sessions carry their identifier."""
        builder, _ = _builder(FailingStore())
        note = builder.render_summary(TURNS, "s", WHEN, session_id="1714572239000")
        assert note.startswith("## Voice conversation summary (wake session)\n")
        assert "**Session ID:** 1714572239000\n" in note

    def test_fallback_note(self) -> None:
        """Test the raw transcript note has no summary section."""
        builder, _ = _builder(FailingStore())
        note = builder.render_fallback(TURNS, WHEN)
        assert note.startswith("## Voice conversation record\n")
        assert "### Summary" not in note
        assert "**[14:02:30] Assistant:** Rain" in note


class TestPersist:
    """Tests for summarizing and saving sessions."""

    def test_saves_summary(self, tmp_path: Path) -> None:
        """Test a successful summary is written and reported."""
        model = MockLanguageModel()
        model.set_response("Talked about the weather.")
        builder, status = _builder(ConversationStore(tmp_path), model)

        path = asyncio.run(builder.persist(TURNS))

        assert path == tmp_path / "2024-05-01 14-03-59.md"
        assert "### Summary\nTalked about the weather." in path.read_text(encoding="utf-8")
        assert status.texts(StatusLevel.SUCCESS) == [
            "Conversation summary saved to 2024-05-01 14-03-59.md (2 turns)"
        ]
        assert model.prompts[0].startswith("Please summarize")
        assert model.context == []

    def test_fixed_file_name(self, tmp_path: Path) -> None:
        """Test wake sessions use their precomputed file name."""
        builder, _ = _builder(ConversationStore(tmp_path))
        path = asyncio.run(builder.persist(TURNS, file_name="wake.md", session_id="42"))
        assert path is not None
        assert path.name == "wake.md"
        assert "**Session ID:** 42" in path.read_text(encoding="utf-8")

    def test_fallback_when_model_fails(self, tmp_path: Path) -> None:
        """Test the raw transcript is kept when the summary fails."""
        model = MockLanguageModel()
        model.set_error("offline")
        builder, status = _builder(ConversationStore(tmp_path), model)

        path = asyncio.run(builder.persist(TURNS))

        assert path is not None
        assert path.read_text(encoding="utf-8").startswith("## Voice conversation record")
        assert status.contains("summary failed", StatusLevel.WARNING)

    def test_empty_summary_falls_back(self, tmp_path: Path) -> None:
        """Test a blank summary counts as a failure."""
        model = MockLanguageModel()
        model.set_response("   ")
        builder, _ = _builder(ConversationStore(tmp_path), model)
        path = asyncio.run(builder.persist(TURNS))
        assert path is not None
        assert "### Summary" not in path.read_text(encoding="utf-8")

    def test_no_turns_writes_nothing(self, tmp_path: Path) -> None:
        """Test an empty session is not saved."""
        model = MockLanguageModel()
        builder, status = _builder(ConversationStore(tmp_path), model)
        assert asyncio.run(builder.persist([])) is None
        assert model.call_count == 0
        assert list(tmp_path.iterdir()) == []
        assert status.messages == []

    def test_store_failure_is_reported(self) -> None:
        """Test a failed write is reported, not raised."""
        builder, status = _builder(FailingStore())
        assert asyncio.run(builder.persist(TURNS)) is None
        assert status.texts(StatusLevel.ERROR) == ["Failed to save conversation: disk full"]
