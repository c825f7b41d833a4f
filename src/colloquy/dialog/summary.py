"""End-of-session summaries.

At the end of a dialog the accumulated turns are summarized by the
language model and written, with the full transcript, to a markdown
file. If the summary request fails the raw transcript is saved instead.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from ..errors import PersistenceError, ResponseError
from ..llm.model import LanguageModel
from ..status import StatusLevel, StatusReporter
from ..storage.conversations import SessionStore

if TYPE_CHECKING:
    from .session import Turn

logger = logging.getLogger(__name__)

SUMMARY_INTRO = "Please summarize the following conversation, extracting the key information and points:\n\n"
SUMMARY_REQUEST = (
    "\nPlease write a concise summary that includes:\n"
    "1. The main topics discussed\n"
    "2. Key information and points\n"
    "3. Any tasks or action items, as a list"
)


def session_file_name(when: datetime) -> str:
    """File name for a session note, e.g. '2024-05-01 14-03-59.md'."""
    return when.strftime("%Y-%m-%d %H-%M-%S") + ".md"


def _clock_time(turn: "Turn") -> str:
    return turn.timestamp.strftime("%H:%M:%S")


class SessionSummaryBuilder:
    """Summarizes finished sessions and hands them to a SessionStore."""

    def __init__(
        self,
        model: LanguageModel,
        store: SessionStore,
        status: StatusReporter,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize builder.

        Args:
            model: Language model used for the summary
            store: Destination for session notes
            status: User notification channel
            now: Wall-clock source
        """
        self._model = model
        self._store = store
        self._status = status
        self._now = now

    def build_prompt(self, turns: Sequence["Turn"]) -> str:
        """Summary request over the full transcript."""
        lines = [SUMMARY_INTRO]
        for turn in turns:
            stamp = _clock_time(turn)
            lines.append(f"[{stamp}] User: {turn.user_text}\n[{stamp}] Assistant: {turn.assistant_text}\n\n")
        lines.append(SUMMARY_REQUEST)
        return "".join(lines)

    def render_transcript(self, turns: Sequence["Turn"]) -> str:
        """Markdown transcript with one block per turn."""
        blocks = []
        for turn in turns:
            stamp = _clock_time(turn)
            blocks.append(
                f"**[{stamp}] User:** {turn.user_text}\n\n"
                f"**[{stamp}] Assistant:** {turn.assistant_text}\n\n---\n\n"
            )
        return "".join(blocks)

    def _header(self, title: str, turns: Sequence["Turn"], when: datetime, session_id: str | None) -> str:
        header = f"## {title}\n\n**Time:** {when.strftime('%Y-%m-%d %H:%M:%S')}\n"
        if session_id:
            header += f"**Session ID:** {session_id}\n"
        return header + f"**Turns:** {len(turns)}\n\n"

    def render_summary(
        self,
        turns: Sequence["Turn"],
        summary: str,
        when: datetime,
        session_id: str | None = None,
    ) -> str:
        """Full note: header, summary section and detailed transcript."""
        title = "Voice conversation summary" + (" (wake session)" if session_id else "")
        return (
            self._header(title, turns, when, session_id)
            + f"### Summary\n{summary}\n\n### Detailed transcript\n\n"
            + self.render_transcript(turns)
        )

    def render_fallback(self, turns: Sequence["Turn"], when: datetime, session_id: str | None = None) -> str:
        """Note used when no summary could be generated."""
        title = "Voice conversation record" + (" (wake session)" if session_id else "")
        return self._header(title, turns, when, session_id) + self.render_transcript(turns)

    async def summarize(self, turns: Sequence["Turn"]) -> str | None:
        """Ask the language model for a summary; None on failure."""
        self._model.clear_context()
        try:
            response = await self._model.generate(self.build_prompt(turns))
        except ResponseError as e:
            logger.warning(f"Summary generation failed: {e}")
            return None
        finally:
            self._model.clear_context()
        return response.text.strip() or None

    async def persist(
        self,
        turns: Sequence["Turn"],
        file_name: str | None = None,
        session_id: str | None = None,
    ) -> Path | None:
        """Summarize and save a session.

        Args:
            turns: Completed turns, oldest first
            file_name: Fixed file name (wake sessions), or None to derive one
            session_id: Wake session identifier, if any

        Returns:
            Path written, or None if there was nothing to save or saving failed
        """
        if not turns:
            logger.debug("No turns to summarize")
            return None

        summary = await self.summarize(turns)
        when = self._now()
        name = file_name or session_file_name(when)

        if summary:
            content = self.render_summary(turns, summary, when, session_id)
        else:
            content = self.render_fallback(turns, when, session_id)

        try:
            path = await self._store.write_session(name, content)
        except PersistenceError as e:
            logger.error(f"Saving conversation failed: {e}")
            self._status.notify(f"Failed to save conversation: {e}", StatusLevel.ERROR)
            return None

        if summary:
            self._status.notify(
                f"Conversation summary saved to {path.name} ({len(turns)} turns)",
                StatusLevel.SUCCESS,
            )
        else:
            self._status.notify(
                f"Conversation saved to {path.name} (summary failed, raw transcript kept)",
                StatusLevel.WARNING,
            )
        return path


__all__ = ["SessionSummaryBuilder", "session_file_name"]
