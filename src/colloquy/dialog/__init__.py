"""Continuous dialog: turn cycle, trigger prompts, summaries and wake phrases."""

from .prompts import apply_prompt, match_prompt
from .session import DialogPhase, DialogSession, DialogSessionState, Turn, TurnOutcome
from .summary import SessionSummaryBuilder, session_file_name
from .wake import WakeListener, matches_wake_phrase

__all__ = [
    "DialogPhase",
    "DialogSession",
    "DialogSessionState",
    "SessionSummaryBuilder",
    "Turn",
    "TurnOutcome",
    "WakeListener",
    "apply_prompt",
    "match_prompt",
    "matches_wake_phrase",
    "session_file_name",
]
