"""Interview session state machine and countdown driver."""
from .clock import InterviewClock, TICK_SECONDS
from .models import (
    MAX_STEP_INDEX,
    TOTAL_QUESTIONS,
    Answer,
    CandidateProfile,
    ChatMessage,
    Difficulty,
    InterviewState,
    InterviewSummary,
    Question,
    ResumeMeta,
    SessionMeta,
    Stage,
    TickResult,
    TimerState,
)
from .store import SessionStore

__all__ = [
    "Answer",
    "CandidateProfile",
    "ChatMessage",
    "Difficulty",
    "InterviewClock",
    "InterviewState",
    "InterviewSummary",
    "MAX_STEP_INDEX",
    "Question",
    "ResumeMeta",
    "SessionMeta",
    "SessionStore",
    "Stage",
    "TICK_SECONDS",
    "TOTAL_QUESTIONS",
    "TickResult",
    "TimerState",
]
