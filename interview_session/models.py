"""Interview session domain models."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

Stage = Literal["collecting_profile", "running", "paused", "completed"]
Difficulty = Literal["easy", "medium", "hard"]
ChatRole = Literal["system", "assistant", "user"]
Level = Literal["Beginner", "Intermediate", "Expert"]

TOTAL_QUESTIONS = 6
MAX_STEP_INDEX = TOTAL_QUESTIONS - 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class ResumeMeta(BaseModel):
    filename: str
    size: int = Field(ge=0)
    mime: Optional[str] = None


class CandidateProfile(BaseModel):
    """Candidate identity and background; ``id`` is assigned once and never reused."""

    id: str = Field(default_factory=new_id)
    name: str = ""
    email: str = ""
    phone: str = ""
    resume_meta: Optional[ResumeMeta] = None
    skills: List[str] = Field(default_factory=list)
    years: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class ChatMessage(BaseModel):
    id: str = Field(default_factory=new_id)
    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class Question(BaseModel):
    id: str = Field(default_factory=new_id)
    difficulty: Difficulty
    text: str = Field(min_length=1)
    seconds: int = Field(gt=0)
    rubric: Optional[str] = None
    key_points: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class Answer(BaseModel):
    id: str = Field(default_factory=new_id)
    question_id: str
    text: str = ""
    started_at: datetime
    submitted_at: Optional[datetime] = None
    elapsed_seconds: int = Field(default=0, ge=0)
    auto_submitted: bool = False
    score: Optional[float] = Field(default=None, ge=0.0, le=10.0)
    feedback: Optional[str] = None


class TimerState(BaseModel):
    """Countdown for the active question; ``question_id`` is set only while it awaits an answer."""

    question_id: Optional[str] = None
    remaining: int = Field(default=0, ge=0)
    paused: bool = True


class SessionMeta(BaseModel):
    altered_path: bool = False
    paused_at: Optional[datetime] = None


class InterviewSummary(BaseModel):
    score: float = Field(ge=0.0, le=100.0)
    level: Level
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    overview: str = ""
    plan: List[str] = Field(default_factory=list)
    badges: List[str] = Field(default_factory=list)
    altered_path: bool = False
    mean: float = 0.0
    stddev: float = 0.0


class InterviewState(BaseModel):
    """Serializable per-candidate interview record."""

    candidate_id: str
    generation: int = 0
    stage: Stage = "collecting_profile"
    step_index: int = Field(default=0, ge=0, le=MAX_STEP_INDEX)
    timer: TimerState = Field(default_factory=TimerState)
    messages: List[ChatMessage] = Field(default_factory=list)
    questions: List[Question] = Field(default_factory=list)
    answers: List[Answer] = Field(default_factory=list)
    summary: Optional[InterviewSummary] = None
    meta: SessionMeta = Field(default_factory=SessionMeta)

    def find_answer(self, answer_id: str) -> Optional[Answer]:
        return next((answer for answer in self.answers if answer.id == answer_id), None)

    def find_question(self, question_id: str) -> Optional[Question]:
        return next((question for question in self.questions if question.id == question_id), None)

    def pending_question(self) -> Optional[Question]:
        if self.timer.question_id is None:
            return None
        return self.find_question(self.timer.question_id)


class TickResult(BaseModel):
    state: InterviewState
    expired_answer: Optional[Answer] = None


__all__ = [
    "Answer",
    "CandidateProfile",
    "ChatMessage",
    "ChatRole",
    "Difficulty",
    "InterviewState",
    "InterviewSummary",
    "Level",
    "MAX_STEP_INDEX",
    "Question",
    "ResumeMeta",
    "SessionMeta",
    "Stage",
    "TickResult",
    "TimerState",
    "TOTAL_QUESTIONS",
    "new_id",
    "utcnow",
]
