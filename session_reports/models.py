from __future__ import annotations  # Interview report domain models

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from interview_session.models import Answer, CandidateProfile, InterviewState, Question, utcnow


class ReportExchange(BaseModel):  # One question with its answer, if any
    index: int
    question: Question
    answer: Optional[Answer] = None


class SessionReport(BaseModel):  # Snapshot of one candidate's interview for rendering
    profile: CandidateProfile
    state: InterviewState
    generated_at: datetime = Field(default_factory=utcnow)

    @property
    def exchanges(self) -> List[ReportExchange]:
        rows: List[ReportExchange] = []
        for index, question in enumerate(self.state.questions):
            answer = self.state.answers[index] if index < len(self.state.answers) else None
            rows.append(ReportExchange(index=index + 1, question=question, answer=answer))
        return rows


__all__ = ["ReportExchange", "SessionReport"]
