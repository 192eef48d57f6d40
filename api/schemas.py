"""Pydantic schemas for the interview API."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from interview_session.models import ChatMessage, InterviewState, Question


class CandidateCreate(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    skills: List[str] = Field(default_factory=list)
    years: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class TextReq(BaseModel):
    text: str


class PreflightResp(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    pending_field: Optional[str] = None
    started: bool = False
    question: Optional[Question] = None


class InterviewResp(BaseModel):
    state: InterviewState
    question: Optional[Question] = None


class DeleteResp(BaseModel):
    deleted: bool
