from __future__ import annotations  # Prompt builders and output schemas for the completion collaborator

import json
from textwrap import dedent
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import AliasChoices, BaseModel, Field

from interview_session.models import CandidateProfile, Difficulty, Level, Question


class QuestionPlan(BaseModel):  # Question generation output schema
    id: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    text: str = Field(min_length=1)
    seconds: Optional[int] = Field(default=None, gt=0)
    rubric: Optional[str] = None
    key_points: List[str] = Field(default_factory=list, validation_alias=AliasChoices("key_points", "keyPoints"))

    model_config = {"str_strip_whitespace": True}


class ScorePlan(BaseModel):  # Answer scoring output schema
    score: float = Field(ge=0.0, le=10.0)
    feedback: str
    missing: List[str] = Field(default_factory=list)


class SummaryPlan(BaseModel):  # Interview summary output schema
    overall_score: float = Field(ge=0.0, le=100.0, validation_alias=AliasChoices("overall_score", "overallScore"))
    level: Level
    strengths: List[str]
    improvements: List[str]
    summary: str
    plan: List[str] = Field(default_factory=list)


def _profile_brief(profile: CandidateProfile) -> Dict[str, Any]:
    return {"name": profile.name, "skills": list(profile.skills), "years": profile.years or 0}


def build_question_prompt(
    profile: CandidateProfile,
    difficulty: Difficulty,
    seconds: int,
    previous_qa: Sequence[Dict[str, Optional[str]]],
    *,
    role_focus: str,
) -> Tuple[str, str]:  # Compose system/user prompts for one question
    system = dedent(
        f"""
        You are an interviewer for a {role_focus} role. Ask one {difficulty} difficulty question.
        - Focus on React, Node.js, TypeScript, HTTP, performance, testing, or system design at appropriate depth.
        - The candidate has {seconds} seconds to answer; size the question accordingly.
        - Do not repeat earlier questions.
        - Include a short rubric and key points. Return strict JSON.
        """
    ).strip()
    user = json.dumps(
        {
            "profile": _profile_brief(profile),
            "previousQA": list(previous_qa),
            "format": {
                "difficulty": difficulty,
                "text": "string",
                "seconds": seconds,
                "rubric": "string",
                "key_points": ["array of strings"],
            },
        }
    )
    return system, user


def build_score_prompt(question: Question, answer_text: str) -> Tuple[str, str]:  # Compose prompts for scoring one answer
    system = dedent(
        """
        You are evaluating an interview answer. Score from 0 to 10.
        An empty answer scores 0.
        Provide 2-sentence feedback and list missing key points. Return strict JSON.
        """
    ).strip()
    user = json.dumps(
        {
            "question": {
                "text": question.text,
                "difficulty": question.difficulty,
                "rubric": question.rubric,
                "key_points": list(question.key_points),
            },
            "answer": answer_text,
            "format": {"score": 0, "feedback": "string", "missing": ["array of strings"]},
        }
    )
    return system, user


def build_summary_prompt(
    qa: Sequence[Dict[str, Any]],
    profile: CandidateProfile,
) -> Tuple[str, str]:  # Compose prompts for the final narrative
    system = dedent(
        """
        You are summarizing an interview. Provide:
        - overall_score (0..100), level (Beginner|Intermediate|Expert),
        - strengths, improvements, and a 4-5 sentence summary with a tailored learning plan.
        Return strict JSON.
        """
    ).strip()
    user = json.dumps(
        {
            "profile": _profile_brief(profile),
            "qa": list(qa),
            "format": {
                "overall_score": 0,
                "level": "Beginner",
                "strengths": ["array of strings"],
                "improvements": ["array of strings"],
                "summary": "string",
                "plan": ["array of strings"],
            },
        }
    )
    return system, user


__all__ = [
    "QuestionPlan",
    "ScorePlan",
    "SummaryPlan",
    "build_question_prompt",
    "build_score_prompt",
    "build_summary_prompt",
]
