from __future__ import annotations  # Question progression and session driving

from .progression import (
    ProgressionError,
    StepPolicy,
    compute_adaptive_next_difficulty,
    get_difficulty_by_step,
    next_question,
)
from .runner import InterviewRunner

__all__ = [
    "InterviewRunner",
    "ProgressionError",
    "StepPolicy",
    "compute_adaptive_next_difficulty",
    "get_difficulty_by_step",
    "next_question",
]
