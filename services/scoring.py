"""Answer scoring, score statistics, badges and the final summary."""
from __future__ import annotations

import logging
from statistics import fmean, pstdev
from typing import Any, Dict, List, Optional, Sequence, Tuple

from candidate_management import CandidateStore
from config.registry import COMPLETION_KEY, get_model
from interview_session.models import (
    TOTAL_QUESTIONS,
    Answer,
    CandidateProfile,
    ChatMessage,
    InterviewState,
    InterviewSummary,
)
from interview_session.store import SessionStore
from llm_gateway import Completer, parse_json_object
from observability import log_event
from services.prompts import ScorePlan, SummaryPlan, build_score_prompt, build_summary_prompt

logger = logging.getLogger(__name__)

QUICK_THINKER = "Quick Thinker"
CONSISTENT_PERFORMER = "Consistent Performer"
HARD_QUESTION_HERO = "Hard Question Hero"

QUICK_MAX_ELAPSED_S = 5
QUICK_MIN_SCORE = 8.0
CONSISTENT_MAX_STDDEV = 1.5
CONSISTENT_MIN_MEAN = 7.5


def _round1(value: float) -> float:
    """Round a float to one decimal place with stable formatting."""
    return float(f"{value:.1f}")


def score_stats(scores: Sequence[float]) -> Tuple[float, float]:
    """Mean and population standard deviation; an empty sequence yields zeros."""

    if not scores:
        return 0.0, 0.0
    return fmean(scores), pstdev(scores)


def answer_scores(state: InterviewState) -> List[float]:
    return [answer.score if answer.score is not None else 0.0 for answer in state.answers]


def derive_badges(state: InterviewState) -> List[str]:
    """Award badges from timing, consistency and hard-question results."""

    badges: List[str] = []
    if any(_is_quick(answer) for answer in state.answers):
        badges.append(QUICK_THINKER)
    mean, stddev = score_stats(answer_scores(state))
    if stddev < CONSISTENT_MAX_STDDEV and mean >= CONSISTENT_MIN_MEAN:
        badges.append(CONSISTENT_PERFORMER)
    for answer in state.answers:
        question = state.find_question(answer.question_id)
        if question is not None and question.difficulty == "hard" and answer.score == 10:
            badges.append(HARD_QUESTION_HERO)
            break
    return badges


def _is_quick(answer: Answer) -> bool:
    return (
        answer.elapsed_seconds < QUICK_MAX_ELAPSED_S
        and answer.score is not None
        and answer.score >= QUICK_MIN_SCORE
    )


def _feedback_message(score: float, feedback: str) -> str:
    return f"Score: {score:g}/10. {feedback}".strip()


def score_answer(
    store: SessionStore,
    candidate_id: str,
    answer_id: str,
    complete: Optional[Completer] = None,
) -> Optional[Answer]:
    """Score one answer against its question and post the feedback to the chat.

    Unknown candidates, answers or questions are ignored and yield ``None``.
    """

    state = store.get(candidate_id)
    if state is None:
        logger.debug("No session for candidate %s", candidate_id)
        return None
    answer = state.find_answer(answer_id)
    question = state.find_question(answer.question_id) if answer is not None else None
    if answer is None or question is None:
        logger.debug("Nothing to score for answer %s of candidate %s", answer_id, candidate_id)
        return None

    complete = complete or get_model(COMPLETION_KEY)
    system, user = build_score_prompt(question, answer.text)
    plan = parse_json_object(complete(system, user), ScorePlan)
    snapshot = store.update_answer_score(
        candidate_id,
        answer_id,
        plan.score,
        plan.feedback,
        generation=state.generation,
    )
    if snapshot is None:
        return None
    scored = snapshot.find_answer(answer_id)
    if scored is None or scored.score != plan.score:
        return None
    store.push_message(
        candidate_id,
        ChatMessage(role="assistant", content=_feedback_message(plan.score, plan.feedback)),
        generation=state.generation,
    )
    return scored


def _qa_rows(state: InterviewState) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for index, question in enumerate(state.questions):
        answer = state.answers[index] if index < len(state.answers) else None
        rows.append(
            {
                "q": question.text,
                "difficulty": question.difficulty,
                "a": answer.text if answer is not None else "",
                "score": answer.score if answer is not None else None,
                "feedback": answer.feedback if answer is not None else None,
            }
        )
    return rows


def maybe_summarize(
    store: SessionStore,
    candidates: Optional[CandidateStore],
    candidate_id: str,
    complete: Optional[Completer] = None,
) -> Optional[InterviewSummary]:
    """Build the final summary once all six answers exist and complete the session.

    A completed session returns its existing summary without another model call.
    """

    state = store.get(candidate_id)
    if state is None:
        logger.debug("No session for candidate %s", candidate_id)
        return None
    if state.stage == "completed":
        return state.summary
    if len(state.answers) < TOTAL_QUESTIONS:
        return None

    mean, stddev = score_stats(answer_scores(state))
    badges = derive_badges(state)
    profile = candidates.get(candidate_id) if candidates is not None else None
    complete = complete or get_model(COMPLETION_KEY)
    system, user = build_summary_prompt(_qa_rows(state), profile or CandidateProfile(id=candidate_id))
    plan = parse_json_object(complete(system, user), SummaryPlan)

    summary = InterviewSummary(
        score=_round1(plan.overall_score),
        level=plan.level,
        strengths=plan.strengths,
        improvements=plan.improvements,
        overview=plan.summary,
        plan=plan.plan,
        badges=badges,
        altered_path=state.meta.altered_path,
        mean=round(mean, 2),
        stddev=round(stddev, 2),
    )
    snapshot = store.complete(candidate_id, summary, generation=state.generation)
    if snapshot is None or snapshot.summary is None:
        return None
    log_event("summary", candidate_id, score=summary.score, badges=summary.badges)
    return snapshot.summary


__all__ = [
    "CONSISTENT_PERFORMER",
    "HARD_QUESTION_HERO",
    "QUICK_THINKER",
    "answer_scores",
    "derive_badges",
    "maybe_summarize",
    "score_answer",
    "score_stats",
]
