from __future__ import annotations  # Difficulty policy and question issuance

import logging
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from candidate_management import CandidateStore
from config.registry import COMPLETION_KEY, get_model
from config.settings import settings
from interview_session.models import TOTAL_QUESTIONS, CandidateProfile, Difficulty, InterviewState, Question
from interview_session.store import SessionStore
from llm_gateway import Completer, parse_json_object
from observability import log_event
from services.prompts import QuestionPlan, build_question_prompt

logger = logging.getLogger(__name__)

ALTERED_PATH_STEP = 2
ALTERED_PATH_MIN_SCORE = 9.0


class ProgressionError(RuntimeError):
    """Raised when the interview cannot take another question."""


class StepPolicy(BaseModel):  # Difficulty and time budget for one step
    difficulty: Difficulty
    seconds: int = Field(gt=0)

    model_config = {"frozen": True}


_EASY = StepPolicy(difficulty="easy", seconds=20)
_MEDIUM = StepPolicy(difficulty="medium", seconds=60)
_HARD = StepPolicy(difficulty="hard", seconds=120)


def get_difficulty_by_step(step_index: int) -> StepPolicy:  # Deterministic 2 easy / 2 medium / 2 hard mapping
    if step_index <= 1:
        return _EASY
    if step_index <= 3:
        return _MEDIUM
    return _HARD


def compute_adaptive_next_difficulty(store: SessionStore, candidate_id: str) -> Optional[StepPolicy]:
    """Policy for the session's current step, escalating to hard after two strong openers.

    At step 2, when both recorded answers scored at least 9, the session is
    marked as having taken the altered path and the third question is hard.
    """

    state = store.get(candidate_id)
    if state is None:
        logger.debug("No session for candidate %s", candidate_id)
        return None
    policy, altered = _policy_for(state)
    if altered:
        store.mark_altered_path(candidate_id, generation=state.generation)
    return policy


def _policy_for(state: InterviewState) -> Tuple[StepPolicy, bool]:  # (policy, whether it leaves the default path)
    if state.step_index == ALTERED_PATH_STEP and _strong_opening(state):
        return _HARD, True
    return get_difficulty_by_step(state.step_index), False


def _strong_opening(state: InterviewState) -> bool:
    if len(state.answers) < 2:
        return False
    opening = state.answers[:2]
    return all(answer.score is not None and answer.score >= ALTERED_PATH_MIN_SCORE for answer in opening)


def _previous_qa(state: InterviewState) -> List[Dict[str, Optional[str]]]:  # Ordered prior question/answer pairs
    pairs: List[Dict[str, Optional[str]]] = []
    for index, question in enumerate(state.questions):
        answer = state.answers[index].text if index < len(state.answers) else None
        pairs.append({"q": question.text, "a": answer})
    return pairs


def _profile_for(candidates: Optional[CandidateStore], candidate_id: str) -> CandidateProfile:
    profile = candidates.get(candidate_id) if candidates is not None else None
    return profile or CandidateProfile(id=candidate_id)


def next_question(
    store: SessionStore,
    candidates: Optional[CandidateStore],
    candidate_id: str,
    complete: Optional[Completer] = None,
) -> Optional[Question]:
    """Generate, validate and append the next question for a running session.

    Returns ``None`` for unknown candidates, completed sessions, and results
    that arrive after a reset. A question that is still awaiting an answer is
    returned as-is without calling the model.
    """

    state = store.get(candidate_id)
    if state is None:
        logger.debug("No session for candidate %s", candidate_id)
        return None
    if state.stage == "completed":
        return None
    if state.stage == "collecting_profile":
        raise ProgressionError(f"Interview for {candidate_id} has not started")
    pending = state.pending_question()
    if pending is not None:
        return pending
    if len(state.questions) >= TOTAL_QUESTIONS:
        raise ProgressionError(f"Interview for {candidate_id} already has {TOTAL_QUESTIONS} questions")

    # The altered path is recorded only once its hard question is accepted.
    policy, altered = _policy_for(state)
    complete = complete or get_model(COMPLETION_KEY)
    system, user = build_question_prompt(
        _profile_for(candidates, candidate_id),
        policy.difficulty,
        policy.seconds,
        _previous_qa(state),
        role_focus=settings.ROLE_FOCUS,
    )
    plan = parse_json_object(complete(system, user), QuestionPlan)
    if plan.difficulty is not None and plan.difficulty != policy.difficulty:
        logger.info(
            "Model proposed %s question at step %s; keeping %s",
            plan.difficulty,
            state.step_index,
            policy.difficulty,
        )
    question = Question(
        difficulty=policy.difficulty,
        text=plan.text,
        seconds=plan.seconds or policy.seconds,
        rubric=plan.rubric,
        key_points=plan.key_points,
    )
    snapshot = store.add_question(candidate_id, question, generation=state.generation)
    if snapshot is None or snapshot.find_question(question.id) is None:
        log_event("question_discarded", candidate_id, level=logging.WARNING, question_id=question.id)
        return None
    if altered:
        store.mark_altered_path(candidate_id, generation=state.generation)
    return question


__all__ = [
    "ProgressionError",
    "StepPolicy",
    "compute_adaptive_next_difficulty",
    "get_difficulty_by_step",
    "next_question",
]
