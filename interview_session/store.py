"""In-memory interview session store.

Every mutation is a synchronous transition over one candidate's
``InterviewState`` and runs under that candidate's lock, so the timer thread,
scoring workers and API handlers interleave only at transition boundaries.
Callers always receive deep-copied snapshots.

Missing candidates and stale generations are treated as benign races with
resets or deletions: the operation returns ``None`` and leaves state alone.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional

from observability import log_event

from .models import (
    MAX_STEP_INDEX,
    TOTAL_QUESTIONS,
    Answer,
    ChatMessage,
    InterviewState,
    InterviewSummary,
    Question,
    TickResult,
    TimerState,
    utcnow,
)

logger = logging.getLogger(__name__)

Listener = Callable[[str, Optional[InterviewState]], None]
Transition = Callable[[InterviewState], bool]


class SessionStore:
    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._sessions: Dict[str, InterviewState] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()
        self._listeners: List[Listener] = []
        self._now = clock

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def _lock_for(self, candidate_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(candidate_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[candidate_id] = lock
        return lock

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unsubscribes it."""

        with self._guard:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._guard:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, candidate_id: str, snapshot: Optional[InterviewState]) -> None:
        with self._guard:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(candidate_id, snapshot)

    def _apply(
        self,
        candidate_id: str,
        transition: Transition,
        *,
        create: bool = False,
        generation: Optional[int] = None,
    ) -> Optional[InterviewState]:
        with self._lock_for(candidate_id):
            state = self._sessions.get(candidate_id)
            if state is None:
                if not create:
                    logger.debug("No session for candidate %s", candidate_id)
                    return None
                state = InterviewState(candidate_id=candidate_id)
                self._sessions[candidate_id] = state
            if generation is not None and generation != state.generation:
                log_event(
                    "stale_result",
                    candidate_id,
                    level=logging.WARNING,
                    outcome=f"generation {generation} != {state.generation}",
                )
                return None
            changed = transition(state)
            snapshot = state.model_copy(deep=True)
            # Listeners run under the candidate lock so they observe changes in order.
            if changed:
                self._notify(candidate_id, snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, candidate_id: str) -> Optional[InterviewState]:
        with self._lock_for(candidate_id):
            state = self._sessions.get(candidate_id)
            return state.model_copy(deep=True) if state is not None else None

    def candidate_ids(self) -> List[str]:
        with self._guard:
            return list(self._sessions.keys())

    def now(self) -> datetime:
        return self._now()

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------
    def ensure(self, candidate_id: str) -> InterviewState:
        """Return the session, creating a fresh ``collecting_profile`` record if absent."""

        snapshot = self._apply(candidate_id, lambda state: False, create=True)
        if snapshot is None:
            raise RuntimeError(f"Could not create a session for {candidate_id}")
        return snapshot

    def start(self, candidate_id: str) -> Optional[InterviewState]:
        """Enter ``running``; re-entry keeps ``step_index`` equal to the answers recorded so far instead of zeroing it."""

        def _start(state: InterviewState) -> bool:
            if state.stage == "completed":
                log_event("start_rejected", candidate_id, level=logging.WARNING, stage=state.stage)
                return False
            state.stage = "running"
            state.step_index = min(len(state.answers), MAX_STEP_INDEX)
            state.timer.paused = state.timer.question_id is None
            state.meta.paused_at = None
            log_event("start", candidate_id, stage=state.stage, step=state.step_index)
            return True

        return self._apply(candidate_id, _start, create=True)

    def pause(self, candidate_id: str) -> Optional[InterviewState]:
        def _pause(state: InterviewState) -> bool:
            if state.stage not in ("running", "paused"):
                return False
            state.stage = "paused"
            state.timer.paused = True
            state.meta.paused_at = self._now()
            log_event("pause", candidate_id, stage=state.stage, step=state.step_index)
            return True

        return self._apply(candidate_id, _pause)

    def resume(self, candidate_id: str) -> Optional[InterviewState]:
        def _resume(state: InterviewState) -> bool:
            if state.stage not in ("running", "paused"):
                return False
            state.stage = "running"
            state.timer.paused = False
            state.meta.paused_at = None
            log_event("resume", candidate_id, stage=state.stage, step=state.step_index)
            return True

        return self._apply(candidate_id, _resume)

    def reset(self, candidate_id: str) -> InterviewState:
        """Replace any record with a fresh ``collecting_profile`` one under a new generation."""

        with self._lock_for(candidate_id):
            previous = self._sessions.get(candidate_id)
            generation = previous.generation + 1 if previous is not None else 0
            state = InterviewState(candidate_id=candidate_id, generation=generation)
            self._sessions[candidate_id] = state
            snapshot = state.model_copy(deep=True)
            log_event("reset", candidate_id, stage=snapshot.stage, outcome=f"generation={generation}")
            self._notify(candidate_id, snapshot)
        return snapshot

    def complete(
        self,
        candidate_id: str,
        summary: InterviewSummary,
        *,
        generation: Optional[int] = None,
    ) -> Optional[InterviewState]:
        """Record the final summary and enter the terminal ``completed`` stage."""

        def _complete(state: InterviewState) -> bool:
            if state.stage == "completed":
                return False
            state.summary = summary.model_copy(deep=True)
            state.stage = "completed"
            state.timer = TimerState(question_id=None, remaining=0, paused=True)
            log_event("complete", candidate_id, stage=state.stage, score=summary.score, badges=summary.badges)
            return True

        return self._apply(candidate_id, _complete, generation=generation)

    set_summary = complete

    def remove(self, candidate_id: str) -> bool:
        with self._lock_for(candidate_id):
            existed = self._sessions.pop(candidate_id, None) is not None
            if existed:
                log_event("remove", candidate_id)
                self._notify(candidate_id, None)
        with self._guard:
            self._locks.pop(candidate_id, None)
        return existed

    def restore(self, state: InterviewState) -> InterviewState:
        """Load a persisted record; a session that was running comes back paused."""

        restored = state.model_copy(deep=True)
        if restored.stage == "running":
            restored.stage = "paused"
            restored.timer.paused = True
            restored.meta.paused_at = self._now()
        with self._lock_for(restored.candidate_id):
            self._sessions[restored.candidate_id] = restored
            snapshot = restored.model_copy(deep=True)
            log_event("restore", restored.candidate_id, stage=snapshot.stage, step=snapshot.step_index)
            self._notify(restored.candidate_id, snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Content transitions
    # ------------------------------------------------------------------
    def push_message(
        self,
        candidate_id: str,
        message: ChatMessage,
        *,
        generation: Optional[int] = None,
    ) -> Optional[InterviewState]:
        def _push(state: InterviewState) -> bool:
            state.messages.append(message.model_copy())
            return True

        return self._apply(candidate_id, _push, create=generation is None, generation=generation)

    def add_question(
        self,
        candidate_id: str,
        question: Question,
        *,
        generation: Optional[int] = None,
    ) -> Optional[InterviewState]:
        def _add(state: InterviewState) -> bool:
            if state.stage == "completed":
                return False
            # One unanswered question at a time, and never more than six.
            if (
                state.timer.question_id is not None
                or len(state.questions) != len(state.answers)
                or len(state.questions) >= TOTAL_QUESTIONS
            ):
                log_event(
                    "question_rejected",
                    candidate_id,
                    level=logging.WARNING,
                    question_id=question.id,
                    outcome=f"questions={len(state.questions)} answers={len(state.answers)}",
                )
                return False
            state.questions.append(question)
            state.timer = TimerState(
                question_id=question.id,
                remaining=question.seconds,
                paused=state.stage == "paused",
            )
            log_event(
                "question",
                candidate_id,
                step=state.step_index,
                difficulty=question.difficulty,
                seconds=question.seconds,
                question_id=question.id,
            )
            return True

        return self._apply(candidate_id, _add, generation=generation)

    def _append_answer(self, state: InterviewState, answer: Answer) -> bool:
        if state.timer.question_id is None or state.timer.question_id != answer.question_id:
            log_event(
                "answer_rejected",
                state.candidate_id,
                level=logging.WARNING,
                question_id=answer.question_id,
                answer_id=answer.id,
            )
            return False
        state.answers.append(answer)
        state.timer = TimerState(question_id=None, remaining=0, paused=True)
        state.step_index = min(state.step_index + 1, MAX_STEP_INDEX)
        log_event(
            "answer",
            state.candidate_id,
            step=state.step_index,
            question_id=answer.question_id,
            answer_id=answer.id,
            outcome="auto" if answer.auto_submitted else "manual",
        )
        return True

    def submit_answer(self, candidate_id: str, answer: Answer) -> Optional[InterviewState]:
        """Append ``answer`` if its question is the active one, clearing the timer and advancing the step."""

        def _submit(state: InterviewState) -> bool:
            if state.stage not in ("running", "paused"):
                return False
            return self._append_answer(state, answer.model_copy())

        return self._apply(candidate_id, _submit)

    def update_answer_score(
        self,
        candidate_id: str,
        answer_id: str,
        score: Optional[float] = None,
        feedback: Optional[str] = None,
        *,
        generation: Optional[int] = None,
    ) -> Optional[InterviewState]:
        def _update(state: InterviewState) -> bool:
            if state.stage == "completed":
                return False
            answer = state.find_answer(answer_id)
            if answer is None:
                logger.debug("Answer %s not found for candidate %s", answer_id, candidate_id)
                return False
            if score is not None:
                answer.score = score
            if feedback is not None:
                answer.feedback = feedback
            log_event("score", candidate_id, answer_id=answer_id, score=answer.score)
            return True

        return self._apply(candidate_id, _update, generation=generation)

    def mark_altered_path(self, candidate_id: str, *, generation: Optional[int] = None) -> Optional[InterviewState]:
        def _mark(state: InterviewState) -> bool:
            if state.meta.altered_path or state.stage == "completed":
                return False
            state.meta.altered_path = True
            log_event("altered_path", candidate_id, step=state.step_index)
            return True

        return self._apply(candidate_id, _mark, generation=generation)

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------
    def _expire(self, state: InterviewState) -> Optional[Answer]:
        """Auto-submit an empty answer for the question whose time ran out."""

        now = self._now()
        answer = Answer(
            question_id=state.timer.question_id or "",
            text="",
            started_at=now,
            submitted_at=now,
            elapsed_seconds=0,
            auto_submitted=True,
        )
        if not self._append_answer(state, answer):
            return None
        log_event("expire", state.candidate_id, question_id=answer.question_id, answer_id=answer.id)
        return answer

    def tick(self, candidate_id: str) -> Optional[TickResult]:
        expired: List[Answer] = []

        def _tick(state: InterviewState) -> bool:
            if state.stage == "completed":
                return False
            timer = state.timer
            changed = False
            if not timer.paused and timer.remaining > 0:
                timer.remaining -= 1
                changed = True
            if not timer.paused and timer.remaining == 0 and timer.question_id is not None:
                answer = self._expire(state)
                if answer is not None:
                    expired.append(answer)
                    changed = True
            return changed

        snapshot = self._apply(candidate_id, _tick)
        if snapshot is None:
            return None
        return TickResult(state=snapshot, expired_answer=expired[0] if expired else None)


__all__ = ["Listener", "SessionStore"]
