from __future__ import annotations  # Drives a session through answer, score, next question and summary

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import timedelta
from typing import Callable, Optional

from candidate_management import CandidateStore
from interview_session.clock import InterviewClock
from interview_session.models import TOTAL_QUESTIONS, Answer, InterviewState, Question
from interview_session.store import SessionStore
from llm_gateway import Completer
from observability import log_event
from services.scoring import maybe_summarize, score_answer

from .progression import next_question

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 4


class InterviewRunner:
    """Connects the store, its clock and the completion-backed engines.

    Manual answers are processed on the caller's thread. Expired questions are
    handed to a worker pool so the clock thread never waits on the model.
    """

    def __init__(
        self,
        store: SessionStore,
        candidates: Optional[CandidateStore] = None,
        *,
        complete: Optional[Completer] = None,
        clock: Optional[InterviewClock] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self.store = store
        self.candidates = candidates
        self._complete = complete
        self._executor = executor or ThreadPoolExecutor(
            max_workers=DEFAULT_WORKERS, thread_name_prefix="interview-worker"
        )
        self.clock = clock or InterviewClock(store)
        self.clock.set_expiry_handler(self.handle_expiry)
        self.clock.attach()

    def begin(self, candidate_id: str) -> Optional[Question]:  # Issue (or return) the question for the current step
        return next_question(self.store, self.candidates, candidate_id, self._complete)

    def restart(self, candidate_id: str) -> Optional[Question]:  # Reset, start and ask the first question again
        self.store.reset(candidate_id)
        self.store.start(candidate_id)
        return self.begin(candidate_id)

    def submit(self, candidate_id: str, text: str) -> Optional[Answer]:
        """Record a manual answer to the active question, timing it from the clock."""

        state = self.store.get(candidate_id)
        if state is None:
            logger.debug("No session for candidate %s", candidate_id)
            return None
        question = state.pending_question()
        if question is None:
            return None
        elapsed = max(question.seconds - state.timer.remaining, 0)
        now = self.store.now()
        answer = Answer(
            question_id=question.id,
            text=text,
            started_at=now - timedelta(seconds=elapsed),
            submitted_at=now,
            elapsed_seconds=elapsed,
        )
        snapshot = self.store.submit_answer(candidate_id, answer)
        if snapshot is None or snapshot.find_answer(answer.id) is None:
            return None
        return answer

    def advance(self, candidate_id: str, answer_id: str) -> Optional[InterviewState]:
        """Score an answer, then ask the next question or write the summary."""

        score_answer(self.store, candidate_id, answer_id, self._complete)
        state = self.store.get(candidate_id)
        if state is None or state.stage == "completed":
            return state
        if len(state.answers) >= TOTAL_QUESTIONS:
            maybe_summarize(self.store, self.candidates, candidate_id, self._complete)
        else:
            next_question(self.store, self.candidates, candidate_id, self._complete)
        return self.store.get(candidate_id)

    def finish(self, candidate_id: str) -> Optional[InterviewState]:
        """Complete a session whose last answer is in but whose scoring or summary failed."""

        state = self.store.get(candidate_id)
        if state is None or state.stage == "completed" or len(state.answers) < TOTAL_QUESTIONS:
            return state
        for answer in state.answers:
            if answer.score is None:
                score_answer(self.store, candidate_id, answer.id, self._complete)
        maybe_summarize(self.store, self.candidates, candidate_id, self._complete)
        return self.store.get(candidate_id)

    def answer(self, candidate_id: str, text: str) -> Optional[InterviewState]:  # Submit and advance in one call
        submitted = self.submit(candidate_id, text)
        if submitted is None:
            return None
        return self.advance(candidate_id, submitted.id)

    def handle_expiry(self, candidate_id: str, answer: Answer) -> Future:
        """Clock callback: advance past an auto-submitted answer on a worker."""

        future = self._executor.submit(self.advance, candidate_id, answer.id)
        future.add_done_callback(_report_failure(candidate_id, answer.id))
        return future

    def shutdown(self, wait: bool = False) -> None:
        self.clock.detach()
        self._executor.shutdown(wait=wait)


def _report_failure(candidate_id: str, answer_id: str) -> Callable[[Future], None]:
    def _done(future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            log_event(
                "advance_failed",
                candidate_id,
                level=logging.ERROR,
                answer_id=answer_id,
                outcome=f"{type(error).__name__}: {error}",
            )

    return _done


__all__ = ["InterviewRunner"]
