"""Process-wide wiring of stores, engines and persistence for the API."""
from __future__ import annotations

import logging
from typing import Optional

from candidate_management import CandidateStore
from flow_manager import InterviewRunner
from interview_session import SessionStore
from llm_gateway import Completer
from services.preflight import PreflightCollector
from storage import load_all_sessions, persist_snapshot

logger = logging.getLogger(__name__)


class InterviewServices:
    """Owns the session store and everything that reacts to it.

    Every store change is mirrored to SQLite; ``restore`` reloads persisted
    sessions after a restart, with running interviews coming back paused.
    """

    def __init__(self, *, complete: Optional[Completer] = None) -> None:
        self.sessions = SessionStore()
        self._unsubscribe = self.sessions.subscribe(persist_snapshot)
        self.candidates = CandidateStore(self.sessions)
        self.runner = InterviewRunner(self.sessions, self.candidates, complete=complete)
        self.preflight = PreflightCollector(self.sessions, self.candidates, on_start=self.runner.begin)

    def restore(self) -> int:
        restored = 0
        for state in load_all_sessions():
            self.sessions.restore(state)
            restored += 1
        logger.info("Restored %d interview sessions", restored)
        return restored

    def close(self) -> None:
        self.runner.shutdown()
        self._unsubscribe()


__all__ = ["InterviewServices"]
