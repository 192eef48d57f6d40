from __future__ import annotations  # Assemble session reports from live or persisted state

from typing import Optional

from interview_session.store import SessionStore
from storage import candidates as candidate_rows
from storage import sessions as session_rows

from .models import SessionReport


def load_report(candidate_id: str, *, sessions: Optional[SessionStore] = None) -> SessionReport:  # Raise KeyError when absent
    profile = candidate_rows.get_candidate(candidate_id)
    if profile is None:
        raise KeyError(candidate_id)
    state = sessions.get(candidate_id) if sessions is not None else None
    if state is None:
        state = session_rows.load_session(candidate_id)
    if state is None:
        raise KeyError(candidate_id)
    return SessionReport(profile=profile, state=state)


__all__ = ["load_report"]
