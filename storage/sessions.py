"""Persistence helpers for interview session snapshots."""
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from interview_session.models import InterviewState

from .sqlite import get_conn


def save_session(state: InterviewState) -> None:
    """Persist the full session record, replacing any previous snapshot."""

    now = dt.datetime.now(dt.timezone.utc).isoformat()
    summary_score = state.summary.score if state.summary is not None else None
    with get_conn() as conn:
        conn.execute(
            """INSERT OR REPLACE INTO interview_sessions
               (candidate_id, generation, stage, step_index, summary_score, state_json, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                state.candidate_id,
                state.generation,
                state.stage,
                state.step_index,
                summary_score,
                state.model_dump_json(),
                now,
            ),
        )


def load_session(candidate_id: str) -> Optional[InterviewState]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT state_json FROM interview_sessions WHERE candidate_id = ?",
            (candidate_id,),
        ).fetchone()
    if row is None:
        return None
    return InterviewState.model_validate_json(row["state_json"])


def load_all_sessions() -> List[InterviewState]:
    with get_conn() as conn:
        rows = conn.execute("SELECT state_json FROM interview_sessions").fetchall()
    return [InterviewState.model_validate_json(row["state_json"]) for row in rows]


def delete_session(candidate_id: str) -> None:
    with get_conn() as conn:
        conn.execute("DELETE FROM interview_sessions WHERE candidate_id = ?", (candidate_id,))


def persist_snapshot(candidate_id: str, snapshot: Optional[InterviewState]) -> None:
    """Store listener: mirror each snapshot to SQLite, dropping the row on removal."""

    if snapshot is None:
        delete_session(candidate_id)
    else:
        save_session(snapshot)
