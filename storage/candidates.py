"""Persistence helpers for candidate profiles."""
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from interview_session.models import CandidateProfile

from .sqlite import get_conn


def upsert_candidate(profile: CandidateProfile) -> CandidateProfile:
    """Insert or replace a candidate row keyed by its stable id."""

    now = dt.datetime.now(dt.timezone.utc).isoformat()
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO candidates
               (candidate_id, name, email, phone, profile_json, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(candidate_id) DO UPDATE SET
                 name = excluded.name,
                 email = excluded.email,
                 phone = excluded.phone,
                 profile_json = excluded.profile_json,
                 updated_at = excluded.updated_at""",
            (
                profile.id,
                profile.name,
                profile.email,
                profile.phone,
                profile.model_dump_json(),
                profile.created_at.isoformat(),
                now,
            ),
        )
    return profile


def get_candidate(candidate_id: str) -> Optional[CandidateProfile]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT profile_json FROM candidates WHERE candidate_id = ?",
            (candidate_id,),
        ).fetchone()
    if row is None:
        return None
    return CandidateProfile.model_validate_json(row["profile_json"])


def list_candidates() -> List[CandidateProfile]:
    """List candidates ordered by recency."""

    with get_conn() as conn:
        rows = conn.execute(
            """SELECT profile_json FROM candidates
               ORDER BY created_at DESC, rowid DESC"""
        ).fetchall()
    return [CandidateProfile.model_validate_json(row["profile_json"]) for row in rows]


def delete_candidate(candidate_id: str) -> bool:
    """Delete a candidate row; callers remove the session row separately."""

    with get_conn() as conn:
        cur = conn.execute("DELETE FROM candidates WHERE candidate_id = ?", (candidate_id,))
        return cur.rowcount > 0
