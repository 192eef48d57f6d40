from __future__ import annotations  # Candidate profile management

from typing import Any, List, Optional

from interview_session import CandidateProfile, ResumeMeta, SessionStore
from observability import log_event
from services.resume_import import ParsedResume, normalize_email, normalize_phone, normalize_skills
from storage import candidates as candidate_rows
from storage import sessions as session_rows


class CandidateStore:  # SQLite-backed candidate profiles with session cascade
    def __init__(self, sessions: Optional[SessionStore] = None) -> None:
        self._sessions = sessions

    def create_candidate(self, **fields: Any) -> CandidateProfile:  # Persist a new profile under a fresh id
        fields.pop("id", None)
        profile = CandidateProfile(**fields)
        candidate_rows.upsert_candidate(profile)
        log_event("candidate_created", profile.id)
        return profile

    def get(self, candidate_id: str) -> Optional[CandidateProfile]:
        return candidate_rows.get_candidate(candidate_id)

    def list_candidates(self) -> List[CandidateProfile]:  # Most recent first
        return candidate_rows.list_candidates()

    def upsert(self, profile: CandidateProfile) -> CandidateProfile:
        return candidate_rows.upsert_candidate(profile)

    def update_fields(self, candidate_id: str, **changes: Any) -> Optional[CandidateProfile]:  # Merge changes into an existing profile
        current = self.get(candidate_id)
        if current is None:
            return None
        changes.pop("id", None)
        changes.pop("created_at", None)
        updated = current.model_copy(update=changes)
        candidate_rows.upsert_candidate(updated)
        log_event("candidate_updated", candidate_id, outcome=",".join(sorted(changes)))
        return updated

    def import_resume(self, candidate_id: str, parsed: ParsedResume) -> Optional[CandidateProfile]:  # Fill profile fields the parser found
        current = self.get(candidate_id)
        if current is None:
            return None
        changes: dict[str, Any] = {
            "resume_meta": ResumeMeta(
                filename=parsed.meta.filename,
                size=parsed.meta.size,
                mime=parsed.meta.mime,
            ),
            "skills": normalize_skills([*current.skills, *parsed.skills]),
        }
        if parsed.fields.name:
            changes["name"] = parsed.fields.name
        if parsed.fields.email:
            changes["email"] = normalize_email(parsed.fields.email)
        if parsed.fields.phone:
            phone = normalize_phone(parsed.fields.phone)
            if phone:
                changes["phone"] = phone
        return self.update_fields(candidate_id, **changes)

    def delete_candidate(self, candidate_id: str) -> bool:  # Remove the profile and its interview session
        if self._sessions is not None:
            self._sessions.remove(candidate_id)
        session_rows.delete_session(candidate_id)
        removed = candidate_rows.delete_candidate(candidate_id)
        if removed:
            log_event("candidate_deleted", candidate_id)
        return removed


__all__ = ["CandidateStore"]
