"""Conversational collection of missing candidate details before the interview."""
from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from candidate_management import CandidateStore
from interview_session.models import CandidateProfile, ChatMessage
from interview_session.store import SessionStore
from observability import log_event

from .resume_import import normalize_email

logger = logging.getLogger(__name__)

FIELD_ORDER = ("name", "email", "phone")

FIELD_PROMPTS: Dict[str, str] = {
    "name": "What is your full name?",
    "email": "What is your email address?",
    "phone": "What is your phone number?",
}
RETRY_PROMPT = "That does not look valid. Please try again."
READY_GREETING = "Great, I have your details. Ready to start the interview?"
CONFIRMATION = (
    "Great, we'll start a timed interview. You'll get 6 questions (2 easy, 2 medium, 2 hard)."
)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\+?[0-9\s\-()./]+$")
_MIN_PHONE_DIGITS = 7


class PreflightReply(BaseModel):
    """Messages produced by one preflight turn and where the collector now stands."""

    messages: List[ChatMessage] = Field(default_factory=list)
    pending_field: Optional[str] = None
    started: bool = False


def missing_fields(profile: CandidateProfile) -> List[str]:
    return [field for field in FIELD_ORDER if not getattr(profile, field).strip()]


def validate_field(field: str, value: str) -> bool:
    text = value.strip()
    if field == "name":
        return len(re.sub(r"\s", "", text)) >= 2
    if field == "email":
        return bool(_EMAIL_RE.match(text))
    if field == "phone":
        digits = re.sub(r"[^0-9]", "", text)
        return bool(_PHONE_RE.match(text)) and len(digits) >= _MIN_PHONE_DIGITS
    raise ValueError(f"Unknown profile field: {field}")


def _greeting(field: str) -> str:
    return f"Hi! I'll collect a few details before we begin. Let's start with your {field}."


class PreflightCollector:
    """Chat turns that fill name, email and phone, then start the interview.

    ``on_start`` runs after the session enters ``running``; the service layer
    uses it to issue the first question.
    """

    def __init__(
        self,
        store: SessionStore,
        candidates: CandidateStore,
        *,
        on_start: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self._store = store
        self._candidates = candidates
        self._on_start = on_start

    def greet(self, candidate_id: str) -> Optional[PreflightReply]:  # Opening message, posted once per session
        profile = self._candidates.get(candidate_id)
        if profile is None:
            logger.debug("No candidate %s", candidate_id)
            return None
        state = self._store.ensure(candidate_id)
        missing = missing_fields(profile)
        pending = missing[0] if missing else None
        if state.messages:
            return PreflightReply(pending_field=pending, started=state.stage != "collecting_profile")
        text = _greeting(pending) if pending else READY_GREETING
        message = self._say(candidate_id, "assistant", text)
        return PreflightReply(messages=[message], pending_field=pending)

    def handle_message(self, candidate_id: str, text: str) -> Optional[PreflightReply]:
        """Validate ``text`` as the next missing field, or start when nothing is missing."""

        profile = self._candidates.get(candidate_id)
        if profile is None:
            logger.debug("No candidate %s", candidate_id)
            return None
        state = self._store.ensure(candidate_id)
        if state.stage != "collecting_profile":
            return PreflightReply(started=True)

        replies: List[ChatMessage] = []
        self._say(candidate_id, "user", text)
        missing = missing_fields(profile)
        if not missing:
            return self._begin(candidate_id, replies)

        field = missing[0]
        value = text.strip()
        if not validate_field(field, value):
            log_event("preflight_invalid", candidate_id, outcome=field)
            replies.append(self._say(candidate_id, "assistant", RETRY_PROMPT))
            return PreflightReply(messages=replies, pending_field=field)

        self._candidates.update_fields(candidate_id, **{field: _normalize(field, value)})
        log_event("preflight_field", candidate_id, outcome=field)
        remaining = missing[1:]
        if remaining:
            replies.append(self._say(candidate_id, "assistant", FIELD_PROMPTS[remaining[0]]))
            return PreflightReply(messages=replies, pending_field=remaining[0])
        return self._begin(candidate_id, replies)

    def _begin(self, candidate_id: str, replies: List[ChatMessage]) -> PreflightReply:
        replies.append(self._say(candidate_id, "assistant", CONFIRMATION))
        self._store.start(candidate_id)
        if self._on_start is not None:
            self._on_start(candidate_id)
        return PreflightReply(messages=replies, started=True)

    def _say(self, candidate_id: str, role: str, text: str) -> ChatMessage:
        message = ChatMessage(role=role, content=text)
        self._store.push_message(candidate_id, message)
        return message


def _normalize(field: str, value: str) -> str:
    if field == "email":
        return normalize_email(value)
    if field == "name":
        return " ".join(value.split())
    return value


__all__ = [
    "CONFIRMATION",
    "FIELD_PROMPTS",
    "PreflightCollector",
    "PreflightReply",
    "READY_GREETING",
    "RETRY_PROMPT",
    "missing_fields",
    "validate_field",
]
