"""Resume import contract and field normalizers.

Text extraction lives behind the ``parse_resume`` collaborator; this module
only defines the shape it returns and how extracted fields are normalized
before they reach a candidate profile.
"""
from __future__ import annotations

import re
from typing import Any, List, Optional, Protocol

from pydantic import BaseModel, Field, field_validator

from config.registry import RESUME_PARSER_KEY, get_model


class ResumeFields(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("name", "email", "phone", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class ResumeFileMeta(BaseModel):
    filename: str
    size: int = Field(ge=0)
    mime: Optional[str] = None


class ParsedResume(BaseModel):
    fields: ResumeFields = Field(default_factory=ResumeFields)
    skills: List[str] = Field(default_factory=list)
    meta: ResumeFileMeta


class ResumeParser(Protocol):
    def __call__(self, file: Any) -> ParsedResume: ...


def normalize_email(value: str) -> str:
    return value.strip().lower()


def normalize_phone(value: str) -> str:
    digits = re.sub(r"[^0-9]", "", value)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if digits.startswith("0"):
        return digits
    return f"+{digits}" if digits else ""


def normalize_skills(skills: List[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for skill in skills:
        cleaned = skill.strip().lower()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def parse_resume(file: Any, parser: Optional[ResumeParser] = None) -> ParsedResume:
    """Run the bound resume parser and validate its output."""

    parser = parser or get_model(RESUME_PARSER_KEY)
    raw = parser(file)
    if isinstance(raw, ParsedResume):
        return raw
    return ParsedResume.model_validate(raw)


__all__ = [
    "ParsedResume",
    "ResumeFields",
    "ResumeFileMeta",
    "ResumeParser",
    "normalize_email",
    "normalize_phone",
    "normalize_skills",
    "parse_resume",
]
