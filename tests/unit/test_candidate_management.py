import pytest

from candidate_management import CandidateStore
from config.registry import RESUME_PARSER_KEY, bind_model, unbind_model
from interview_session import SessionStore
from services.resume_import import ParsedResume, normalize_phone, normalize_skills, parse_resume
from storage import load_session, persist_snapshot


def _parsed(**fields):
    return ParsedResume.model_validate(
        {
            "fields": fields,
            "skills": ["React", " node ", "react"],
            "meta": {"filename": "cv.pdf", "size": 2048, "mime": "application/pdf"},
        }
    )


def test_create_and_list_most_recent_first():
    store = CandidateStore()
    first = store.create_candidate(name="Ada")
    second = store.create_candidate(name="Grace")
    assert first.id != second.id
    assert [p.id for p in store.list_candidates()] == [second.id, first.id]
    assert store.get(first.id).name == "Ada"


def test_update_fields_keeps_identity():
    store = CandidateStore()
    profile = store.create_candidate(name="Ada")
    updated = store.update_fields(profile.id, email="ada@example.com", id="other")
    assert updated.id == profile.id
    assert store.get(profile.id).email == "ada@example.com"
    assert store.update_fields("ghost", name="x") is None


def test_import_resume_fills_found_fields_only():
    store = CandidateStore()
    profile = store.create_candidate(name="Ada Lovelace", skills=["typescript"])

    updated = store.import_resume(profile.id, _parsed(email=" ADA@Example.com", phone="(555) 010-2030", name=""))

    assert updated.name == "Ada Lovelace"
    assert updated.email == "ada@example.com"
    assert updated.phone == "+15550102030"
    assert updated.skills == ["typescript", "react", "node"]
    assert updated.resume_meta.filename == "cv.pdf"


def test_parse_resume_uses_bound_parser():
    bind_model(RESUME_PARSER_KEY, lambda file: {"fields": {"name": "Ada"}, "meta": {"filename": file, "size": 1}})
    try:
        parsed = parse_resume("resume.docx")
    finally:
        unbind_model(RESUME_PARSER_KEY)
    assert parsed.fields.name == "Ada"
    assert parsed.fields.email is None
    assert parsed.meta.filename == "resume.docx"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("555-010-2030", "+15550102030"),
        ("1 555 010 2030", "+15550102030"),
        ("+44 20 7946 0958", "+442079460958"),
        ("", ""),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_normalize_skills_dedupes_case_insensitively():
    assert normalize_skills(["React", "react ", "", "Node"]) == ["react", "node"]


def test_delete_candidate_cascades_to_session():
    sessions = SessionStore()
    sessions.subscribe(persist_snapshot)
    store = CandidateStore(sessions)
    profile = store.create_candidate(name="Ada")
    sessions.start(profile.id)
    assert load_session(profile.id) is not None

    assert store.delete_candidate(profile.id) is True

    assert store.get(profile.id) is None
    assert sessions.get(profile.id) is None
    assert load_session(profile.id) is None
    assert store.delete_candidate(profile.id) is False
