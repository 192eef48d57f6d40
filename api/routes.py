"""FastAPI routes for candidates and interview control."""
from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Iterator, List, Optional

from fastapi import APIRouter, HTTPException, Request, Response

from api.deps import InterviewServices
from api.schemas import CandidateCreate, DeleteResp, InterviewResp, PreflightResp, TextReq
from flow_manager import ProgressionError
from interview_session import TOTAL_QUESTIONS, CandidateProfile, InterviewState
from llm_gateway import LlmGatewayError, LlmOutputError
from services.resume_import import ParsedResume
from session_reports import generate_session_report_pdf, load_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _services(request: Request) -> InterviewServices:
    return request.app.state.services


@contextmanager
def _engine_errors() -> Iterator[None]:
    try:
        yield
    except ProgressionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except LlmOutputError as exc:
        raise HTTPException(status_code=502, detail=f"Invalid model output: {exc}") from exc
    except LlmGatewayError as exc:
        raise HTTPException(status_code=502, detail=f"LLM request failed: {exc}") from exc


def _require_candidate(services: InterviewServices, candidate_id: str) -> CandidateProfile:
    profile = services.candidates.get(candidate_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Candidate not found")
    return profile


def _require_session(services: InterviewServices, candidate_id: str) -> InterviewState:
    _require_candidate(services, candidate_id)
    state = services.sessions.get(candidate_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Interview not found")
    return state


def _interview_resp(services: InterviewServices, candidate_id: str) -> InterviewResp:
    state = _require_session(services, candidate_id)
    return InterviewResp(state=state, question=state.pending_question())


def _needs_question(state: InterviewState) -> bool:
    return (
        state.stage in ("running", "paused")
        and state.pending_question() is None
        and len(state.questions) == len(state.answers)
        and len(state.questions) < TOTAL_QUESTIONS
    )


def _needs_summary(state: InterviewState) -> bool:
    return state.stage in ("running", "paused") and len(state.answers) >= TOTAL_QUESTIONS


@router.post("/candidates", response_model=CandidateProfile, status_code=201)
def create_candidate(req: CandidateCreate, request: Request) -> CandidateProfile:
    services = _services(request)
    profile = services.candidates.create_candidate(**req.model_dump())
    services.preflight.greet(profile.id)
    return profile


@router.get("/candidates", response_model=List[CandidateProfile])
def list_candidates(request: Request) -> List[CandidateProfile]:
    return _services(request).candidates.list_candidates()


@router.get("/candidates/{candidate_id}", response_model=CandidateProfile)
def get_candidate(candidate_id: str, request: Request) -> CandidateProfile:
    return _require_candidate(_services(request), candidate_id)


@router.delete("/candidates/{candidate_id}", response_model=DeleteResp)
def delete_candidate(candidate_id: str, request: Request) -> DeleteResp:
    services = _services(request)
    _require_candidate(services, candidate_id)
    return DeleteResp(deleted=services.candidates.delete_candidate(candidate_id))


@router.post("/candidates/{candidate_id}/resume", response_model=CandidateProfile)
def import_resume(candidate_id: str, parsed: ParsedResume, request: Request) -> CandidateProfile:
    services = _services(request)
    _require_candidate(services, candidate_id)
    profile = services.candidates.import_resume(candidate_id, parsed)
    if profile is None:
        raise HTTPException(status_code=404, detail="Candidate not found")
    return profile


@router.get("/interviews/{candidate_id}", response_model=InterviewResp)
def get_interview(candidate_id: str, request: Request) -> InterviewResp:
    return _interview_resp(_services(request), candidate_id)


@router.post("/interviews/{candidate_id}/preflight", response_model=PreflightResp)
def preflight_turn(candidate_id: str, req: TextReq, request: Request) -> PreflightResp:
    services = _services(request)
    _require_candidate(services, candidate_id)
    with _engine_errors():
        reply = services.preflight.handle_message(candidate_id, req.text)
    if reply is None:
        raise HTTPException(status_code=404, detail="Candidate not found")
    state = services.sessions.get(candidate_id)
    question = state.pending_question() if state is not None else None
    return PreflightResp(**reply.model_dump(), question=question)


@router.post("/interviews/{candidate_id}/start", response_model=InterviewResp)
def start_interview(candidate_id: str, request: Request) -> InterviewResp:
    services = _services(request)
    _require_candidate(services, candidate_id)
    state = services.sessions.start(candidate_id)
    if state is None or state.stage == "completed":
        raise HTTPException(status_code=409, detail="Interview already completed; reset it first")
    with _engine_errors():
        services.runner.begin(candidate_id)
    return _interview_resp(services, candidate_id)


@router.post("/interviews/{candidate_id}/pause", response_model=InterviewResp)
def pause_interview(candidate_id: str, request: Request) -> InterviewResp:
    services = _services(request)
    _require_session(services, candidate_id)
    services.sessions.pause(candidate_id)
    return _interview_resp(services, candidate_id)


@router.post("/interviews/{candidate_id}/resume", response_model=InterviewResp)
def resume_interview(candidate_id: str, request: Request) -> InterviewResp:
    services = _services(request)
    _require_session(services, candidate_id)
    state = services.sessions.resume(candidate_id)
    with _engine_errors():
        if state is not None and _needs_summary(state):
            services.runner.finish(candidate_id)
        elif state is not None and _needs_question(state):
            services.runner.begin(candidate_id)
    return _interview_resp(services, candidate_id)


@router.post("/interviews/{candidate_id}/reset", response_model=InterviewResp)
def reset_interview(candidate_id: str, request: Request) -> InterviewResp:
    services = _services(request)
    _require_candidate(services, candidate_id)
    services.sessions.reset(candidate_id)
    services.preflight.greet(candidate_id)
    return _interview_resp(services, candidate_id)


@router.post("/interviews/{candidate_id}/answers", response_model=InterviewResp)
def submit_answer(candidate_id: str, req: TextReq, request: Request) -> InterviewResp:
    services = _services(request)
    _require_session(services, candidate_id)
    with _engine_errors():
        state = services.runner.answer(candidate_id, req.text)
    if state is None:
        raise HTTPException(status_code=409, detail="No question is awaiting an answer")
    return _interview_resp(services, candidate_id)


@router.get("/interviews/{candidate_id}/report.pdf")
def fetch_report_pdf(candidate_id: str, request: Request) -> Response:
    services = _services(request)
    try:
        report = load_report(candidate_id, sessions=services.sessions)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Interview not found") from exc
    payload = generate_session_report_pdf(report)
    filename = f"{_safe_slug(report.profile.name) or candidate_id}-interview-report.pdf"
    headers = {"Content-Disposition": f"attachment; filename=\"{filename}\""}
    return Response(content=payload, media_type="application/pdf", headers=headers)


def _safe_slug(value: Optional[str]) -> str:  # Sanitize value for filenames
    if not value:
        return ""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower())
    return re.sub(r"-+", "-", slug).strip("-")
