from __future__ import annotations  # Session report package exports

from .models import ReportExchange, SessionReport
from .pdf import generate_session_report_pdf
from .store import load_report

__all__ = ["ReportExchange", "SessionReport", "generate_session_report_pdf", "load_report"]
