from __future__ import annotations  # Styled PDF rendering for interview reports

import math
import re
import textwrap
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from .models import ReportExchange, SessionReport

DEJAVU_SANS = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"  # System font
DEJAVU_SANS_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"  # System font

ACCENT = (45, 115, 245)  # Palette accent
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
SOFT_ACCENT_BG = (243, 248, 255)  # Highlight background


def _format_datetime(value: Optional[datetime]) -> str:  # Format timestamp for display
    if not value:
        return "-"
    return value.strftime("%d %b %Y, %I:%M %p").lstrip("0").replace(" 0", " ")


def _effective_width(pdf: FPDF) -> float:  # Compute effective page width
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


def _section_title(pdf: FPDF, title: str) -> None:  # Render styled section title
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf._font_bold, "B", 13)
    pdf.cell(0, 9, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(2)


def _meta_block(pdf: FPDF, rows: List[Tuple[str, str]]) -> None:  # Draw two-column metadata
    width = _effective_width(pdf)
    col = width / 2.0
    line = 6
    for idx in range(0, len(rows), 2):
        left = rows[idx]
        right = rows[idx + 1] if idx + 1 < len(rows) else ("", "")
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf._font_regular, "", 10)
        pdf.cell(col, line, left[0], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, right[0], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf._font_bold, "B", 11)
        pdf.cell(col, line, left[1], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, right[1], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _score_value(value: Optional[float], scale: int = 10) -> str:  # Format score for display
    if value is None:
        return "N/A"
    return f"{float(value):.1f}/{scale}"


def _calc_text_height(pdf: FPDF, width: float, text: str, line_height: float) -> float:  # Estimate multi-cell height
    if not text:
        return line_height
    lines = pdf.multi_cell(width, line_height, text, dry_run=True, output="LINES")
    if isinstance(lines, (list, tuple)):
        return line_height * max(1, len(lines))
    approx = max(1, math.ceil(len(text) / 90))
    return approx * line_height


class ReportPDF(FPDF):  # PDF with custom header/footer styling
    def __init__(self, *args, accent: Tuple[int, int, int] = ACCENT, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.accent = accent
        self.header_title = "Interview Report"
        self._font_regular = "Helvetica"
        self._font_bold = "Helvetica"
        self._supports_unicode = False

    def _prepare_text(self, text: Any) -> str:  # Sanitize text for non-unicode fonts
        value = "" if text is None else str(text)
        if self._supports_unicode:
            return value
        cleaned = value.replace("•", "-").replace("…", "...")
        return cleaned.encode("latin-1", "ignore").decode("latin-1")

    def cell(self, *args, **kwargs):  # Wrap base cell with text sanitisation
        args_list = list(args)
        if len(args_list) >= 3:
            args_list[2] = self._prepare_text(args_list[2])
        elif "text" in kwargs:
            kwargs["text"] = self._prepare_text(kwargs["text"])
        return super().cell(*args_list, **kwargs)

    def multi_cell(self, *args, **kwargs):  # Wrap base multi_cell with text sanitisation
        args_list = list(args)
        if len(args_list) >= 3:
            args_list[2] = self._prepare_text(args_list[2])
        elif "text" in kwargs:
            kwargs["text"] = self._prepare_text(kwargs["text"])
        return super().multi_cell(*args_list, **kwargs)

    def header(self) -> None:  # Render header banner
        usable = _effective_width(self)
        if self.page_no() == 1:
            line_height = 8
            self.set_font(self._font_bold, "B", 16)
            trial = self.multi_cell(usable, line_height, self.header_title, dry_run=True, output="LINES")
            lines = len(trial) if isinstance(trial, (list, tuple)) else 1
            banner = 6 + lines * line_height + 4
            self.set_fill_color(*self.accent)
            self.rect(0, 0, self.w, banner, style="F")
            self.set_text_color(255, 255, 255)
            self.set_xy(self.l_margin, 6)
            self.multi_cell(usable, line_height, self.header_title)
            self.set_text_color(*TEXT)
            self.ln(4)
        else:
            self.set_text_color(80, 80, 80)
            self.set_xy(self.l_margin, 8)
            self.set_font(self._font_bold, "B", 12)
            self.multi_cell(usable, 6, self.header_title)
            mark = self.get_y()
            self.set_draw_color(*self.accent)
            self.set_line_width(0.4)
            self.line(self.l_margin, mark + 1, self.w - self.r_margin, mark + 1)
            self.set_text_color(*TEXT)
            self.ln(4)

    def footer(self) -> None:  # Render footer with pagination
        self.set_y(-12)
        self.set_draw_color(*RULE)
        self.set_line_width(0.2)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(120, 120, 120)
        self.set_font(self._font_regular, "", 9)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="R")


def _summarize(text: str) -> str:  # Shorten long narrative paragraphs
    cleaned = " ".join(text.split()) if text else ""
    if not cleaned:
        return "-"
    segments = [seg.strip() for seg in re.split(r"(?<=[.!?])\s+", cleaned) if seg.strip()]
    snippet = " ".join(segments[:6]) or cleaned
    return textwrap.shorten(snippet, width=900, placeholder="…")


def _bullet(pdf: FPDF) -> str:
    return "•" if getattr(pdf, "_font_regular", "") == "DejaVu" else "-"


def _render_bullets(pdf: FPDF, items: Sequence[str], empty: str) -> None:  # Render a bullet list or a muted placeholder
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf._font_regular, "", 11)
    if not items:
        pdf.set_text_color(*MUTED)
        pdf.multi_cell(_effective_width(pdf), 6, empty)
        pdf.set_text_color(*TEXT)
        pdf.ln(2)
        return
    pdf.set_text_color(*TEXT)
    for item in items:
        pdf.set_x(pdf.l_margin)
        pdf.multi_cell(_effective_width(pdf), 6, f"{_bullet(pdf)} {item}")
    pdf.ln(2)


def _render_score_banner(pdf: FPDF, label: str, value: str) -> None:  # Highlight the overall score
    pdf.set_x(pdf.l_margin)
    pdf.set_fill_color(*SOFT_ACCENT_BG)
    pdf.rect(pdf.l_margin, pdf.get_y(), _effective_width(pdf), 16, style="F")
    pdf.set_xy(pdf.l_margin + 6, pdf.get_y() + 4)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf._font_regular, "", 10)
    pdf.cell(_effective_width(pdf) - 12, 6, label)
    pdf.set_xy(pdf.l_margin, pdf.get_y() - 2)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf._font_bold, "B", 14)
    pdf.cell(_effective_width(pdf) - 6, 8, value, align="R")
    pdf.ln(12)
    pdf.set_text_color(*TEXT)


def _transcript_widths(pdf: FPDF) -> Tuple[float, float, float]:  # Compute transcript column widths
    total = _effective_width(pdf)
    gap = 6.0
    primary = max(total * 0.64, total - 120)
    secondary = total - primary - gap
    if secondary < total * 0.22:
        secondary = total * 0.22
        primary = total - secondary - gap
    return primary, secondary, gap


def _format_entry_details(entry: ReportExchange) -> List[str]:  # Build highlight lines for transcript
    question = entry.question
    details = [f"{question.difficulty.title()} · {question.seconds}s"]
    answer = entry.answer
    if answer is None:
        details.append("Not answered")
        return details
    details.append(f"Score: {_score_value(answer.score)}")
    details.append(f"Time used: {answer.elapsed_seconds}s")
    if answer.auto_submitted:
        details.append("Auto-submitted at time-out")
    if answer.feedback:
        details.append(f"Feedback: {answer.feedback}")
    return details


def _render_transcript_header(pdf: FPDF, left: float, right: float, gap: float) -> None:  # Render transcript header row
    pdf.set_x(pdf.l_margin)
    pdf.set_fill_color(*ACCENT)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font(pdf._font_bold, "B", 10)
    pdf.cell(left, 8, "Dialogue", align="L", fill=True)
    pdf.cell(gap, 8, "", fill=True)
    pdf.cell(right, 8, "Highlights", align="L", fill=True)
    pdf.ln(8)
    pdf.set_text_color(*TEXT)


def _render_transcript_row(pdf: FPDF, left: float, right: float, gap: float, entry: ReportExchange) -> None:  # Render Q&A row
    line = 5.5
    bullet = _bullet(pdf)
    question = f"Q{entry.index}: {entry.question.text.strip()}"
    answer_text = entry.answer.text.strip() if entry.answer is not None else ""
    answer = f"A: {answer_text or '-'}"
    details = _format_entry_details(entry)
    highlight = "\n".join(f"{bullet} {item}" for item in details)
    text_height = _calc_text_height(pdf, left, question, line) + _calc_text_height(pdf, left, answer, line)
    highlight_height = _calc_text_height(pdf, right, highlight, line)
    block = max(text_height, highlight_height) + 6
    if pdf.get_y() + block > pdf.page_break_trigger:
        pdf.add_page()
        _render_transcript_header(pdf, left, right, gap)
    origin_x = pdf.l_margin
    origin_y = pdf.get_y()
    pdf.set_fill_color(248, 249, 255)
    pdf.rect(origin_x, origin_y, left, block, style="F")
    pdf.set_xy(origin_x + 2, origin_y + 2)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf._font_bold, "B", 10)
    pdf.multi_cell(left - 4, line, question)
    pdf.set_x(origin_x + 2)
    pdf.set_text_color(60, 60, 60)
    pdf.set_font(pdf._font_regular, "", 10)
    pdf.multi_cell(left - 4, line, answer)
    pdf.set_xy(origin_x + left + gap, origin_y + 2)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf._font_bold, "B", 9)
    pdf.multi_cell(right, line, details[0])
    for extra in details[1:]:
        pdf.set_x(origin_x + left + gap)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf._font_regular, "", 9)
        pdf.multi_cell(right, line, f"{bullet} {extra}")
    bottom = max(pdf.get_y(), origin_y + block - 2)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    pdf.line(origin_x, bottom + 1, origin_x + left + gap + right, bottom + 1)
    pdf.set_y(bottom + 4)
    pdf.set_text_color(*TEXT)


def _render_transcript(pdf: FPDF, exchanges: Sequence[ReportExchange]) -> None:  # Render transcript section
    left, right, gap = _transcript_widths(pdf)
    _render_transcript_header(pdf, left, right, gap)
    if not exchanges:
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf._font_regular, "", 10)
        pdf.multi_cell(_effective_width(pdf), 6, "No questions were asked in this session.")
        pdf.set_text_color(*TEXT)
        pdf.ln(4)
        return
    for entry in exchanges:
        _render_transcript_row(pdf, left, right, gap, entry)


def _use_unicode_fonts(pdf: ReportPDF) -> None:  # Register DejaVu when the system provides it
    try:
        pdf.add_font("DejaVu", "", DEJAVU_SANS)
        pdf.add_font("DejaVu", "B", DEJAVU_SANS_BOLD)
    except (OSError, RuntimeError):
        return
    pdf._font_regular = "DejaVu"
    pdf._font_bold = "DejaVu"
    pdf._supports_unicode = True


def generate_session_report_pdf(report: SessionReport) -> bytes:  # Build PDF payload for a session report
    pdf = ReportPDF()
    pdf.alias_nb_pages()
    _use_unicode_fonts(pdf)
    profile = report.profile
    state = report.state
    summary = state.summary
    pdf.header_title = f"{profile.name or profile.id} - Interview Report"
    pdf.set_margins(15, 22, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    _section_title(pdf, "Session Overview")
    overview_rows = [
        ("Candidate", profile.name or "-"),
        ("Candidate ID", profile.id),
        ("Email", profile.email or "-"),
        ("Phone", profile.phone or "-"),
        ("Stage", state.stage.replace("_", " ").title()),
        ("Questions answered", f"{len(state.answers)}/{len(state.questions)}"),
        ("Registered", _format_datetime(profile.created_at)),
        ("Generated", _format_datetime(report.generated_at)),
    ]
    _meta_block(pdf, overview_rows)

    if summary is not None:
        _render_score_banner(pdf, f"Overall Score ({summary.level})", _score_value(summary.score, 100))
        _meta_block(
            pdf,
            [
                ("Mean answer score", _score_value(summary.mean)),
                ("Score spread (std dev)", f"{summary.stddev:.2f}"),
                ("Adaptive path", "Escalated to hard early" if summary.altered_path else "Standard"),
                ("Badges", ", ".join(summary.badges) or "-"),
            ],
        )
        _section_title(pdf, "Summary")
        pdf.set_x(pdf.l_margin)
        pdf.set_font(pdf._font_regular, "", 11)
        pdf.multi_cell(_effective_width(pdf), 6, _summarize(summary.overview))
        pdf.ln(2)
        _section_title(pdf, "Strengths")
        _render_bullets(pdf, summary.strengths, "No strengths recorded.")
        _section_title(pdf, "Areas to Improve")
        _render_bullets(pdf, summary.improvements, "No improvement areas recorded.")
        _section_title(pdf, "Learning Plan")
        _render_bullets(pdf, summary.plan, "No learning plan provided.")
    else:
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf._font_regular, "", 11)
        pdf.multi_cell(_effective_width(pdf), 6, "The interview has not been completed yet.")
        pdf.set_text_color(*TEXT)
        pdf.ln(2)

    _section_title(pdf, "Question & Answer Transcript")
    _render_transcript(pdf, report.exchanges)

    return bytes(pdf.output())


__all__ = ["generate_session_report_pdf"]
