"""
Rendering of CV documents into downloadable formats.

All exporters work on :func:`cvs.document.visible_view`, so hidden fields
never reach the output.  HTML goes through Django templates: each
template name maps to a single-column or a two-column layout and the
theme becomes CSS variables.
"""

from __future__ import annotations

from io import BytesIO
from textwrap import wrap
from typing import Any, Dict, List

from django.http import HttpResponse
from django.template.loader import render_to_string
from django.utils.text import slugify
from docx import Document as DocxDocument
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

from .document import document_text, entry_lines, visible_view

TWO_COLUMN_TEMPLATES = {"double", "double_colored", "multicolumn", "modern", "stylish", "high_performer"}
SIDEBAR_SECTIONS = {"skills", "languages", "find-me-online", "findmeonline", "interests", "certifications"}

TEMPLATE_LAYOUTS = {
    "single_column": "cvs/cv_single_column.html",
    "two_column": "cvs/cv_two_column.html",
}

EXPORT_FORMATS = ("pdf", "docx", "txt", "html")

CONTENT_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "txt": "text/plain; charset=utf-8",
    "html": "text/html; charset=utf-8",
}


def layout_for(template_name: str) -> str:
    return "two_column" if template_name in TWO_COLUMN_TEMPLATES else "single_column"


def _render_sections(sections: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "id": section["id"],
            "name": section["name"],
            "entries": [entry_lines(entry) for entry in section["entries"]],
        }
        for section in sections
        if section["entries"]
    ]


def render_html(doc: Dict[str, Any], title: str = "CV") -> str:
    view = visible_view(doc)
    theme = view["theme"]
    layout = layout_for(theme.get("template_name", "classic"))
    sections = _render_sections(view["sections"])
    context = {
        "title": title,
        "theme": theme,
        "template_name": theme.get("template_name", "classic"),
        "info": view["personal_info"],
        "sections": sections,
        "main_sections": [s for s in sections if s["id"].lower() not in SIDEBAR_SECTIONS],
        "side_sections": [s for s in sections if s["id"].lower() in SIDEBAR_SECTIONS],
    }
    return render_to_string(TEMPLATE_LAYOUTS[layout], context)


def render_txt(doc: Dict[str, Any]) -> bytes:
    return document_text(doc).encode("utf-8")


def render_docx(doc: Dict[str, Any]) -> bytes:
    view = visible_view(doc)
    info = view["personal_info"]
    document = DocxDocument()
    if info.get("full_name"):
        document.add_heading(info["full_name"], level=0)
    if info.get("job_title"):
        document.add_paragraph(info["job_title"])
    contact = [info[name] for name in ("email", "phone", "address", "website") if info.get(name)]
    if contact:
        document.add_paragraph(" | ".join(contact))
    for section in _render_sections(view["sections"]):
        document.add_heading(section["name"], level=1)
        for lines in section["entries"]:
            for line in lines:
                document.add_paragraph(line)
    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _text_color(theme: Dict[str, str]):
    try:
        return colors.HexColor(theme.get("text_color", "#000000"))
    except ValueError:
        return colors.black


def render_pdf(doc: Dict[str, Any]) -> bytes:
    view = visible_view(doc)
    info = view["personal_info"]
    buffer = BytesIO()
    p = canvas.Canvas(buffer, pagesize=letter)
    width, height = letter
    left_margin = inch
    max_width = width - 2 * inch
    color = _text_color(view["theme"])
    y = height - inch

    def draw(text: str, font: str = "Helvetica", size: int = 11, gap: int = 14) -> None:
        nonlocal y
        for line in wrap(text, width=int(max_width / (size * 0.5))) or [""]:
            if y <= inch:
                p.showPage()
                y = height - inch
            p.setFont(font, size)
            p.setFillColor(color)
            p.drawString(left_margin, y, line)
            y -= gap

    if info.get("full_name"):
        draw(info["full_name"], "Helvetica-Bold", 18, 22)
    if info.get("job_title"):
        draw(info["job_title"], "Helvetica-Oblique", 12, 16)
    contact = [info[name] for name in ("email", "phone", "address", "website") if info.get(name)]
    if contact:
        draw(" | ".join(contact), size=10)
    for section in _render_sections(view["sections"]):
        y -= 8
        draw(section["name"].upper(), "Helvetica-Bold", 13, 18)
        for lines in section["entries"]:
            for line in lines:
                draw(f"• {line}" if len(lines) == 1 else line)
            y -= 4
    p.save()
    return buffer.getvalue()


RENDERERS = {
    "pdf": render_pdf,
    "docx": render_docx,
    "txt": render_txt,
    "html": lambda doc: render_html(doc).encode("utf-8"),
}


def export_response(doc: Dict[str, Any], title: str, fmt: str) -> HttpResponse:
    """Build the download response for ``doc`` in format ``fmt``."""
    content = RENDERERS[fmt](doc)
    filename = f"{slugify(title) or 'cv'}.{fmt}"
    return HttpResponse(
        content,
        content_type=CONTENT_TYPES[fmt],
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
