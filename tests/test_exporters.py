"""Tests for HTML, text, DOCX and PDF rendering of CV documents."""

from io import BytesIO

import pytest
from docx import Document as DocxDocument

from cvs import document, exporters


@pytest.fixture
def doc():
    base = document.default_document()
    base["personal_info"].update(full_name="Jane Doe", job_title="Engineer", email="jane@example.com")
    base = document.update_section_entries(base, "experience", [{"company": "Acme", "salary": "secret"}])
    base = document.update_section_visibility(base, "experience", {"salary": False})
    return document.update_section_entries(base, "skills", [{"name": "Python"}])


@pytest.mark.parametrize(
    "template_name, layout",
    [("classic", "single_column"), ("modern", "two_column"), ("double_colored", "two_column"), ("timeline", "single_column")],
)
def test_layout_for(template_name, layout):
    assert exporters.layout_for(template_name) == layout


def test_render_html_single_column(doc):
    html = exporters.render_html(doc, "Jane")
    assert "<title>Jane</title>" in html
    assert "--cv-font-family: Arial" in html
    assert "Acme" in html
    assert "secret" not in html
    assert 'class="cv-side"' not in html


def test_render_html_two_column_puts_skills_in_sidebar(doc):
    doc = document.set_theme(doc, {"template_name": "modern"})
    html = exporters.render_html(doc)
    side = html.split('class="cv-side"', 1)[1]
    assert "Python" in side
    assert "Acme" not in side


def test_render_txt(doc):
    text = exporters.render_txt(doc).decode("utf-8")
    assert text.splitlines()[0] == "Jane Doe"
    assert "secret" not in text


def test_render_docx(doc):
    parsed = DocxDocument(BytesIO(exporters.render_docx(doc)))
    paragraphs = [p.text for p in parsed.paragraphs]
    assert "Jane Doe" in paragraphs
    assert "Acme" in paragraphs
    assert "secret" not in paragraphs


def test_render_pdf(doc):
    assert exporters.render_pdf(doc).startswith(b"%PDF")


def test_export_response_headers(doc):
    response = exporters.export_response(doc, "Jane Doe CV", "docx")
    assert response["Content-Type"] == exporters.CONTENT_TYPES["docx"]
    assert response["Content-Disposition"] == "attachment; filename=jane-doe-cv.docx"
