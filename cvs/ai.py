"""
AI assistance for the CV editor.

Rewriting, adapting and translating go through the configured chat
service.  When it is not configured, or the call fails, the original
text or document comes back unchanged with ``ai_available`` set to
``False`` so the editor can tell the user.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from django.core.exceptions import ValidationError

from .document import Document, document_text, normalize_document, visible_view
from .services import get_chat_service, get_embedding_service, match_score

logger = logging.getLogger(__name__)

IMPROVE_PROMPT = (
    "You are an expert résumé writer. Rewrite the following CV text so it is clear, "
    "concise and results oriented. Keep every fact; do not invent titles, dates or "
    "experience. Answer with the rewritten text only.\n"
    "{instruction}\n\nTEXT:\n{text}"
)

ADAPT_PROMPT = (
    "You are an expert in writing résumés tailored to a specific job posting.\n"
    "JOB POSTING:\n{job}\n\n"
    "CV (JSON):\n{cv}\n\n"
    "Return the same JSON document with the wording of the entries adapted to the job: "
    "highlight relevant skills and achievements, use the posting's terminology and leave "
    "personal information intact. Do not invent data. Keep the keys and section ids. "
    "Answer with JSON only."
)

TRANSLATE_PROMPT = (
    "Translate every human-readable value of this CV JSON document into {language}. "
    "Keep keys, section ids, e-mail addresses, URLs and theme values unchanged. "
    "Answer with JSON only.\n\n{cv}"
)

STRUCTURE_PROMPT = (
    "Turn this résumé text into a JSON object with the keys personal_info "
    "(full_name, job_title, email, phone, address, website) and sections "
    "(a list of objects with id, name and entries, entries being objects of strings). "
    "Answer with JSON only.\n\n{text}"
)


def _ask(prompt: str, max_tokens: int = 1024) -> Optional[str]:
    """Send ``prompt`` to the chat service; ``None`` when AI is unavailable."""
    chat = get_chat_service()
    if chat is None:
        return None
    try:
        return chat.complete(prompt, max_tokens=max_tokens)
    except Exception:
        logger.warning("AI service call failed", exc_info=True)
        return None


def _parse_json(answer: str) -> Any:
    text = answer.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.startswith("json"):
            text = text[4:]
    return json.loads(text)


def _ask_document(prompt: str, fallback: Document) -> Tuple[Document, bool]:
    answer = _ask(prompt, max_tokens=3000)
    if answer is None:
        return fallback, False
    try:
        payload = _parse_json(answer)
        merged = dict(fallback)
        merged.update({k: v for k, v in payload.items() if k in ("personal_info", "sections")})
        merged["theme"] = fallback["theme"]
        return normalize_document(merged), True
    except (ValueError, AttributeError, ValidationError):
        logger.warning("AI service returned an unusable document")
        return fallback, False


def improve_text(text: str, instruction: str = "") -> Dict[str, Any]:
    if not text or not text.strip():
        raise ValidationError({"text": ["This field is required."]})
    answer = _ask(IMPROVE_PROMPT.format(text=text, instruction=instruction or ""))
    if not answer:
        return {"text": text, "ai_available": False}
    return {"text": answer, "ai_available": True}


def adapt_document(doc: Document, job_description: str) -> Dict[str, Any]:
    if not job_description or not job_description.strip():
        raise ValidationError({"job_description": ["A job or job description is required."]})
    prompt = ADAPT_PROMPT.format(job=job_description, cv=json.dumps(doc, ensure_ascii=False))
    adapted, available = _ask_document(prompt, doc)
    return {"data": adapted, "ai_available": available}


def translate_document(doc: Document, language: str) -> Dict[str, Any]:
    if not language or not language.strip():
        raise ValidationError({"language": ["This field is required."]})
    prompt = TRANSLATE_PROMPT.format(language=language, cv=json.dumps(doc, ensure_ascii=False))
    translated, available = _ask_document(prompt, doc)
    return {"data": translated, "language": language, "ai_available": available}


def structure_text(text: str, base: Document) -> Tuple[Document, bool]:
    """Build a document from imported text, with the AI when it is configured."""
    return _ask_document(STRUCTURE_PROMPT.format(text=text[:12000]), base)


def analyze_document(doc: Document, job=None) -> Dict[str, Any]:
    """Heuristic review of a CV, optionally against a job.

    The score starts at 100 and loses points for each issue found.
    With a job, the embedding match score and the job's required skills
    absent from the CV are added.
    """
    view = visible_view(doc)
    info = view["personal_info"]
    issues: List[str] = []
    score = 100

    for name in ("full_name", "job_title", "email", "phone"):
        if not info.get(name):
            issues.append(f"Personal info is missing {name.replace('_', ' ')}.")
            score -= 5

    sections = {section["id"]: section for section in view["sections"]}
    empty = [section["name"] for section in view["sections"] if not section["entries"]]
    for name in empty:
        issues.append(f"Section '{name}' has no entries.")
        score -= 5

    summary = sections.get("summary")
    summary_text = " ".join(
        str(value) for entry in (summary["entries"] if summary else []) for value in entry.values()
    )
    words = len(summary_text.split())
    if words == 0:
        issues.append("Add a short professional summary.")
        score -= 10
    elif words < 30:
        issues.append("The summary is short; aim for 30 to 80 words.")
        score -= 5
    elif words > 120:
        issues.append("The summary is long; keep it under 120 words.")
        score -= 5

    skills_section = sections.get("skills")
    skill_count = 0
    if skills_section:
        for entry in skills_section["entries"]:
            for value in entry.values():
                skill_count += len(value) if isinstance(value, list) else 1
    if skill_count < 5:
        issues.append("List at least five skills.")
        score -= 10

    result: Dict[str, Any] = {
        "score": max(0, score),
        "issues": issues,
        "skill_count": skill_count,
        "summary_words": words,
    }
    if job is not None:
        text = document_text(doc)
        result["match_score"] = match_score(text, job.embedding_text(), get_embedding_service())
        result["missing_skills"] = [
            skill for skill in job.required_skills if skill.lower() not in text.lower()
        ]
    return result
