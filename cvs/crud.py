"""
Persistence of CVs, their version history, share links and templates.

Only the owner of a CV may read or change it: unknown ids raise
``ObjectDoesNotExist`` and foreign CVs ``PermissionDenied``.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.db import transaction

from cvboard.http import Conflict, form_error
from users.models import User
from . import ai
from .document import (
    TEMPLATE_NAMES,
    apply_operations,
    default_document,
    default_theme,
    diff_documents,
    normalize_document,
)
from .forms import CVForm, ImportCVForm, VersionForm
from .models import CV, CVShare, CVVersion, Template
from .services import get_extraction_strategy

logger = logging.getLogger(__name__)

TEMPLATE_DESCRIPTIONS = {
    "classic": "Traditional layout with centered header and ruled sections.",
    "modern": "Clean two-column layout with a skills sidebar.",
    "compact": "Dense single page layout for long careers.",
    "contemporary": "Bold headings and generous whitespace.",
    "double": "Two balanced columns.",
    "double_colored": "Two columns with a tinted sidebar.",
    "elegant": "Serif typography with understated accents.",
    "high_performer": "Achievement-first layout with a sidebar.",
    "ivy_league": "Academic style favoured by recruiters in finance and law.",
    "minimal": "Plain text look with no decoration.",
    "multicolumn": "Three-zone layout for skills-heavy profiles.",
    "polished": "Refined single column with subtle dividers.",
    "single": "Straightforward single column.",
    "stylish": "Creative layout with colored headings.",
    "timeline": "Experience shown along a vertical timeline.",
}


def get_owned_cv(user: User, cv_id: int) -> CV:
    cv = CV.objects.get(id=cv_id)
    if cv.owner_id != user.id:
        raise PermissionDenied("You do not have access to this CV")
    return cv


def cv_dict(cv: CV, include_data: bool = True) -> Dict[str, Any]:
    data = {
        "id": cv.id,
        "title": cv.title,
        "template_name": cv.data.get("theme", {}).get("template_name"),
        "created_at": cv.created_at,
        "updated_at": cv.updated_at,
    }
    if include_data:
        data["data"] = cv.data
    return data


def version_dict(version: CVVersion, include_data: bool = True) -> Dict[str, Any]:
    data = {
        "id": version.id,
        "cv_id": version.cv_id,
        "description": version.description,
        "changes": version.changes,
        "created_by": version.created_by_id,
        "created_at": version.created_at,
    }
    if include_data:
        data["data"] = version.data
    return data


def share_dict(share: CVShare) -> Dict[str, Any]:
    return {
        "token": share.token,
        "url": f"{settings.PUBLIC_BASE_URL}/share/{share.token}/",
        "cv_id": share.cv_id,
        "version_id": share.version_id,
        "created_at": share.created_at,
    }


def template_dict(template: Template) -> Dict[str, Any]:
    return {
        "id": template.id,
        "name": template.name,
        "description": template.description,
        "structure": template.structure,
    }


def list_cvs(user: User):
    return CV.objects.filter(owner=user)


def create_cv(user: User, payload: Dict[str, Any]) -> CV:
    form = CVForm(payload)
    if not form.is_valid():
        raise form_error(form)
    data = normalize_document(form.cleaned_data["data"]) if payload.get("data") else default_document()
    cv = CV.objects.create(owner=user, title=form.cleaned_data["title"], data=data)
    logger.info("CV %s created by user %s", cv.id, user.id)
    return cv


def update_cv(cv: CV, payload: Dict[str, Any]) -> CV:
    """Replace the title and document wholesale."""
    form = CVForm(payload)
    if not form.is_valid():
        raise form_error(form)
    if "data" not in payload:
        raise ValidationError({"data": ["This field is required."]})
    cv.title = form.cleaned_data["title"]
    cv.data = normalize_document(form.cleaned_data["data"])
    cv.save()
    logger.info("CV %s saved", cv.id)
    return cv


def delete_cv(cv: CV) -> None:
    if cv.applications.exists():
        raise Conflict("This CV was used in a job application and cannot be deleted")
    logger.info("CV %s deleted", cv.id)
    cv.delete()


def apply_cv_operations(cv: CV, operations: Any) -> CV:
    cv.data = apply_operations(normalize_document(cv.data), operations)
    cv.save(update_fields=["data", "updated_at"])
    logger.info("Applied %d editor operations to CV %s", len(operations), cv.id)
    return cv


# ----- Versions -----


def list_versions(cv: CV):
    return cv.versions.all()


def get_version(cv: CV, version_id: int) -> CVVersion:
    try:
        return cv.versions.get(id=version_id)
    except CVVersion.DoesNotExist:
        raise ObjectDoesNotExist("Version not found for this CV")


def create_version(cv: CV, user: User, payload: Optional[Dict[str, Any]] = None) -> CVVersion:
    """Snapshot the CV, recording the changes since the previous snapshot."""
    form = VersionForm(payload or {})
    if not form.is_valid():
        raise form_error(form)
    previous = cv.versions.first()
    base = previous.data if previous else default_document()
    version = CVVersion.objects.create(
        cv=cv,
        description=form.cleaned_data["description"] or "Saved version",
        data=cv.data,
        changes=diff_documents(base, cv.data),
        created_by=user,
    )
    logger.info("Version %s of CV %s created", version.id, cv.id)
    return version


def restore_version(cv: CV, version_id: int) -> CV:
    version = get_version(cv, version_id)
    cv.data = version.data
    cv.save(update_fields=["data", "updated_at"])
    logger.info("CV %s restored to version %s", cv.id, version.id)
    return cv


# ----- Sharing -----


@transaction.atomic
def share_cv(cv: CV, user: User) -> CVShare:
    version = create_version(cv, user, {"description": "Shared version"})
    share = CVShare.objects.create(
        cv=cv, version=version, token=secrets.token_urlsafe(24), created_by=user
    )
    logger.info("CV %s shared as version %s", cv.id, version.id)
    return share


def get_share(token: str) -> CVShare:
    try:
        return CVShare.objects.select_related("cv", "version").get(token=token)
    except CVShare.DoesNotExist:
        raise ObjectDoesNotExist("Shared CV not found")


# ----- Templates -----


def ensure_default_templates() -> None:
    existing = set(Template.objects.values_list("name", flat=True))
    missing = [
        Template(name=name, description=TEMPLATE_DESCRIPTIONS[name], structure=default_theme(name))
        for name in TEMPLATE_NAMES
        if name not in existing
    ]
    if missing:
        Template.objects.bulk_create(missing)


def list_templates() -> List[Template]:
    ensure_default_templates()
    return list(Template.objects.all())


def get_template(template_id: int) -> Template:
    ensure_default_templates()
    return Template.objects.get(id=template_id)


# ----- Import -----


def import_cv(user: User, data, files) -> CV:
    """Create a CV from an uploaded PDF or text file."""
    form = ImportCVForm(data, files)
    if not form.is_valid():
        raise form_error(form)
    uploaded = form.cleaned_data["file"]
    text = get_extraction_strategy(uploaded.name).extract(uploaded).strip()
    if not text:
        raise ValidationError({"file": ["No text could be extracted from this file."]})

    base = default_document()
    for section in base["sections"]:
        if section["id"] == "summary":
            section["entries"] = [{"summary": text}]
    document, structured = ai.structure_text(text, base)
    title = form.cleaned_data["title"] or uploaded.name.rsplit(".", 1)[0][:200]
    cv = CV.objects.create(owner=user, title=title, data=document)
    logger.info("CV %s imported from %s (structured: %s)", cv.id, uploaded.name, structured)
    return cv
