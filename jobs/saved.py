"""Saved jobs: bookmarking, notes, export and insights."""

from __future__ import annotations

import csv
import io
import json
import logging
from collections import Counter
from datetime import timedelta
from typing import Any, Dict, Optional

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import IntegrityError, transaction
from django.http import HttpResponse
from django.utils import timezone

from cvboard.forms import apply_changes
from cvboard.http import Conflict, form_error
from users.models import User
from .forms import SavedJobNotesForm
from .models import Job, SavedJob
from .services import job_dict

logger = logging.getLogger(__name__)

EXPORT_FIELDS = ("job_id", "title", "company_name", "location", "status", "saved_at", "notes")


def saved_job_dict(saved: SavedJob) -> Dict[str, Any]:
    return {
        "id": saved.id,
        "job": job_dict(saved.job),
        "notes": saved.notes,
        "saved_at": saved.saved_at,
    }


def save_job(user: User, job_id: int, payload: Optional[Dict[str, Any]] = None) -> SavedJob:
    job = Job.objects.get(id=job_id, status=Job.STATUS_PUBLISHED)
    form = SavedJobNotesForm(payload or {})
    if not form.is_valid():
        raise form_error(form)
    try:
        with transaction.atomic():
            saved = SavedJob.objects.create(candidate=user, job=job, notes=form.cleaned_data["notes"])
    except IntegrityError:
        raise Conflict("Job already saved")
    logger.info("User %s saved job %s", user.id, job.id)
    return saved


def unsave_job(user: User, job_id: int) -> None:
    deleted, _ = SavedJob.objects.filter(candidate=user, job_id=job_id).delete()
    if not deleted:
        raise ObjectDoesNotExist("Job is not in your saved jobs")


def update_notes(user: User, job_id: int, payload: Dict[str, Any]) -> SavedJob:
    try:
        saved = SavedJob.objects.select_related("job").get(candidate=user, job_id=job_id)
    except SavedJob.DoesNotExist:
        raise ObjectDoesNotExist("Job is not in your saved jobs")
    form = SavedJobNotesForm(payload)
    if not form.is_valid():
        raise form_error(form)
    apply_changes(saved, form.changed_data_from_payload())
    saved.save()
    return saved


def saved_jobs(user: User):
    return SavedJob.objects.select_related("job", "job__category").filter(candidate=user)


def _export_row(saved: SavedJob) -> Dict[str, Any]:
    return {
        "job_id": saved.job_id,
        "title": saved.job.title,
        "company_name": saved.job.company_name,
        "location": saved.job.location,
        "status": saved.job.status,
        "saved_at": saved.saved_at.isoformat(),
        "notes": saved.notes,
    }


def export_saved_jobs(user: User, fmt: str) -> HttpResponse:
    rows = [_export_row(saved) for saved in saved_jobs(user)]
    if fmt == "csv":
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        writer.writerows(rows)
        content, content_type = buffer.getvalue(), "text/csv; charset=utf-8"
    elif fmt == "json":
        content = json.dumps(rows, cls=DjangoJSONEncoder, indent=2)
        content_type = "application/json"
    else:
        raise ValidationError({"format": ["Choose one of: csv, json"]})
    return HttpResponse(
        content,
        content_type=content_type,
        headers={"Content-Disposition": f"attachment; filename=saved-jobs.{fmt}"},
    )


def saved_jobs_insights(user: User) -> Dict[str, Any]:
    now = timezone.now()
    soon = now + timedelta(days=7)
    saved = list(saved_jobs(user))
    expired = closing_soon = 0
    categories = Counter()
    for item in saved:
        job = item.job
        if job.status in (Job.STATUS_EXPIRED, Job.STATUS_CLOSED) or (job.expires_at and job.expires_at <= now):
            expired += 1
        elif job.application_deadline and now < job.application_deadline <= soon:
            closing_soon += 1
        if job.category:
            categories[job.category.name] += 1
    top = categories.most_common(1)
    return {
        "total": len(saved),
        "expired": expired,
        "closing_soon": closing_soon,
        "top_category": top[0][0] if top else None,
        "by_category": dict(categories),
    }
