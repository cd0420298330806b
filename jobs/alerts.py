"""
Job alerts: saved searches that notify candidates about new postings.

Matching only considers open postings published during the last week.
:func:`process_alerts` is run periodically by the ``process_job_alerts``
management command and honours each alert's frequency.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from cvboard.forms import apply_changes
from cvboard.http import Conflict, form_error
from notifications.services import notify
from users.models import User
from .forms import JobAlertForm
from .models import Job, JobAlert
from .services import open_jobs

logger = logging.getLogger(__name__)

MATCH_WINDOW = timedelta(days=7)
FREQUENCY_INTERVALS = {
    "immediate": timedelta(0),
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
}


def alert_dict(alert: JobAlert, with_count: bool = False) -> Dict[str, Any]:
    data = {
        "id": alert.id,
        "name": alert.name,
        "keywords": alert.keywords,
        "location": alert.location,
        "work_type": alert.work_type,
        "employment_type": alert.employment_type,
        "experience_level": alert.experience_level,
        "salary_min": alert.salary_min,
        "category_id": alert.category_id,
        "skills": alert.skills,
        "is_active": alert.is_active,
        "frequency": alert.frequency,
        "last_sent_at": alert.last_sent_at,
        "created_at": alert.created_at,
    }
    if with_count:
        data["matching_jobs"] = len(matching_jobs(alert))
    return data


def _changes(form) -> Dict[str, Any]:
    changes = form.changed_data_from_payload()
    if not changes.get("frequency"):
        changes.pop("frequency", None)
    return changes


def get_alert(user: User, alert_id: int) -> JobAlert:
    return JobAlert.objects.get(id=alert_id, candidate=user)


def list_alerts(user: User):
    return JobAlert.objects.filter(candidate=user)


def create_alert(user: User, payload: Dict[str, Any]) -> JobAlert:
    form = JobAlertForm(payload)
    if not form.is_valid():
        raise form_error(form)
    alert = JobAlert(candidate=user)
    apply_changes(alert, _changes(form))
    try:
        with transaction.atomic():
            alert.save()
    except IntegrityError:
        raise Conflict("An alert with these keywords and location already exists")
    logger.info("Job alert %s created for user %s", alert.id, user.id)
    return alert


def update_alert(user: User, alert_id: int, payload: Dict[str, Any]) -> JobAlert:
    alert = get_alert(user, alert_id)
    form = JobAlertForm(payload, partial=True)
    if not form.is_valid():
        raise form_error(form)
    apply_changes(alert, _changes(form))
    try:
        with transaction.atomic():
            alert.save()
    except IntegrityError:
        raise Conflict("An alert with these keywords and location already exists")
    return alert


def delete_alert(user: User, alert_id: int) -> None:
    get_alert(user, alert_id).delete()


def toggle_alert(user: User, alert_id: int) -> JobAlert:
    alert = get_alert(user, alert_id)
    alert.is_active = not alert.is_active
    alert.save(update_fields=["is_active", "updated_at"])
    return alert


def matching_jobs(alert: JobAlert, since: Optional[datetime] = None) -> List[Job]:
    """Open jobs published in the last week (or after ``since``) matching ``alert``."""
    cutoff = timezone.now() - MATCH_WINDOW
    if since is not None and since > cutoff:
        cutoff = since
    jobs = open_jobs().filter(published_at__gte=cutoff)
    for keyword in alert.keywords.split():
        jobs = jobs.filter(
            Q(title__icontains=keyword) | Q(description__icontains=keyword) | Q(company_name__icontains=keyword)
        )
    if alert.location:
        jobs = jobs.filter(location__icontains=alert.location)
    for name in ("work_type", "employment_type", "experience_level"):
        value = getattr(alert, name)
        if value:
            jobs = jobs.filter(**{name: value})
    if alert.salary_min:
        jobs = jobs.filter(Q(salary_max__gte=alert.salary_min) | Q(salary_max__isnull=True))
    if alert.category_id:
        jobs = jobs.filter(category_id=alert.category_id)
    results = list(jobs)
    if alert.skills:
        wanted = {skill.lower() for skill in alert.skills}
        results = [
            job for job in results
            if wanted & {s.lower() for s in job.required_skills + job.preferred_skills}
        ]
    return results


def is_due(alert: JobAlert, now=None) -> bool:
    if alert.last_sent_at is None:
        return True
    now = now or timezone.now()
    return now - alert.last_sent_at >= FREQUENCY_INTERVALS[alert.frequency]


def process_alerts(now=None) -> int:
    """Notify candidates of new matches for every due alert; return how many were sent."""
    now = now or timezone.now()
    sent = 0
    alerts = JobAlert.objects.select_related("candidate").filter(
        is_active=True, candidate__is_active=True
    )
    for alert in alerts:
        if not is_due(alert, now):
            continue
        profile = getattr(alert.candidate, "candidate_profile", None)
        if profile is not None and not profile.job_alerts:
            continue
        jobs = matching_jobs(alert, since=alert.last_sent_at)
        if not jobs:
            continue
        titles = ", ".join(job.title for job in jobs[:3])
        more = f" and {len(jobs) - 3} more" if len(jobs) > 3 else ""
        notify(
            alert.candidate,
            f"{len(jobs)} new job(s) match your alert '{alert}': {titles}{more}",
            kind="job_alert",
            link=f"/api/job-alerts/{alert.id}/jobs/",
        )
        alert.last_sent_at = now
        alert.save(update_fields=["last_sent_at", "updated_at"])
        sent += 1
    logger.info("Processed job alerts, %d notification(s) sent", sent)
    return sent
