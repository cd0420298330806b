"""
Application pipeline services.

Candidates apply to open jobs with one of their CVs; the application
gets an AI score from the similarity between the CV and the job
embeddings.  HR users move applications through the review statuses and
the candidate is notified of every change.
"""

from __future__ import annotations

import logging
from collections import Counter, OrderedDict
from typing import Any, Dict, List, Optional

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, F, Q
from django.utils import timezone

from cvboard.forms import apply_changes
from cvboard.http import Conflict, form_error
from cvs.document import document_text, normalize_document
from cvs.models import CV
from cvs.services import cosine_similarity, get_embedding_service
from jobs.models import Job
from jobs.services import job_dict, job_embedding
from notifications.services import notify
from users.models import User
from users.services import MIN_PROFILE_COMPLETENESS, get_candidate_profile, profile_completeness
from .forms import ApplyForm, BulkWithdrawForm, StatusUpdateForm
from .models import JobApplication

logger = logging.getLogger(__name__)

RESPONDED_STATUSES = (
    JobApplication.STATUS_REVIEWING,
    JobApplication.STATUS_SHORTLISTED,
    JobApplication.STATUS_INTERVIEWED,
    JobApplication.STATUS_OFFERED,
    JobApplication.STATUS_HIRED,
    JobApplication.STATUS_REJECTED,
)
SUCCESS_STATUSES = (JobApplication.STATUS_OFFERED, JobApplication.STATUS_HIRED)


def application_dict(application: JobApplication, for_hr: bool = False) -> Dict[str, Any]:
    data = {
        "id": application.id,
        "job": job_dict(application.job),
        "candidate_id": application.candidate_id,
        "cv_id": application.cv_id,
        "cover_letter": application.cover_letter,
        "additional_notes": application.additional_notes,
        "portfolio_url": application.portfolio_url,
        "status": application.status,
        "ai_score": application.ai_score,
        "interview_scheduled_at": application.interview_scheduled_at,
        "interview_type": application.interview_type,
        "response_deadline": application.response_deadline,
        "applied_at": application.applied_at,
        "updated_at": application.updated_at,
        "withdrawn_at": application.withdrawn_at,
    }
    if for_hr:
        candidate = application.candidate
        data.update(
            {
                "candidate": {
                    "id": candidate.id,
                    "name": candidate.full_name,
                    "email": candidate.email,
                },
                "hr_notes": application.hr_notes,
                "hr_rating": application.hr_rating,
                "ai_analysis": application.ai_analysis,
                "interview_notes": application.interview_notes,
            }
        )
    return data


# ----- Applying -----


def _score(cv: Optional[CV], job: Job) -> Dict[str, Any]:
    if cv is None:
        return {"score": None, "analysis": {}}
    text = document_text(normalize_document(cv.data))
    service = get_embedding_service()
    similarity = cosine_similarity(service.embed(text), job_embedding(job, service))
    score = round(max(0.0, min(1.0, similarity)) * 100, 2)
    lowered = text.lower()
    analysis = {
        "matched_skills": [s for s in job.required_skills if s.lower() in lowered],
        "missing_skills": [s for s in job.required_skills if s.lower() not in lowered],
    }
    return {"score": score, "analysis": analysis}


def apply_to_job(user: User, job_id: int, payload: Dict[str, Any]) -> JobApplication:
    """Create an application, refusing it when any rule is not met."""
    job = Job.objects.get(id=job_id)
    if not job.is_open:
        raise ValidationError("This job is not accepting applications")
    if JobApplication.objects.filter(job=job, candidate=user).exists():
        raise Conflict("You have already applied to this job")

    form = ApplyForm(payload)
    if not form.is_valid():
        raise form_error(form)

    cv = None
    if form.cleaned_data["cv_id"]:
        cv = CV.objects.get(id=form.cleaned_data["cv_id"])
        if cv.owner_id != user.id:
            raise PermissionDenied("You can only apply with your own CV")

    profile = get_candidate_profile(user)
    completeness = profile_completeness(profile)
    if completeness < MIN_PROFILE_COMPLETENESS:
        raise ValidationError(
            f"Complete at least {MIN_PROFILE_COMPLETENESS}% of your profile before applying "
            f"(currently {completeness}%)"
        )
    required_years = job.required_experience_years or 0
    if profile.years_of_experience < required_years:
        raise ValidationError(f"This job requires at least {required_years} years of experience")

    scoring = _score(cv, job)
    try:
        with transaction.atomic():
            application = JobApplication.objects.create(
                job=job,
                candidate=user,
                cv=cv,
                cover_letter=form.cleaned_data["cover_letter"],
                additional_notes=form.cleaned_data["additional_notes"],
                portfolio_url=form.cleaned_data["portfolio_url"],
                ai_score=scoring["score"],
                ai_analysis=scoring["analysis"],
            )
            Job.objects.filter(id=job.id).update(application_count=F("application_count") + 1)
    except IntegrityError:
        raise Conflict("You have already applied to this job")

    notify(
        job.posted_by,
        f"{user.full_name} applied to {job.title}",
        kind="new_application",
        link=f"/api/jobs/{job.id}/applications/",
    )
    logger.info("Application %s submitted for job %s (score %s)", application.id, job.id, scoring["score"])
    return application


# ----- Candidate side -----


def get_own_application(user: User, application_id: int) -> JobApplication:
    application = JobApplication.objects.select_related("job", "job__category").get(id=application_id)
    if application.candidate_id != user.id:
        raise PermissionDenied("You cannot access this application")
    return application


def my_applications(user: User, status: Optional[str] = None, search: Optional[str] = None):
    applications = JobApplication.objects.select_related("job", "job__category").filter(candidate=user)
    if status:
        applications = applications.filter(status=status)
    if search:
        applications = applications.filter(
            Q(job__title__icontains=search) | Q(job__company_name__icontains=search)
        )
    return applications


def _average_response_days(applications) -> Optional[float]:
    durations = [
        (a.status_changed_at - a.applied_at).total_seconds() / 86400
        for a in applications
        if a.status_changed_at and a.status in RESPONDED_STATUSES
    ]
    if not durations:
        return None
    return round(sum(durations) / len(durations), 1)


def application_stats(user: User) -> Dict[str, Any]:
    applications = list(JobApplication.objects.filter(candidate=user))
    total = len(applications)
    by_status = Counter(a.status for a in applications)
    responded = sum(by_status[s] for s in RESPONDED_STATUSES)
    return {
        "total": total,
        "by_status": {status: by_status.get(status, 0) for status, _ in JobApplication.STATUS_CHOICES},
        "response_rate": round(responded / total * 100, 1) if total else 0.0,
        "average_response_days": _average_response_days(applications),
    }


def application_timeline(application: JobApplication) -> List[Dict[str, Any]]:
    events = [{"event": "applied", "status": JobApplication.STATUS_PENDING, "at": application.applied_at}]
    if application.interview_scheduled_at:
        events.append(
            {
                "event": "interview_scheduled",
                "status": application.status,
                "at": application.interview_scheduled_at,
                "interview_type": application.interview_type,
            }
        )
    if application.status != JobApplication.STATUS_PENDING:
        events.append(
            {
                "event": "status_changed",
                "status": application.status,
                "at": application.withdrawn_at or application.status_changed_at or application.updated_at,
            }
        )
    return sorted(events, key=lambda e: e["at"])


def withdraw(user: User, application_id: int) -> JobApplication:
    application = get_own_application(user, application_id)
    if application.status in JobApplication.FINAL_STATUSES:
        raise ValidationError(f"Cannot withdraw an application that is {application.status}")
    now = timezone.now()
    application.status = JobApplication.STATUS_WITHDRAWN
    application.withdrawn_at = now
    application.status_changed_at = now
    application.save()
    notify(
        application.job.posted_by,
        f"{user.full_name} withdrew their application to {application.job.title}",
        kind="application_withdrawn",
        link=f"/api/jobs/{application.job_id}/applications/",
    )
    logger.info("Application %s withdrawn", application.id)
    return application


def bulk_withdraw(user: User, payload: Dict[str, Any]) -> Dict[str, Any]:
    form = BulkWithdrawForm(payload)
    if not form.is_valid():
        raise form_error(form)
    withdrawn, failed = [], []
    for application_id in form.cleaned_data["application_ids"]:
        try:
            withdraw(user, application_id)
        except ObjectDoesNotExist:
            failed.append({"id": application_id, "error": "Application not found"})
        except (PermissionDenied, ValidationError) as exc:
            message = "; ".join(exc.messages) if isinstance(exc, ValidationError) else str(exc)
            failed.append({"id": application_id, "error": message})
        else:
            withdrawn.append(application_id)
    return {"withdrawn": withdrawn, "failed": failed}


def application_analytics(user: User) -> Dict[str, Any]:
    applications = list(
        JobApplication.objects.select_related("job").filter(candidate=user).order_by("applied_at")
    )
    total = len(applications)
    per_month: "OrderedDict[str, int]" = OrderedDict()
    for application in applications:
        key = application.applied_at.strftime("%Y-%m")
        per_month[key] = per_month.get(key, 0) + 1
    by_status = Counter(a.status for a in applications)
    companies = Counter(a.job.company_name or "Unknown" for a in applications)
    successes = sum(by_status[s] for s in SUCCESS_STATUSES)
    success_rate = round(successes / total * 100, 1) if total else 0.0
    average_days = _average_response_days(applications)

    insights = []
    if total == 0:
        insights.append("You have not applied to any job yet.")
    else:
        if by_status[JobApplication.STATUS_PENDING] / total > 0.5:
            insights.append("Most of your applications are still pending; consider following up.")
        if success_rate >= 20:
            insights.append("Your success rate is above average, keep going.")
        elif by_status[JobApplication.STATUS_REJECTED] / total > 0.5:
            insights.append("Many applications were rejected; try adapting your CV to each job.")
        if average_days is not None:
            insights.append(f"Employers respond in {average_days} days on average.")
    return {
        "total": total,
        "per_month": [{"month": month, "count": count} for month, count in per_month.items()],
        "by_status": dict(by_status),
        "top_companies": [{"company": name, "count": count} for name, count in companies.most_common(5)],
        "success_rate": success_rate,
        "average_response_days": average_days,
        "insights": insights,
    }


# ----- HR side -----


def job_applications(user: User, job_id: int, status: Optional[str] = None):
    job = Job.objects.get(id=job_id)
    if job.posted_by_id != user.id:
        raise PermissionDenied("You can only see applications to your own jobs")
    applications = JobApplication.objects.select_related("job", "candidate").filter(job=job)
    if status:
        applications = applications.filter(status=status)
    return applications.order_by(F("ai_score").desc(nulls_last=True), "-applied_at")


def job_application_counts(job_id: int) -> Dict[str, int]:
    rows = JobApplication.objects.filter(job_id=job_id).values("status").annotate(count=Count("id"))
    return {row["status"]: row["count"] for row in rows}


def update_status(user: User, job_id: int, application_id: int, payload: Dict[str, Any]) -> JobApplication:
    application = JobApplication.objects.select_related("job", "candidate").get(
        id=application_id, job_id=job_id
    )
    if application.job.posted_by_id != user.id:
        raise PermissionDenied("You can only manage applications to your own jobs")
    if application.status == JobApplication.STATUS_WITHDRAWN:
        raise ValidationError("The candidate withdrew this application")
    form = StatusUpdateForm(payload, partial=True)
    if not form.is_valid():
        raise form_error(form)
    changes = form.changed_data_from_payload()
    if not changes.get("status"):
        changes.pop("status", None)
    old_status = application.status
    apply_changes(application, changes)
    if application.status != old_status:
        application.status_changed_at = timezone.now()
    application.save()

    if application.status != old_status:
        notify(
            application.candidate,
            f"Your application to {application.job.title} is now {application.get_status_display().lower()}",
            kind="application_status",
            link=f"/api/applications/{application.id}/",
        )
    elif "interview_scheduled_at" in changes and application.interview_scheduled_at:
        notify(
            application.candidate,
            f"An interview for {application.job.title} was scheduled",
            kind="interview_scheduled",
            link=f"/api/applications/{application.id}/",
        )
    logger.info(
        "Application %s updated by HR user %s (%s -> %s)", application.id, user.id, old_status, application.status
    )
    return application
