"""
Job posting services: lifecycle, validation, discovery and analytics.

HR users create postings as drafts and move them through
``Job.STATUS_TRANSITIONS``.  Publishing checks that the posting is
complete and stores its embedding so candidates can be matched against
it.  Search, featured listings and recommendations only ever return
published postings that have not expired.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import Count, F, Q, QuerySet, Sum
from django.utils import timezone

from cvboard.forms import apply_changes
from cvboard.http import form_error
from cvs.document import document_text, normalize_document
from cvs.models import CV
from cvs.services import (
    cosine_similarity,
    embedding_from_bytes,
    embedding_to_bytes,
    get_embedding_service,
)
from users.models import User
from users.services import get_hr_profile
from .forms import JobForm
from .models import Job, JobCategory, JobView

logger = logging.getLogger(__name__)

PUBLISH_WINDOW = timedelta(days=30)
MAX_PUBLISHED_SALARY_CHANGE = 0.2

# Concurrent featured/urgent postings per subscription plan; -1 is unlimited.
PLAN_LIMITS = {
    "basic": {"featured": 0, "urgent": 1},
    "premium": {"featured": 10, "urgent": 20},
    "enterprise": {"featured": -1, "urgent": -1},
}

ENUM_FIELDS = ("work_type", "employment_type", "experience_level", "salary_period")
POSTED_WITHIN = {"today": timedelta(days=1), "week": timedelta(days=7), "month": timedelta(days=30)}
SORT_OPTIONS = ("relevance", "date", "salary")


# ----- Serialization -----


def category_dict(category: JobCategory) -> Dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "parent_id": category.parent_id,
    }


def job_dict(job: Job, viewer: Optional[User] = None) -> Dict[str, Any]:
    is_owner = viewer is not None and viewer.id == job.posted_by_id
    data = {
        "id": job.id,
        "slug": job.slug,
        "title": job.title,
        "description": job.description,
        "short_description": job.short_description,
        "company_name": job.company_name,
        "company_logo": job.company_logo,
        "company_website": job.company_website,
        "location": job.location,
        "country": job.country,
        "city": job.city,
        "work_type": job.work_type,
        "category": category_dict(job.category) if job.category else None,
        "employment_type": job.employment_type,
        "experience_level": job.experience_level,
        "salary_currency": job.salary_currency,
        "salary_period": job.salary_period,
        "salary_negotiable": job.salary_negotiable,
        "show_salary": job.show_salary,
        "required_skills": job.required_skills,
        "preferred_skills": job.preferred_skills,
        "required_education": job.required_education,
        "required_experience_years": job.required_experience_years,
        "languages": job.languages,
        "benefits": job.benefits,
        "perks": job.perks,
        "application_deadline": job.application_deadline,
        "start_date": job.start_date,
        "application_instructions": job.application_instructions,
        "application_url": job.application_url,
        "status": job.status,
        "is_urgent": job.is_urgent,
        "is_featured": job.is_featured,
        "is_remote_friendly": job.is_remote_friendly,
        "tags": job.tags,
        "view_count": job.view_count,
        "application_count": job.application_count,
        "posted_by": job.posted_by_id,
        "published_at": job.published_at,
        "expires_at": job.expires_at,
        "created_at": job.created_at,
        "updated_at": job.updated_at,
    }
    if job.show_salary or is_owner:
        data["salary_min"] = job.salary_min
        data["salary_max"] = job.salary_max
    return data


# ----- Lookups -----


def list_categories():
    return JobCategory.objects.filter(is_active=True)


def get_owned_job(user: User, job_id: int) -> Job:
    job = Job.objects.select_related("category").get(id=job_id)
    if job.posted_by_id != user.id:
        raise PermissionDenied("You can only manage your own job postings")
    return job


def open_jobs() -> QuerySet:
    """Published postings that have not expired."""
    now = timezone.now()
    return Job.objects.select_related("category").filter(
        Q(expires_at__isnull=True) | Q(expires_at__gt=now),
        status=Job.STATUS_PUBLISHED,
    )


# ----- Validation -----


def validation_warnings(values: Dict[str, Any]) -> List[str]:
    """Non-blocking remarks about a posting."""
    warnings = []
    low, high = values.get("salary_min"), values.get("salary_max")
    if low and high and high / low > 3:
        warnings.append("The salary range is very wide; consider narrowing it.")
    skills = values.get("required_skills") or []
    if not skills:
        warnings.append("No required skills listed; candidates match better with skills.")
    elif len(skills) > 20:
        warnings.append("More than 20 required skills may discourage applicants.")
    deadline = values.get("application_deadline")
    if deadline and deadline < timezone.now() + timedelta(days=30):
        warnings.append("The application deadline is less than 30 days away.")
    return warnings


def _plan_limit(hr_profile, kind: str) -> int:
    return PLAN_LIMITS.get(hr_profile.subscription_plan, PLAN_LIMITS["basic"])[kind]


def _month_start():
    return timezone.now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def check_promotion_limits(user: User, hr_profile, featured: bool, urgent: bool, exclude: Optional[Job] = None) -> None:
    """Refuse featured/urgent postings beyond what the plan allows this month."""
    this_month = Job.objects.filter(posted_by=user, created_at__gte=_month_start())
    if exclude is not None:
        this_month = this_month.exclude(pk=exclude.pk)
    for kind, wanted, flag in (("featured", featured, "is_featured"), ("urgent", urgent, "is_urgent")):
        limit = _plan_limit(hr_profile, kind)
        if not wanted or limit < 0:
            continue
        if this_month.filter(**{flag: True}).count() >= limit:
            raise PermissionDenied(
                f"Your {hr_profile.subscription_plan} plan allows {limit} {kind} job postings per month"
            )


def check_monthly_limit(user: User, hr_profile) -> None:
    limit = hr_profile.monthly_job_post_limit
    if limit < 0:
        return
    if Job.objects.filter(posted_by=user, created_at__gte=_month_start()).count() >= limit:
        raise PermissionDenied(f"Monthly job posting limit of {limit} reached")


def _clean_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    return {
        name: value
        for name, value in changes.items()
        if name != "status" and not (name in ENUM_FIELDS and value == "")
    }


# ----- Lifecycle -----


@transaction.atomic
def create_job(user: User, payload: Dict[str, Any]) -> Tuple[Job, List[str]]:
    hr_profile = get_hr_profile(user)
    if not hr_profile.can_post_jobs:
        raise PermissionDenied("Your account cannot post jobs")
    form = JobForm(payload)
    if not form.is_valid():
        raise form_error(form)
    check_monthly_limit(user, hr_profile)
    check_promotion_limits(
        user, hr_profile, form.cleaned_data["is_featured"], form.cleaned_data["is_urgent"]
    )

    job = Job(posted_by=user, company_name=hr_profile.company_name, status=Job.STATUS_DRAFT)
    apply_changes(job, _clean_changes(form.changed_data_from_payload()))
    job.save()
    type(hr_profile).objects.filter(pk=hr_profile.pk).update(total_jobs_posted=F("total_jobs_posted") + 1)
    logger.info("Job %s created by user %s", job.id, user.id)
    return job, validation_warnings(form.cleaned_data)


def _check_published_changes(job: Job, changes: Dict[str, Any]) -> None:
    for name in ("employment_type", "work_type"):
        if name in changes and changes[name] != getattr(job, name):
            raise ValidationError({name: ["Cannot be changed once the job is published."]})
    for name in ("salary_min", "salary_max"):
        old, new = getattr(job, name), changes.get(name)
        if name in changes and old and new is not None:
            if abs(new - old) / old > MAX_PUBLISHED_SALARY_CHANGE:
                raise ValidationError(
                    {name: ["Published salaries cannot change by more than 20%."]}
                )


@transaction.atomic
def update_job(user: User, job_id: int, payload: Dict[str, Any]) -> Tuple[Job, List[str]]:
    job = get_owned_job(user, job_id)
    form = JobForm(payload, partial=True)
    if not form.is_valid():
        raise form_error(form)
    changes = _clean_changes(form.changed_data_from_payload())

    low = changes.get("salary_min", job.salary_min)
    high = changes.get("salary_max", job.salary_max)
    if low is not None and high is not None and low > high:
        raise ValidationError({"salary_max": ["Maximum salary must be greater than or equal to the minimum."]})
    if job.status == Job.STATUS_PUBLISHED:
        _check_published_changes(job, changes)
    if changes.get("is_featured") or changes.get("is_urgent"):
        check_promotion_limits(
            user,
            get_hr_profile(user),
            changes.get("is_featured", False) and not job.is_featured,
            changes.get("is_urgent", False) and not job.is_urgent,
            exclude=job,
        )

    apply_changes(job, changes)
    job.save()
    status = form.cleaned_data.get("status")
    if status and status != job.status:
        change_status(job, status)
    values = {
        "salary_min": job.salary_min,
        "salary_max": job.salary_max,
        "required_skills": job.required_skills,
        "application_deadline": job.application_deadline,
    }
    logger.info("Job %s updated", job.id)
    return job, validation_warnings(values)


def publish_requirements(job: Job) -> List[str]:
    missing = []
    if len(job.description or "") < 50:
        missing.append("description must be at least 50 characters")
    if not job.location:
        missing.append("location is required")
    if not job.category_id:
        missing.append("category is required")
    if not job.required_skills:
        missing.append("at least one required skill is needed")
    return missing


def compute_job_embedding(job: Job) -> None:
    job.embedding = embedding_to_bytes(get_embedding_service().embed(job.embedding_text()))


def change_status(job: Job, status: str) -> Job:
    """Move ``job`` to ``status`` if the lifecycle allows it."""
    if not job.can_transition_to(status):
        raise ValidationError(f"Cannot change job status from {job.status} to {status}")
    if status == Job.STATUS_PUBLISHED:
        missing = publish_requirements(job)
        if missing:
            raise ValidationError({"status": [f"Cannot publish: {m}" for m in missing]})
        now = timezone.now()
        job.published_at = job.published_at or now
        if job.expires_at is None or job.expires_at <= now:
            job.expires_at = now + PUBLISH_WINDOW
        compute_job_embedding(job)
    job.status = status
    job.save()
    logger.info("Job %s is now %s", job.id, status)
    return job


def publish_job(user: User, job_id: int) -> Job:
    return change_status(get_owned_job(user, job_id), Job.STATUS_PUBLISHED)


def pause_job(user: User, job_id: int) -> Job:
    job = get_owned_job(user, job_id)
    if job.status != Job.STATUS_PUBLISHED:
        raise ValidationError("Only published jobs can be paused")
    return change_status(job, Job.STATUS_PAUSED)


def close_job(user: User, job_id: int) -> Job:
    return change_status(get_owned_job(user, job_id), Job.STATUS_CLOSED)


def duplicate_job(user: User, job_id: int) -> Job:
    source = get_owned_job(user, job_id)
    check_monthly_limit(user, get_hr_profile(user))
    duplicate = Job.objects.get(pk=source.pk)
    duplicate.pk = None
    duplicate.slug = ""
    duplicate.title = f"{source.title} (Copy)"[:200]
    duplicate.status = Job.STATUS_DRAFT
    duplicate.is_featured = False
    duplicate.is_urgent = False
    duplicate.view_count = duplicate.application_count = duplicate.share_count = 0
    duplicate.embedding = None
    duplicate.published_at = duplicate.expires_at = None
    duplicate.save()
    logger.info("Job %s duplicated as %s", source.id, duplicate.id)
    return duplicate


def delete_job(user: User, job_id: int) -> None:
    job = get_owned_job(user, job_id)
    if job.status not in (Job.STATUS_DRAFT, Job.STATUS_CLOSED):
        raise ValidationError("Only draft or closed jobs can be deleted")
    if job.applications.exists():
        raise ValidationError("Jobs with applications cannot be deleted; close them instead")
    logger.info("Job %s deleted", job.id)
    job.delete()


def expire_jobs() -> int:
    """Mark published jobs past their expiry date as expired."""
    count = Job.objects.filter(
        status=Job.STATUS_PUBLISHED, expires_at__lte=timezone.now()
    ).update(status=Job.STATUS_EXPIRED)
    if count:
        logger.info("Expired %d job postings", count)
    return count


# ----- Discovery -----


def _relevance(job: Job, terms: List[str]) -> int:
    title = job.title.lower()
    description = job.description.lower()
    company = job.company_name.lower()
    skills = " ".join(job.required_skills + job.preferred_skills).lower()
    score = 0
    for term in terms:
        score += 3 * title.count(term)
        score += 2 * skills.count(term)
        score += description.count(term)
        score += company.count(term)
    return score


def _facets(jobs: List[Job]) -> Dict[str, Dict[str, int]]:
    return {
        name: dict(Counter(getattr(job, name) for job in jobs))
        for name in ("work_type", "employment_type", "experience_level")
    }


def search_jobs(params) -> Tuple[List[Job], Dict[str, Dict[str, int]]]:
    """Filter open jobs by ``params`` (a QueryDict or dict) and sort them.

    Returns the ordered jobs and facet counts for the filtered set.
    """
    jobs = open_jobs()
    query = (params.get("q") or params.get("query") or "").strip()
    if query:
        jobs = jobs.filter(
            Q(title__icontains=query) | Q(description__icontains=query) | Q(company_name__icontains=query)
        )
    if params.get("location"):
        jobs = jobs.filter(location__icontains=params["location"])
    for name in ("work_type", "employment_type", "experience_level"):
        if params.get(name):
            jobs = jobs.filter(**{name: params[name]})
    try:
        if params.get("salary_min"):
            jobs = jobs.filter(salary_max__gte=int(params["salary_min"]))
        if params.get("salary_max"):
            jobs = jobs.filter(salary_min__lte=int(params["salary_max"]))
        if params.get("category"):
            jobs = jobs.filter(category_id=int(params["category"]))
    except ValueError as exc:
        raise ValidationError(f"Invalid numeric filter: {exc}") from exc
    posted = params.get("posted_within")
    if posted:
        if posted not in POSTED_WITHIN:
            raise ValidationError({"posted_within": [f"Choose one of: {', '.join(POSTED_WITHIN)}"]})
        jobs = jobs.filter(published_at__gte=timezone.now() - POSTED_WITHIN[posted])

    sort = params.get("sort") or ("relevance" if query else "date")
    if sort not in SORT_OPTIONS:
        raise ValidationError({"sort": [f"Choose one of: {', '.join(SORT_OPTIONS)}"]})

    results = list(jobs)
    skills = [s.strip().lower() for s in (params.get("skills") or "").split(",") if s.strip()]
    if skills:
        results = [
            job for job in results
            if set(skills) & {s.lower() for s in job.required_skills + job.preferred_skills}
        ]
    facets = _facets(results)
    if sort == "relevance":
        terms = [t for t in query.lower().split() if t] + skills
        results.sort(key=lambda job: (_relevance(job, terms), job.published_at), reverse=True)
    elif sort == "salary":
        results.sort(key=lambda job: (job.salary_max or job.salary_min or 0), reverse=True)
    return results, facets


def featured_jobs(limit: int = 10) -> List[Job]:
    return list(open_jobs().filter(is_featured=True)[:limit])


def job_detail(job_id: int, viewer: Optional[User], request=None) -> Job:
    """Return a job visible to ``viewer`` and record the view."""
    job = Job.objects.select_related("category").get(id=job_id)
    is_owner = viewer is not None and viewer.id == job.posted_by_id
    if job.status != Job.STATUS_PUBLISHED and not is_owner:
        raise ObjectDoesNotExist("Job not found")
    if not is_owner:
        JobView.objects.create(
            job=job,
            viewer=viewer,
            ip_address=request.META.get("REMOTE_ADDR") if request else None,
            user_agent=(request.META.get("HTTP_USER_AGENT", "") if request else "")[:255],
        )
        Job.objects.filter(id=job.id).update(view_count=F("view_count") + 1)
        job.view_count += 1
    return job


def candidate_text(user: User) -> str:
    """Latest CV text plus profile skills, used to match a candidate to jobs."""
    parts = []
    cv = CV.objects.filter(owner=user).first()
    if cv is not None:
        parts.append(document_text(normalize_document(cv.data)))
    profile = getattr(user, "candidate_profile", None)
    if profile is not None:
        parts.append(" ".join(profile.skills))
        parts.append(profile.title)
    return "\n".join(part for part in parts if part)


def job_embedding(job: Job, service=None):
    vector = embedding_from_bytes(job.embedding)
    if vector is None:
        vector = (service or get_embedding_service()).embed(job.embedding_text())
        Job.objects.filter(id=job.id).update(embedding=embedding_to_bytes(vector))
    return vector


def recommendations(user: User, limit: int = 10) -> List[Tuple[Job, float]]:
    """Open jobs the candidate has not applied to, best match first."""
    text = candidate_text(user)
    jobs = open_jobs().exclude(applications__candidate=user)
    if not text:
        return [(job, 0.0) for job in jobs[:limit]]
    service = get_embedding_service()
    candidate_vector = service.embed(text)
    scored = [
        (job, round(max(0.0, cosine_similarity(candidate_vector, job_embedding(job, service))) * 100, 2))
        for job in jobs
    ]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:limit]


# ----- HR dashboard -----


def my_jobs(user: User, status: Optional[str] = None, search: Optional[str] = None) -> QuerySet:
    jobs = Job.objects.select_related("category").filter(posted_by=user).order_by("-created_at", "-id")
    if status:
        jobs = jobs.filter(status=status)
    if search:
        jobs = jobs.filter(Q(title__icontains=search) | Q(description__icontains=search))
    return jobs


def my_jobs_stats(user: User) -> Dict[str, Any]:
    jobs = Job.objects.filter(posted_by=user)
    by_status = {row["status"]: row["count"] for row in jobs.values("status").annotate(count=Count("id"))}
    totals = jobs.aggregate(views=Sum("view_count"), applications=Sum("application_count"))
    month_start = _month_start()
    return {
        "total": jobs.count(),
        "by_status": {status: by_status.get(status, 0) for status, _ in Job.STATUS_CHOICES},
        "total_views": totals["views"] or 0,
        "total_applications": totals["applications"] or 0,
        "created_this_month": jobs.filter(created_at__gte=month_start).count(),
    }


def job_analytics(user: User, job_id: int) -> Dict[str, Any]:
    job = get_owned_job(user, job_id)
    by_status = {
        row["status"]: row["count"]
        for row in job.applications.values("status").annotate(count=Count("id"))
    }
    applications = sum(by_status.values())
    views = job.view_count
    return {
        "job_id": job.id,
        "views": views,
        "unique_viewers": job.views.exclude(viewer=None).values("viewer").distinct().count(),
        "applications": applications,
        "applications_by_status": by_status,
        "saves": job.saves.count(),
        "conversion_rate": round(applications / views * 100, 2) if views else 0.0,
    }
