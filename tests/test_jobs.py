"""Tests for job postings: lifecycle, limits, search, discovery and analytics."""

from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.test import Client
from django.utils import timezone

from applications.models import JobApplication
from jobs.models import Job, JobView
from jobs.services import search_jobs

from .conftest import login


@pytest.fixture
def job_payload(category):
    return {
        "title": "Backend Engineer",
        "description": "Build and operate the APIs behind our hiring platform using Python and Django.",
        "location": "Remote, Europe",
        "work_type": "remote",
        "employment_type": "full-time",
        "experience_level": "senior",
        "category_id": category.id,
        "required_skills": ["Python", "Django"],
        "salary_min": 50000,
        "salary_max": 70000,
    }


def post_json(client, url, payload=None):
    return client.post(url, payload or {}, content_type="application/json")


def test_create_job_as_draft(hr_client, hr_user, job_payload):
    response = post_json(hr_client, "/api/jobs/", dict(job_payload, status="published"))
    assert response.status_code == 201
    body = response.json()
    assert body["job"]["status"] == "draft"
    assert body["job"]["company_name"] == "Acme Corp"
    assert body["job"]["slug"] == "backend-engineer"
    assert body["warnings"] == []
    hr_user.hr_profile.refresh_from_db()
    assert hr_user.hr_profile.total_jobs_posted == 1


def test_create_job_warnings(hr_client, job_payload):
    payload = dict(job_payload, required_skills=[], salary_min=10000, salary_max=90000)
    warnings = post_json(hr_client, "/api/jobs/", payload).json()["warnings"]
    assert len(warnings) == 2


def test_create_job_validation(hr_client, job_payload):
    payload = dict(job_payload, description="Too short", salary_min=90000, work_type="space")
    response = post_json(hr_client, "/api/jobs/", payload)
    assert response.status_code == 400
    assert {"description", "salary_max", "work_type"} <= set(response.json()["details"])


def test_candidates_cannot_post_jobs(candidate_client, job_payload):
    assert post_json(candidate_client, "/api/jobs/", job_payload).status_code == 403


def test_monthly_posting_limit(hr_client, job_factory, job_payload):
    for _ in range(5):
        job_factory(status=Job.STATUS_DRAFT)
    response = post_json(hr_client, "/api/jobs/", job_payload)
    assert response.status_code == 403
    assert "Monthly" in response.json()["error"]


def test_basic_plan_cannot_feature_jobs(hr_client, job_payload):
    response = post_json(hr_client, "/api/jobs/", dict(job_payload, is_featured=True))
    assert response.status_code == 403

def test_urgent_limit_counts_postings_created_this_month(hr_client, job_factory, job_payload):
    job_factory(status=Job.STATUS_CLOSED, is_urgent=True)
    response = post_json(hr_client, "/api/jobs/", dict(job_payload, is_urgent=True))
    assert response.status_code == 403
    assert "per month" in response.json()["error"]


def test_urgent_postings_from_earlier_months_do_not_count(hr_client, job_factory, job_payload):
    old = job_factory(is_urgent=True)
    Job.objects.filter(id=old.id).update(created_at=timezone.now() - timedelta(days=40))
    assert post_json(hr_client, "/api/jobs/", dict(job_payload, is_urgent=True)).status_code == 201



def test_slugs_are_unique(job_factory):
    first = job_factory(title="Data Analyst")
    second = job_factory(title="Data Analyst")
    assert first.slug == "data-analyst"
    assert second.slug == "data-analyst-2"


def test_publish_requires_complete_posting(hr_client, job_factory):
    job = job_factory(status=Job.STATUS_DRAFT, category=None, published_at=None, expires_at=None)
    response = post_json(hr_client, f"/api/jobs/{job.id}/publish/")
    assert response.status_code == 400
    assert "Cannot publish: category is required" in response.json()["details"]["status"]


def test_publish_sets_dates_and_embedding(hr_client, job_factory):
    job = job_factory(status=Job.STATUS_DRAFT, published_at=None, expires_at=None)
    response = post_json(hr_client, f"/api/jobs/{job.id}/publish/")
    assert response.status_code == 200
    job.refresh_from_db()
    assert job.status == Job.STATUS_PUBLISHED
    assert job.published_at is not None
    assert job.expires_at - job.published_at == timedelta(days=30)
    assert job.embedding


def test_lifecycle_transitions(hr_client, published_job):
    url = f"/api/jobs/{published_job.id}"
    assert post_json(hr_client, f"{url}/pause/").json()["job"]["status"] == "paused"
    assert post_json(hr_client, f"{url}/pause/").status_code == 400
    assert post_json(hr_client, f"{url}/publish/").json()["job"]["status"] == "published"
    assert post_json(hr_client, f"{url}/close/").json()["job"]["status"] == "closed"
    assert post_json(hr_client, f"{url}/publish/").status_code == 400


def test_only_owner_manages_job(published_job, other_hr):
    client = login(other_hr)
    assert post_json(client, f"/api/jobs/{published_job.id}/close/").status_code == 403


def test_published_job_restrictions(hr_client, published_job):
    url = f"/api/jobs/{published_job.id}/"
    response = hr_client.patch(url, {"employment_type": "contract"}, content_type="application/json")
    assert response.status_code == 400
    response = hr_client.patch(url, {"salary_min": 20000}, content_type="application/json")
    assert response.status_code == 400
    response = hr_client.patch(url, {"salary_min": 44000, "title": "Senior Python Developer"}, content_type="application/json")
    assert response.status_code == 200
    assert response.json()["job"]["title"] == "Senior Python Developer"


@pytest.mark.parametrize(
    "payload",
    [{"title": "", "location": "", "description": ""}, {"title": "   "}, {"work_type": ""}],
)
def test_update_cannot_blank_required_fields(hr_client, published_job, payload):
    response = hr_client.patch(f"/api/jobs/{published_job.id}/", payload, content_type="application/json")
    assert response.status_code == 400
    assert set(payload) <= set(response.json()["details"])
    published_job.refresh_from_db()
    assert published_job.title == "Python Developer"
    assert published_job.location == "Madrid"
    assert published_job.work_type == "remote"


def test_update_can_change_status(hr_client, published_job):
    response = hr_client.patch(
        f"/api/jobs/{published_job.id}/", {"status": "paused"}, content_type="application/json"
    )
    assert response.json()["job"]["status"] == "paused"


def test_delete_rules(hr_client, published_job, job_factory, candidate):
    assert hr_client.delete(f"/api/jobs/{published_job.id}/").status_code == 400

    closed = job_factory(status=Job.STATUS_CLOSED)
    JobApplication.objects.create(job=closed, candidate=candidate)
    assert hr_client.delete(f"/api/jobs/{closed.id}/").status_code == 400

    draft = job_factory(status=Job.STATUS_DRAFT)
    assert hr_client.delete(f"/api/jobs/{draft.id}/").status_code == 200
    assert not Job.objects.filter(id=draft.id).exists()


def test_duplicate_job(hr_client, published_job):
    response = post_json(hr_client, f"/api/jobs/{published_job.id}/duplicate/")
    assert response.status_code == 201
    copy = response.json()["job"]
    assert copy["title"] == "Python Developer (Copy)"
    assert copy["status"] == "draft"
    assert copy["id"] != published_job.id
    assert copy["published_at"] is None


def test_search_only_returns_open_jobs(job_factory):
    visible = job_factory()
    job_factory(status=Job.STATUS_DRAFT)
    job_factory(expires_at=timezone.now() - timedelta(days=1))
    results, _ = search_jobs({})
    assert results == [visible]


def test_search_filters_and_facets(job_factory):
    job_factory(title="Remote Python job", work_type="remote")
    onsite = job_factory(title="Onsite Python job", work_type="onsite", location="Bogotá")
    body = Client().get("/api/jobs/?work_type=onsite").json()
    assert [j["id"] for j in body["results"]] == [onsite.id]
    assert body["facets"]["work_type"] == {"onsite": 1}

    body = Client().get("/api/jobs/?location=bogot").json()
    assert [j["id"] for j in body["results"]] == [onsite.id]


def test_search_facets_follow_skills_filter(job_factory):
    job_factory(title="Remote Python job", work_type="remote")
    golang = job_factory(title="Onsite Go job", work_type="onsite", required_skills=["Go"])
    body = Client().get("/api/jobs/?skills=go").json()
    assert [j["id"] for j in body["results"]] == [golang.id]
    assert body["facets"]["work_type"] == {"onsite": 1}


def test_search_relevance_ranks_title_matches_first(job_factory):
    description_match = job_factory(
        title="Backend Engineer",
        description="Our backend is written in Go with some kotlin services, plenty of work for everyone.",
    )
    title_match = job_factory(title="Kotlin Developer", required_skills=["Kotlin"])
    results, _ = search_jobs({"q": "kotlin"})
    assert results == [title_match, description_match]


def test_search_sort_by_salary(job_factory):
    low = job_factory(salary_min=20000, salary_max=30000)
    high = job_factory(salary_min=80000, salary_max=120000)
    results, _ = search_jobs({"sort": "salary"})
    assert results == [high, low]


def test_search_rejects_bad_parameters(db):
    assert Client().get("/api/jobs/?sort=random").status_code == 400
    assert Client().get("/api/jobs/?posted_within=century").status_code == 400
    assert Client().get("/api/jobs/?salary_min=lots").status_code == 400


def test_job_detail_records_views(published_job, candidate_client):
    response = candidate_client.get(f"/api/jobs/{published_job.id}/")
    assert response.status_code == 200
    assert response.json()["job"]["view_count"] == 1
    assert JobView.objects.filter(job=published_job).count() == 1


def test_draft_is_hidden_from_others(job_factory, hr_client):
    draft = job_factory(status=Job.STATUS_DRAFT)
    assert Client().get(f"/api/jobs/{draft.id}/").status_code == 404
    assert hr_client.get(f"/api/jobs/{draft.id}/").status_code == 200
    draft.refresh_from_db()
    assert draft.view_count == 0


def test_hidden_salary(job_factory, hr_client):
    job = job_factory(show_salary=False)
    assert "salary_min" not in Client().get(f"/api/jobs/{job.id}/").json()["job"]
    assert hr_client.get(f"/api/jobs/{job.id}/").json()["job"]["salary_min"] == 40000


def test_featured_and_categories(job_factory, category):
    featured = job_factory(is_featured=True)
    job_factory()
    assert [j["id"] for j in Client().get("/api/jobs/featured/").json()["jobs"]] == [featured.id]
    assert Client().get("/api/jobs/categories/").json()["categories"][0]["name"] == category.name


def test_recommendations(candidate_client, candidate, cv, job_factory, complete_profile):
    python = job_factory(title="Python developer", required_skills=["Python", "Django"])
    chef = job_factory(
        title="Pastry chef",
        description="Bake croissants and baguettes every morning in our bakery downtown.",
        required_skills=["Baking"],
    )
    applied = job_factory(title="Django developer")
    JobApplication.objects.create(job=applied, candidate=candidate)

    jobs = candidate_client.get("/api/jobs/recommendations/").json()["jobs"]
    ids = [j["id"] for j in jobs]
    assert applied.id not in ids
    assert ids.index(python.id) < ids.index(chef.id)
    assert all(0 <= j["match_score"] <= 100 for j in jobs)


def test_my_jobs_and_analytics(hr_client, published_job, job_factory, candidate):
    job_factory(status=Job.STATUS_DRAFT)
    JobApplication.objects.create(job=published_job, candidate=candidate)
    Client().get(f"/api/jobs/{published_job.id}/")

    body = hr_client.get("/api/jobs/my-jobs/").json()
    assert body["pagination"]["total"] == 2
    assert body["stats"]["by_status"]["draft"] == 1
    assert body["stats"]["created_this_month"] == 2

    analytics = hr_client.get(f"/api/jobs/{published_job.id}/analytics/").json()["analytics"]
    assert analytics["views"] == 1
    assert analytics["applications"] == 1
    assert analytics["conversion_rate"] == 100.0


def test_expire_jobs_command(job_factory):
    stale = job_factory(expires_at=timezone.now() - timedelta(minutes=5))
    fresh = job_factory()
    out = StringIO()
    call_command("expire_jobs", stdout=out)
    assert "1 job(s) expired" in out.getvalue()
    stale.refresh_from_db()
    fresh.refresh_from_db()
    assert stale.status == Job.STATUS_EXPIRED
    assert fresh.status == Job.STATUS_PUBLISHED
