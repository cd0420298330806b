"""Tests for applying to jobs, the candidate dashboard and HR review."""

from datetime import timedelta

import pytest
from django.utils import timezone

from applications.models import JobApplication
from cvs.models import CV
from jobs.models import Job
from notifications.models import Notification

from .conftest import login, make_user

COVER_LETTER = "I have four years of experience building Django APIs and would love to join your team."


def apply(client, job, **payload):
    return client.post(f"/api/jobs/{job.id}/apply/", payload, content_type="application/json")


@pytest.fixture
def ready_candidate(candidate, complete_profile, cv):
    return candidate


def test_apply_to_job(candidate_client, ready_candidate, cv, published_job, hr_user):
    response = apply(candidate_client, published_job, cv_id=cv.id, cover_letter=COVER_LETTER)
    assert response.status_code == 201
    application = response.json()["application"]
    assert application["status"] == "pending"
    assert 0 < application["ai_score"] <= 100
    assert "hr_notes" not in application

    stored = JobApplication.objects.get(id=application["id"])
    assert stored.ai_analysis["matched_skills"] == ["Python", "Django"]
    published_job.refresh_from_db()
    assert published_job.application_count == 1
    assert Notification.objects.filter(user=hr_user, kind="new_application").count() == 1


def test_apply_twice_conflicts(candidate_client, ready_candidate, cv, published_job):
    assert apply(candidate_client, published_job, cv_id=cv.id).status_code == 201
    assert apply(candidate_client, published_job, cv_id=cv.id).status_code == 409


def test_apply_requires_complete_profile(candidate_client, cv, published_job):
    response = apply(candidate_client, published_job, cv_id=cv.id)
    assert response.status_code == 400
    assert "60%" in response.json()["details"]["non_field_errors"][0]


def test_apply_requires_experience(candidate_client, ready_candidate, job_factory):
    job = job_factory(required_experience_years=10)
    assert apply(candidate_client, job).status_code == 400


@pytest.mark.parametrize("overrides", [{"status": Job.STATUS_CLOSED}, {"status": Job.STATUS_DRAFT}])
def test_apply_to_closed_job(candidate_client, ready_candidate, job_factory, overrides):
    job = job_factory(**overrides)
    assert apply(candidate_client, job).status_code == 400


def test_apply_after_deadline(candidate_client, ready_candidate, job_factory):
    job = job_factory(application_deadline=timezone.now() - timedelta(hours=1))
    assert apply(candidate_client, job).status_code == 400


def test_apply_with_foreign_cv(candidate_client, ready_candidate, other_candidate, published_job):
    foreign = CV.objects.create(owner=other_candidate, title="Bob's CV")
    assert apply(candidate_client, published_job, cv_id=foreign.id).status_code == 403


def test_cover_letter_length(candidate_client, ready_candidate, published_job):
    response = apply(candidate_client, published_job, cover_letter="Hire me")
    assert response.status_code == 400
    assert "cover_letter" in response.json()["details"]


def test_hr_cannot_apply(hr_client, published_job):
    assert apply(hr_client, published_job).status_code == 403


def test_my_applications_with_stats(candidate_client, candidate, published_job, job_factory):
    JobApplication.objects.create(job=published_job, candidate=candidate)
    other = job_factory(title="Go Developer", company_name="Globex")
    JobApplication.objects.create(job=other, candidate=candidate, status=JobApplication.STATUS_REVIEWING)

    body = candidate_client.get("/api/applications/").json()
    assert body["pagination"]["total"] == 2
    assert body["stats"]["by_status"]["pending"] == 1
    assert body["stats"]["response_rate"] == 50.0

    body = candidate_client.get("/api/applications/?search=globex").json()
    assert [a["job"]["title"] for a in body["results"]] == ["Go Developer"]
    body = candidate_client.get("/api/applications/?status=pending").json()
    assert [a["job"]["id"] for a in body["results"]] == [published_job.id]


def test_application_detail_timeline(candidate_client, candidate, other_candidate, published_job):
    application = JobApplication.objects.create(
        job=published_job,
        candidate=candidate,
        status=JobApplication.STATUS_INTERVIEWED,
        status_changed_at=timezone.now() + timedelta(days=1),
        interview_scheduled_at=timezone.now() + timedelta(hours=2),
    )
    body = candidate_client.get(f"/api/applications/{application.id}/").json()
    assert [e["event"] for e in body["timeline"]] == ["applied", "interview_scheduled", "status_changed"]
    assert login(other_candidate).get(f"/api/applications/{application.id}/").status_code == 403


def test_withdraw(candidate_client, candidate, published_job, hr_user):
    application = JobApplication.objects.create(job=published_job, candidate=candidate)
    response = candidate_client.post(f"/api/applications/{application.id}/withdraw/")
    assert response.status_code == 200
    assert response.json()["application"]["status"] == "withdrawn"
    assert response.json()["application"]["withdrawn_at"] is not None
    assert Notification.objects.filter(user=hr_user, kind="application_withdrawn").exists()
    assert candidate_client.post(f"/api/applications/{application.id}/withdraw/").status_code == 400


def test_bulk_withdraw(candidate_client, candidate, published_job, job_factory):
    pending = JobApplication.objects.create(job=published_job, candidate=candidate)
    hired = JobApplication.objects.create(
        job=job_factory(), candidate=candidate, status=JobApplication.STATUS_HIRED
    )
    response = candidate_client.post(
        "/api/applications/bulk/withdraw/",
        {"application_ids": [pending.id, hired.id, 999999]},
        content_type="application/json",
    )
    body = response.json()
    assert body["withdrawn"] == [pending.id]
    assert {item["id"] for item in body["failed"]} == {hired.id, 999999}


def test_bulk_withdraw_validation(candidate_client):
    response = candidate_client.post(
        "/api/applications/bulk/withdraw/", {"application_ids": list(range(1, 60))}, content_type="application/json"
    )
    assert response.status_code == 400


def test_application_analytics(candidate_client, candidate, published_job, job_factory):
    JobApplication.objects.create(job=published_job, candidate=candidate)
    hired = JobApplication.objects.create(job=job_factory(), candidate=candidate, status=JobApplication.STATUS_HIRED)
    JobApplication.objects.filter(id=hired.id).update(status_changed_at=hired.applied_at + timedelta(days=2))

    analytics = candidate_client.get("/api/applications/analytics/").json()["analytics"]
    assert analytics["total"] == 2
    assert analytics["success_rate"] == 50.0
    assert analytics["average_response_days"] == 2.0
    assert analytics["top_companies"] == [{"company": "Acme Corp", "count": 2}]
    assert sum(month["count"] for month in analytics["per_month"]) == 2
    assert "Employers respond in 2.0 days on average." in analytics["insights"]


def test_hr_lists_applications_by_score(hr_client, published_job, candidate, other_candidate):
    third = make_user("carol")
    low = JobApplication.objects.create(job=published_job, candidate=candidate, ai_score=10)
    high = JobApplication.objects.create(job=published_job, candidate=other_candidate, ai_score=80)
    unscored = JobApplication.objects.create(job=published_job, candidate=third)

    body = hr_client.get(f"/api/jobs/{published_job.id}/applications/").json()
    assert [a["id"] for a in body["results"]] == [high.id, low.id, unscored.id]
    assert body["results"][0]["candidate"]["email"] == other_candidate.email
    assert body["counts"] == {"pending": 3}


def test_other_hr_cannot_list_applications(published_job, other_hr):
    assert login(other_hr).get(f"/api/jobs/{published_job.id}/applications/").status_code == 403


def test_update_status_notifies_candidate(hr_client, published_job, candidate):
    application = JobApplication.objects.create(job=published_job, candidate=candidate)
    url = f"/api/jobs/{published_job.id}/applications/{application.id}/status/"
    response = hr_client.patch(url, {"status": "shortlisted", "hr_rating": 4}, content_type="application/json")
    assert response.status_code == 200
    application.refresh_from_db()
    assert application.status == JobApplication.STATUS_SHORTLISTED
    assert application.hr_rating == 4
    assert application.status_changed_at is not None
    notification = Notification.objects.get(user=candidate, kind="application_status")
    assert "shortlisted" in notification.message


def test_schedule_interview(hr_client, published_job, candidate):
    application = JobApplication.objects.create(job=published_job, candidate=candidate)
    url = f"/api/jobs/{published_job.id}/applications/{application.id}/status/"
    response = hr_client.patch(
        url,
        {"interview_scheduled_at": "2030-01-15T10:00:00Z", "interview_type": "video"},
        content_type="application/json",
    )
    assert response.status_code == 200
    assert Notification.objects.filter(user=candidate, kind="interview_scheduled").exists()


@pytest.mark.parametrize("payload", [{}, {"status": "withdrawn"}, {"hr_rating": 9}])
def test_update_status_validation(hr_client, published_job, candidate, payload):
    application = JobApplication.objects.create(job=published_job, candidate=candidate)
    url = f"/api/jobs/{published_job.id}/applications/{application.id}/status/"
    assert hr_client.patch(url, payload, content_type="application/json").status_code == 400


def test_cannot_review_withdrawn_application(hr_client, published_job, candidate):
    application = JobApplication.objects.create(
        job=published_job, candidate=candidate, status=JobApplication.STATUS_WITHDRAWN
    )
    url = f"/api/jobs/{published_job.id}/applications/{application.id}/status/"
    response = hr_client.patch(url, {"status": "reviewing"}, content_type="application/json")
    assert response.status_code == 400
