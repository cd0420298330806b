"""Tests for saved jobs and job alerts."""

import csv
import io
import json
from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from jobs.alerts import is_due, matching_jobs, process_alerts
from jobs.models import Job, JobAlert, SavedJob
from notifications.models import Notification

from .conftest import login


def test_save_and_unsave(candidate_client, published_job):
    url = f"/api/jobs/{published_job.id}/save/"
    response = candidate_client.post(url, {"notes": "Looks great"}, content_type="application/json")
    assert response.status_code == 201
    assert response.json()["saved_job"]["notes"] == "Looks great"
    assert candidate_client.post(url).status_code == 409

    assert candidate_client.delete(url).status_code == 200
    assert candidate_client.delete(url).status_code == 404


@pytest.mark.parametrize("notes", ["x" * 1001, ["not", "text"]])
def test_save_validates_notes(candidate_client, candidate, published_job, notes):
    url = f"/api/jobs/{published_job.id}/save/"
    response = candidate_client.post(url, {"notes": notes}, content_type="application/json")
    assert response.status_code == 400
    assert "notes" in response.json()["details"]
    assert not SavedJob.objects.filter(candidate=candidate).exists()


def test_cannot_save_unpublished_job(candidate_client, job_factory):
    draft = job_factory(status=Job.STATUS_DRAFT)
    assert candidate_client.post(f"/api/jobs/{draft.id}/save/").status_code == 404


def test_update_saved_job_notes(candidate_client, candidate, published_job):
    SavedJob.objects.create(candidate=candidate, job=published_job)
    response = candidate_client.patch(
        f"/api/jobs/{published_job.id}/save/notes/", {"notes": "Apply before Friday"}, content_type="application/json"
    )
    assert response.status_code == 200
    assert SavedJob.objects.get(candidate=candidate).notes == "Apply before Friday"


def test_saved_jobs_list_and_export(candidate_client, candidate, published_job, job_factory):
    SavedJob.objects.create(candidate=candidate, job=published_job, notes="first")
    SavedJob.objects.create(candidate=candidate, job=job_factory(title="Data Engineer"))

    body = candidate_client.get("/api/jobs/saved/").json()
    assert body["pagination"]["total"] == 2

    response = candidate_client.get("/api/jobs/saved/export/?format=csv")
    assert response["Content-Disposition"] == "attachment; filename=saved-jobs.csv"
    rows = list(csv.DictReader(io.StringIO(response.content.decode("utf-8"))))
    assert {row["title"] for row in rows} == {"Python Developer", "Data Engineer"}

    rows = json.loads(candidate_client.get("/api/jobs/saved/export/?format=json").content)
    assert len(rows) == 2
    assert candidate_client.get("/api/jobs/saved/export/?format=xml").status_code == 400


def test_saved_jobs_insights(candidate_client, candidate, job_factory):
    SavedJob.objects.create(candidate=candidate, job=job_factory(status=Job.STATUS_CLOSED))
    SavedJob.objects.create(
        candidate=candidate, job=job_factory(application_deadline=timezone.now() + timedelta(days=3))
    )
    insights = candidate_client.get("/api/jobs/saved/insights/").json()["insights"]
    assert insights["total"] == 2
    assert insights["expired"] == 1
    assert insights["closing_soon"] == 1
    assert insights["top_category"] == "Engineering"


def test_hr_has_no_saved_jobs(hr_client):
    assert hr_client.get("/api/jobs/saved/").status_code == 403


# ----- Alerts -----


def create_alert(client, **payload):
    return client.post("/api/job-alerts/", payload, content_type="application/json")


def test_create_alert_defaults(candidate_client):
    response = create_alert(candidate_client, keywords="python", location="Madrid")
    assert response.status_code == 201
    alert = response.json()["alert"]
    assert alert["frequency"] == "daily"
    assert alert["is_active"] is True


def test_alert_needs_keywords_or_skills(candidate_client):
    assert create_alert(candidate_client, location="Madrid").status_code == 400


def test_duplicate_alert_conflicts(candidate_client):
    assert create_alert(candidate_client, keywords="python", location="Madrid").status_code == 201
    assert create_alert(candidate_client, keywords="python", location="Madrid").status_code == 409


def test_alert_crud(candidate_client, other_candidate):
    alert_id = create_alert(candidate_client, keywords="python").json()["alert"]["id"]
    url = f"/api/job-alerts/{alert_id}/"

    response = candidate_client.patch(url, {"frequency": "weekly", "skills": ["Django"]}, content_type="application/json")
    assert response.json()["alert"]["frequency"] == "weekly"
    assert response.json()["alert"]["skills"] == ["Django"]

    toggled = candidate_client.post(f"/api/job-alerts/{alert_id}/toggle/").json()["alert"]
    assert toggled["is_active"] is False

    assert login(other_candidate).get(url).status_code == 404
    assert candidate_client.delete(url).status_code == 200
    assert not JobAlert.objects.filter(id=alert_id).exists()


def test_matching_jobs(candidate, job_factory):
    match = job_factory(title="Senior Python Developer", salary_max=90000)
    job_factory(title="Java Developer", description="Spring Boot services for the payments team, on call rotation.")
    job_factory(title="Old Python job", published_at=timezone.now() - timedelta(days=10))
    alert = JobAlert.objects.create(candidate=candidate, keywords="python", salary_min=80000)
    assert matching_jobs(alert) == [match]


def test_alert_jobs_endpoint(candidate_client, candidate, published_job):
    alert = JobAlert.objects.create(candidate=candidate, skills=["django"])
    body = candidate_client.get(f"/api/job-alerts/{alert.id}/jobs/").json()
    assert [j["id"] for j in body["results"]] == [published_job.id]


@pytest.mark.parametrize(
    "frequency, hours_ago, due",
    [("immediate", 0, True), ("daily", 2, False), ("daily", 25, True), ("weekly", 24 * 6, False)],
)
def test_is_due(candidate, frequency, hours_ago, due):
    now = timezone.now()
    alert = JobAlert(candidate=candidate, frequency=frequency, last_sent_at=now - timedelta(hours=hours_ago))
    assert is_due(alert, now) is due


def test_process_alerts_notifies_once(candidate, published_job):
    alert = JobAlert.objects.create(candidate=candidate, keywords="python", frequency="immediate")
    assert process_alerts() == 1
    notification = Notification.objects.get(user=candidate, kind="job_alert")
    assert published_job.title in notification.message
    assert notification.link == f"/api/job-alerts/{alert.id}/jobs/"

    # Nothing new was published since the last run.
    assert process_alerts() == 0


def test_process_alerts_respects_preferences(candidate, published_job):
    profile = candidate.candidate_profile
    profile.job_alerts = False
    profile.save()
    JobAlert.objects.create(candidate=candidate, keywords="python")
    JobAlert.objects.create(candidate=candidate, keywords="django", is_active=False)
    assert process_alerts() == 0


def test_process_job_alerts_command(candidate, published_job):
    JobAlert.objects.create(candidate=candidate, keywords="python")
    out = StringIO()
    call_command("process_job_alerts", stdout=out)
    assert "1 alert notification(s) sent" in out.getvalue()
