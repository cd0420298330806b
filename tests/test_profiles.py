"""Tests for candidate and HR profiles, privacy and candidate search."""

from io import BytesIO

from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image

from users.models import ProfileView
from users.services import profile_completeness

from .conftest import login, make_user


def test_candidate_profile_partial_update(candidate_client, candidate):
    response = candidate_client.patch(
        "/api/profiles/candidate/",
        {"title": "Data engineer", "skills": ["Python", " SQL "], "work_preferences": {"remote": True}},
        content_type="application/json",
    )
    assert response.status_code == 200
    profile = response.json()["profile"]
    assert profile["title"] == "Data engineer"
    assert profile["skills"] == ["Python", "SQL"]
    assert profile["first_name"] == candidate.first_name


def test_candidate_profile_rejects_unknown_preferences(candidate_client):
    response = candidate_client.patch(
        "/api/profiles/candidate/", {"work_preferences": {"teleport": True}}, content_type="application/json"
    )
    assert response.status_code == 400
    assert "work_preferences" in response.json()["details"]


def test_hr_cannot_use_candidate_profile(hr_client):
    assert hr_client.get("/api/profiles/candidate/").status_code == 403


def test_hr_profile_update(hr_client):
    response = hr_client.put(
        "/api/profiles/hr/",
        {"company_name": "Globex", "company_size": "large", "working_hours": {"start": "09:00"}},
        content_type="application/json",
    )
    assert response.status_code == 200
    assert response.json()["profile"]["company_name"] == "Globex"


def test_profile_completeness(complete_profile):
    assert profile_completeness(complete_profile) == 100
    complete_profile.skills = []
    complete_profile.phone = ""
    assert profile_completeness(complete_profile) == 78


def test_private_profile_is_hidden(candidate, other_candidate):
    client = login(other_candidate)
    profile_id = candidate.candidate_profile.id
    assert client.get(f"/api/profiles/candidate/{profile_id}/public/").status_code == 403


def test_hr_only_profile_visible_to_recruiters(candidate, other_candidate, hr_user):
    profile = candidate.candidate_profile
    profile.profile_visibility = "hr_only"
    profile.phone = "12345"
    profile.save()
    url = f"/api/profiles/candidate/{profile.id}/public/"

    assert login(other_candidate).get(url).status_code == 403
    response = login(hr_user).get(url)
    assert response.status_code == 200
    data = response.json()["profile"]
    assert "phone" not in data
    assert "email" not in data
    profile.refresh_from_db()
    assert profile.profile_views_count == 1
    assert ProfileView.objects.filter(profile=profile, viewer=hr_user).exists()


def test_owner_sees_private_fields_without_counting_a_view(candidate, candidate_client):
    profile = candidate.candidate_profile
    response = candidate_client.get(f"/api/profiles/candidate/{profile.id}/public/")
    assert response.status_code == 200
    assert response.json()["profile"]["email"] == candidate.email
    profile.refresh_from_db()
    assert profile.profile_views_count == 0


def test_privacy_settings(candidate_client, candidate):
    response = candidate_client.patch(
        "/api/profiles/candidate/privacy/",
        {"profile_visibility": "public", "show_email": True},
        content_type="application/json",
    )
    assert response.status_code == 200
    profile = candidate.candidate_profile
    profile.refresh_from_db()
    assert profile.profile_visibility == "public"
    assert profile.show_email is True


def test_search_candidates(hr_client, candidate, other_candidate):
    visible = candidate.candidate_profile
    visible.profile_visibility = "public"
    visible.skills = ["Python", "Django"]
    visible.years_of_experience = 5
    visible.save()
    hidden = other_candidate.candidate_profile
    hidden.skills = ["Python"]
    hidden.save()

    body = hr_client.get("/api/profiles/search/candidates/?skills=python").json()
    assert [p["id"] for p in body["results"]] == [visible.id]
    assert body["pagination"]["total"] == 1

    body = hr_client.get("/api/profiles/search/candidates/?min_experience=10").json()
    assert body["results"] == []


def test_candidates_cannot_search(candidate_client):
    assert candidate_client.get("/api/profiles/search/candidates/").status_code == 403


def _png():
    buffer = BytesIO()
    Image.new("RGB", (4, 4), "red").save(buffer, format="PNG")
    return SimpleUploadedFile("me.png", buffer.getvalue(), content_type="image/png")


def test_avatar_upload_and_delete(candidate_client, candidate):
    response = candidate_client.post("/api/profiles/candidate/avatar/", {"avatar": _png()})
    assert response.status_code == 200
    assert response.json()["avatar"].startswith("/media/avatars/candidates/")

    assert candidate_client.delete("/api/profiles/candidate/avatar/").status_code == 200
    assert candidate_client.delete("/api/profiles/candidate/avatar/").status_code == 404


def test_avatar_rejects_non_images(hr_user):
    client = login(hr_user)
    upload = SimpleUploadedFile("notes.txt", b"hello", content_type="text/plain")
    assert client.post("/api/profiles/hr/avatar/", {"avatar": upload}).status_code == 400


def test_new_account_starts_with_empty_profile(db):
    user = make_user("fresh")
    assert profile_completeness(user.candidate_profile) == 22
