"""Shared fixtures: users of each role, logged-in clients and job factories."""

from datetime import timedelta

import pytest
from django.contrib.auth.hashers import make_password
from django.test import Client
from django.utils import timezone

from cvs.document import default_document
from cvs.models import CV
from jobs.models import Job, JobCategory
from users.models import CandidateProfile, HrProfile, User

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def fast_settings(settings, tmp_path):
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
    settings.MEDIA_ROOT = str(tmp_path / "media")
    settings.OPENAI_API_KEY = ""
    settings.NOTIFICATION_EMAILS = False
    settings.PUBLIC_BASE_URL = "http://testserver"


def make_user(username, role=User.ROLE_CANDIDATE, **extra):
    user = User.objects.create(
        username=username,
        email=f"{username}@example.com",
        password=make_password(PASSWORD),
        role=role,
        first_name=extra.pop("first_name", username.title()),
        last_name=extra.pop("last_name", "Tester"),
        **extra,
    )
    if role == User.ROLE_HR:
        HrProfile.objects.create(user=user, company_name="Acme Corp")
    elif role == User.ROLE_CANDIDATE:
        CandidateProfile.objects.create(user=user, first_name=user.first_name, last_name=user.last_name)
    return user


def login(user):
    client = Client()
    response = client.post(
        "/api/auth/login/",
        {"email": user.email, "password": PASSWORD},
        content_type="application/json",
    )
    assert response.status_code == 200, response.content
    return client


@pytest.fixture
def candidate(db):
    return make_user("alice")


@pytest.fixture
def other_candidate(db):
    return make_user("bob")


@pytest.fixture
def hr_user(db):
    return make_user("hannah", role=User.ROLE_HR)


@pytest.fixture
def other_hr(db):
    return make_user("oscar", role=User.ROLE_HR)


@pytest.fixture
def candidate_client(candidate):
    return login(candidate)


@pytest.fixture
def hr_client(hr_user):
    return login(hr_user)


@pytest.fixture
def complete_profile(candidate):
    """Fill in every field that counts towards profile completeness."""
    profile = candidate.candidate_profile
    profile.title = "Backend developer"
    profile.bio = "Python developer who enjoys building APIs."
    profile.location = "Madrid"
    profile.phone = "+34 600 000 000"
    profile.skills = ["Python", "Django", "PostgreSQL"]
    profile.linkedin_url = "https://linkedin.com/in/alice"
    profile.expected_salary = 50000
    profile.years_of_experience = 4
    profile.save()
    return profile


@pytest.fixture
def category(db):
    return JobCategory.objects.create(name="Engineering")


@pytest.fixture
def job_factory(hr_user, category):
    def create(**overrides):
        now = timezone.now()
        values = {
            "posted_by": hr_user,
            "title": "Python Developer",
            "description": "We are looking for a Python developer to build REST APIs with Django.",
            "company_name": "Acme Corp",
            "location": "Madrid",
            "work_type": "remote",
            "employment_type": "full-time",
            "experience_level": "mid",
            "category": category,
            "salary_min": 40000,
            "salary_max": 60000,
            "required_skills": ["Python", "Django"],
            "status": Job.STATUS_PUBLISHED,
            "published_at": now,
            "expires_at": now + timedelta(days=30),
        }
        values.update(overrides)
        return Job.objects.create(**values)

    return create


@pytest.fixture
def published_job(job_factory):
    return job_factory()


@pytest.fixture
def cv(candidate):
    data = default_document()
    data["personal_info"]["full_name"] = "Alice Tester"
    data["personal_info"]["email"] = "alice@example.com"
    for section in data["sections"]:
        if section["id"] == "skills":
            section["entries"] = [{"name": "Python"}, {"name": "Django"}]
        if section["id"] == "experience":
            section["entries"] = [{"company": "Initech", "role": "Python developer", "years": "2019-2024"}]
    return CV.objects.create(owner=candidate, title="Main CV", data=data)
