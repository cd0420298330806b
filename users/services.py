"""
Account and profile services.

Views stay thin: they bind payloads to forms and call into these
functions, which raise Django exceptions (or ``Conflict``) on failure.
Password hashing and checking go through Django's hashers, as the
original session-based login did.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Any, Dict, Iterable, Optional

from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password
from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from cvboard.forms import apply_changes
from cvboard.http import AuthenticationRequired, Conflict, form_error
from .forms import (
    AvatarForm,
    CandidateProfileForm,
    ForgotPasswordForm,
    HrProfileForm,
    LoginForm,
    PrivacySettingsForm,
    ResetPasswordForm,
    SignupForm,
)
from .models import CandidateProfile, HrProfile, ProfileView, User

logger = logging.getLogger(__name__)

RESET_TOKEN_LIFETIME = timedelta(hours=1)
MIN_PROFILE_COMPLETENESS = 60

COMPLETENESS_FIELDS = (
    "first_name",
    "last_name",
    "title",
    "bio",
    "location",
    "phone",
    "skills",
    "linkedin_url",
    "expected_salary",
)


def _new_token() -> str:
    return secrets.token_urlsafe(32)


def start_session(request, user: User) -> None:
    """Store the user in the session and stamp the login time."""
    request.session.cycle_key()
    request.session["user_id"] = user.id
    request.session["role"] = user.role
    user.last_login = timezone.now()
    user.save(update_fields=["last_login", "updated_at"])


def end_session(request) -> None:
    request.session.flush()


@transaction.atomic
def register(payload: Dict[str, Any]) -> User:
    """Create a user and the empty profile matching its role."""
    email = str(payload.get("email", "")).strip().lower()
    username = str(payload.get("username", "")).strip()
    if email and User.objects.filter(email__iexact=email).exists():
        raise Conflict("User with this email already exists")
    if username and User.objects.filter(username=username).exists():
        raise Conflict("Username already taken")

    form = SignupForm(payload)
    if not form.is_valid():
        raise form_error(form)
    user = form.save(commit=False)
    user.verification_token = _new_token()
    user.save()

    if user.is_hr:
        HrProfile.objects.create(user=user, first_name=user.first_name, last_name=user.last_name)
    else:
        CandidateProfile.objects.create(user=user, first_name=user.first_name, last_name=user.last_name)

    link = f"{settings.PUBLIC_BASE_URL}/api/auth/verify-email/{user.verification_token}/"
    send_mail(
        "Verify your CV Board account",
        f"Hello {user.full_name},\n\nConfirm your e-mail address by opening {link}",
        settings.DEFAULT_FROM_EMAIL,
        [user.email],
    )
    logger.info("Registered %s user %s", user.role, user.username)
    return user


def authenticate(payload: Dict[str, Any]) -> User:
    """Check e-mail and password; the error message never tells which one failed."""
    form = LoginForm(payload)
    if not form.is_valid():
        raise form_error(form)
    email = form.cleaned_data["email"].strip().lower()
    try:
        user = User.objects.get(email__iexact=email)
    except User.DoesNotExist:
        raise AuthenticationRequired("Invalid email or password")
    if not check_password(form.cleaned_data["password"], user.password):
        raise AuthenticationRequired("Invalid email or password")
    if not user.is_active:
        raise PermissionDenied("This account has been deactivated")
    return user


def forgot_password(payload: Dict[str, Any]) -> User:
    form = ForgotPasswordForm(payload)
    if not form.is_valid():
        raise form_error(form)
    try:
        user = User.objects.get(email__iexact=form.cleaned_data["email"])
    except User.DoesNotExist:
        raise ObjectDoesNotExist("User with this email does not exist")
    user.reset_password_token = _new_token()
    user.reset_password_expires = timezone.now() + RESET_TOKEN_LIFETIME
    user.save(update_fields=["reset_password_token", "reset_password_expires", "updated_at"])
    link = f"{settings.PUBLIC_BASE_URL}/reset-password?token={user.reset_password_token}"
    send_mail(
        "Reset your CV Board password",
        f"Use this link within one hour to choose a new password: {link}",
        settings.DEFAULT_FROM_EMAIL,
        [user.email],
    )
    logger.info("Password reset requested for %s", user.username)
    return user


def reset_password(payload: Dict[str, Any]) -> User:
    form = ResetPasswordForm(payload)
    if not form.is_valid():
        raise form_error(form)
    user = User.objects.filter(
        reset_password_token=form.cleaned_data["token"],
        reset_password_expires__gt=timezone.now(),
    ).first()
    if user is None:
        raise ValidationError("Invalid or expired reset token")
    user.password = make_password(form.cleaned_data["password"])
    user.reset_password_token = None
    user.reset_password_expires = None
    user.save()
    logger.info("Password reset for %s", user.username)
    return user


def verify_email(token: str) -> User:
    user = User.objects.filter(verification_token=token).first() if token else None
    if user is None:
        raise ValidationError("Invalid verification token")
    user.is_verified = True
    user.verification_token = None
    user.save(update_fields=["is_verified", "verification_token", "updated_at"])
    return user


# ----- Profiles -----


def get_candidate_profile(user: User) -> CandidateProfile:
    if not user.is_candidate:
        raise PermissionDenied("Only candidates have a candidate profile")
    profile, _ = CandidateProfile.objects.get_or_create(
        user=user, defaults={"first_name": user.first_name, "last_name": user.last_name}
    )
    return profile


def get_hr_profile(user: User) -> HrProfile:
    if not user.is_hr:
        raise PermissionDenied("Only HR users have an HR profile")
    profile, _ = HrProfile.objects.get_or_create(
        user=user, defaults={"first_name": user.first_name, "last_name": user.last_name}
    )
    return profile


def update_candidate_profile(user: User, payload: Dict[str, Any]) -> CandidateProfile:
    profile = get_candidate_profile(user)
    form = CandidateProfileForm(payload)
    if not form.is_valid():
        raise form_error(form)
    apply_changes(profile, form.changed_data_from_payload())
    profile.last_active_at = timezone.now()
    profile.save()
    logger.info("Candidate profile %s updated", profile.id)
    return profile


def update_privacy_settings(user: User, payload: Dict[str, Any]) -> CandidateProfile:
    profile = get_candidate_profile(user)
    form = PrivacySettingsForm(payload)
    if not form.is_valid():
        raise form_error(form)
    apply_changes(profile, form.changed_data_from_payload())
    profile.save()
    return profile


def update_hr_profile(user: User, payload: Dict[str, Any]) -> HrProfile:
    profile = get_hr_profile(user)
    form = HrProfileForm(payload)
    if not form.is_valid():
        raise form_error(form)
    apply_changes(profile, form.changed_data_from_payload())
    profile.last_active_at = timezone.now()
    profile.save()
    logger.info("HR profile %s updated", profile.id)
    return profile


def set_avatar(profile, files) -> None:
    form = AvatarForm(data={}, files=files)
    if not form.is_valid():
        raise form_error(form)
    if profile.avatar:
        profile.avatar.delete(save=False)
    profile.avatar = form.cleaned_data["avatar"]
    profile.save()


def remove_avatar(profile) -> None:
    if not profile.avatar:
        raise ObjectDoesNotExist("No avatar to delete")
    profile.avatar.delete(save=False)
    profile.avatar = None
    profile.save()


def profile_completeness(profile: CandidateProfile) -> int:
    """Percentage of the key profile fields that are filled in."""
    completed = 0
    for name in COMPLETENESS_FIELDS:
        value = getattr(profile, name)
        if value is None:
            continue
        if isinstance(value, (list, dict)):
            completed += bool(value)
        elif str(value).strip():
            completed += 1
    return round(completed / len(COMPLETENESS_FIELDS) * 100)


def public_candidate_profile(profile_id: int, viewer: User, request=None) -> Dict[str, Any]:
    """Return what ``viewer`` may see of a candidate profile.

    Private profiles are visible to their owner only; ``hr_only``
    profiles to HR users and the owner.  Visits by other users are
    recorded.
    """
    profile = CandidateProfile.objects.select_related("user").get(id=profile_id)
    is_owner = profile.user_id == viewer.id
    if not is_owner:
        if profile.profile_visibility == "private":
            raise PermissionDenied("This profile is private")
        if profile.profile_visibility == "hr_only" and not viewer.is_hr:
            raise PermissionDenied("This profile is only visible to recruiters")

    data = candidate_public_dict(profile, include_private=is_owner)
    if not is_owner:
        ProfileView.objects.create(
            profile=profile,
            viewer=viewer,
            viewer_type=viewer.role,
            ip_address=request.META.get("REMOTE_ADDR") if request else None,
            user_agent=(request.META.get("HTTP_USER_AGENT", "") if request else "")[:255],
        )
        CandidateProfile.objects.filter(id=profile.id).update(
            profile_views_count=F("profile_views_count") + 1
        )
    return data


def search_candidates(
    viewer: User,
    skills: Iterable[str] = (),
    location: Optional[str] = None,
    min_experience: Optional[int] = None,
):
    """Candidate profiles an HR user may browse, most experienced first."""
    hr_profile = get_hr_profile(viewer)
    if not hr_profile.can_view_candidates:
        raise PermissionDenied("Your account cannot browse candidates")
    profiles = CandidateProfile.objects.select_related("user").filter(
        profile_visibility__in=("public", "hr_only"), user__is_active=True
    )
    if location:
        profiles = profiles.filter(location__icontains=location)
    if min_experience is not None:
        profiles = profiles.filter(years_of_experience__gte=min_experience)
    wanted = {skill.lower() for skill in skills if skill}
    profiles = profiles.order_by("-years_of_experience", "id")
    if not wanted:
        return list(profiles)
    # Skills live in a JSON list; match case-insensitively in Python.
    return [p for p in profiles if wanted & {str(s).lower() for s in p.skills}]


# ----- Serialization -----


def user_dict(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role,
        "is_verified": user.is_verified,
        "last_login": user.last_login,
        "created_at": user.created_at,
    }


def _avatar_url(profile) -> Optional[str]:
    return profile.avatar.url if profile.avatar else None


def candidate_profile_dict(profile: CandidateProfile) -> Dict[str, Any]:
    data = {
        field.name: getattr(profile, field.name)
        for field in profile._meta.concrete_fields
        if field.name not in ("user", "avatar")
    }
    data["user_id"] = profile.user_id
    data["avatar"] = _avatar_url(profile)
    data["completeness"] = profile_completeness(profile)
    return data


def candidate_public_dict(profile: CandidateProfile, include_private: bool = False) -> Dict[str, Any]:
    data = {
        "id": profile.id,
        "first_name": profile.first_name,
        "last_name": profile.last_name,
        "title": profile.title,
        "bio": profile.bio,
        "location": profile.location,
        "avatar": _avatar_url(profile),
        "skills": profile.skills,
        "languages": profile.languages,
        "years_of_experience": profile.years_of_experience,
        "linkedin_url": profile.linkedin_url,
        "github_url": profile.github_url,
        "portfolio_url": profile.portfolio_url,
        "work_preferences": profile.work_preferences,
        "allow_hr_contact": profile.allow_hr_contact,
    }
    if include_private or profile.show_email:
        data["email"] = profile.user.email
    if include_private or profile.show_phone:
        data["phone"] = profile.phone
    if include_private or profile.show_salary:
        data["expected_salary"] = profile.expected_salary
    return data


def hr_profile_dict(profile: HrProfile) -> Dict[str, Any]:
    data = {
        field.name: getattr(profile, field.name)
        for field in profile._meta.concrete_fields
        if field.name not in ("user", "avatar")
    }
    data["user_id"] = profile.user_id
    data["avatar"] = _avatar_url(profile)
    return data
