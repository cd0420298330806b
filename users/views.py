"""
JSON views for authentication and profiles.

The session keeps ``user_id`` and ``role`` exactly as the page based
login used to; the CSRF endpoint hands the token cookie to the browser
client before its first unsafe request.
"""

from __future__ import annotations

from django.http import JsonResponse
from django.views.decorators.csrf import ensure_csrf_cookie

from cvboard.http import api_view, int_param, paginate
from . import services
from .decorators import login_required, role_required
from .models import User


@ensure_csrf_cookie
@api_view(["GET"])
def csrf(request):
    return JsonResponse({"detail": "CSRF cookie set"})


@api_view(["POST"])
def register(request):
    user = services.register(request.json)
    services.start_session(request, user)
    return JsonResponse({"user": services.user_dict(user)}, status=201)


@api_view(["POST"])
def login(request):
    user = services.authenticate(request.json)
    services.start_session(request, user)
    return JsonResponse({"user": services.user_dict(user)})


@api_view(["POST"])
def logout(request):
    services.end_session(request)
    return JsonResponse({"detail": "Logged out"})


@api_view(["GET"])
@login_required
def me(request):
    user = request.app_user
    data = {"user": services.user_dict(user)}
    if user.is_candidate:
        data["profile"] = services.candidate_profile_dict(services.get_candidate_profile(user))
    elif user.is_hr:
        data["profile"] = services.hr_profile_dict(services.get_hr_profile(user))
    return JsonResponse(data)


@api_view(["POST"])
def forgot_password(request):
    services.forgot_password(request.json)
    return JsonResponse({"detail": "Password reset e-mail sent"})


@api_view(["POST"])
def reset_password(request):
    services.reset_password(request.json)
    return JsonResponse({"detail": "Password has been reset"})


@api_view(["GET", "POST"])
def verify_email(request, token: str):
    user = services.verify_email(token)
    return JsonResponse({"detail": "E-mail verified", "user": services.user_dict(user)})


# ----- Profiles -----


@api_view(["GET", "PUT", "PATCH"])
@role_required(User.ROLE_CANDIDATE)
def candidate_profile(request):
    if request.method == "GET":
        profile = services.get_candidate_profile(request.app_user)
    else:
        profile = services.update_candidate_profile(request.app_user, request.json)
    return JsonResponse({"profile": services.candidate_profile_dict(profile)})


@api_view(["PUT", "PATCH"])
@role_required(User.ROLE_CANDIDATE)
def candidate_privacy(request):
    profile = services.update_privacy_settings(request.app_user, request.json)
    return JsonResponse({"profile": services.candidate_profile_dict(profile)})


@api_view(["POST", "DELETE"])
@role_required(User.ROLE_CANDIDATE)
def candidate_avatar(request):
    profile = services.get_candidate_profile(request.app_user)
    if request.method == "DELETE":
        services.remove_avatar(profile)
    else:
        services.set_avatar(profile, request.FILES)
    return JsonResponse({"avatar": profile.avatar.url if profile.avatar else None})


@api_view(["GET", "PUT", "PATCH"])
@role_required(User.ROLE_HR)
def hr_profile(request):
    if request.method == "GET":
        profile = services.get_hr_profile(request.app_user)
    else:
        profile = services.update_hr_profile(request.app_user, request.json)
    return JsonResponse({"profile": services.hr_profile_dict(profile)})


@api_view(["POST", "DELETE"])
@role_required(User.ROLE_HR)
def hr_avatar(request):
    profile = services.get_hr_profile(request.app_user)
    if request.method == "DELETE":
        services.remove_avatar(profile)
    else:
        services.set_avatar(profile, request.FILES)
    return JsonResponse({"avatar": profile.avatar.url if profile.avatar else None})


@api_view(["GET"])
@login_required
def public_candidate_profile(request, profile_id: int):
    data = services.public_candidate_profile(profile_id, request.app_user, request)
    return JsonResponse({"profile": data})


@api_view(["GET"])
@role_required(User.ROLE_HR)
def search_candidates(request):
    skills = [s.strip() for s in request.GET.get("skills", "").split(",") if s.strip()]
    min_experience = request.GET.get("min_experience")
    profiles = services.search_candidates(
        request.app_user,
        skills=skills,
        location=request.GET.get("location"),
        min_experience=int_param(request, "min_experience", 0, minimum=0) if min_experience else None,
    )
    page = paginate(
        profiles,
        int_param(request, "page", 1),
        int_param(request, "limit", 20, maximum=100),
        services.candidate_public_dict,
    )
    return JsonResponse(page)
