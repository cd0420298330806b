"""
JSON views for job postings, saved jobs and job alerts.

Discovery endpoints are public; the session user, when there is one,
only changes what is visible (owners see their own drafts and hidden
salaries).  Management endpoints require an HR session, saved jobs and
alerts a candidate session.
"""

from __future__ import annotations

from django.http import JsonResponse

from cvboard.http import api_view, int_param, paginate
from users.decorators import optional_user, role_required
from users.models import User
from . import alerts, saved, services


def _page_args(request, default_limit: int = 20):
    return int_param(request, "page", 1), int_param(request, "limit", default_limit, maximum=100)


@api_view(["GET", "POST"])
@optional_user
def job_list(request):
    if request.method == "POST":
        return create_job(request)
    results, facets = services.search_jobs(request.GET)
    page, limit = _page_args(request)
    body = paginate(results, page, limit, lambda job: services.job_dict(job, request.app_user))
    body["facets"] = facets
    return JsonResponse(body)


@role_required(User.ROLE_HR)
def create_job(request):
    job, warnings = services.create_job(request.app_user, request.json)
    return JsonResponse({"job": services.job_dict(job, request.app_user), "warnings": warnings}, status=201)


@api_view(["GET"])
def category_list(request):
    return JsonResponse({"categories": [services.category_dict(c) for c in services.list_categories()]})


@api_view(["GET"])
@optional_user
def featured_jobs(request):
    jobs = services.featured_jobs(int_param(request, "limit", 10, maximum=50))
    return JsonResponse({"jobs": [services.job_dict(job, request.app_user) for job in jobs]})


@api_view(["GET"])
@role_required(User.ROLE_CANDIDATE)
def recommended_jobs(request):
    pairs = services.recommendations(request.app_user, int_param(request, "limit", 10, maximum=50))
    return JsonResponse(
        {"jobs": [dict(services.job_dict(job), match_score=score) for job, score in pairs]}
    )


@api_view(["GET", "PUT", "PATCH", "DELETE"])
@optional_user
def job_detail(request, job_id: int):
    if request.method == "GET":
        job = services.job_detail(job_id, request.app_user, request)
        return JsonResponse({"job": services.job_dict(job, request.app_user)})
    return manage_job(request, job_id)


@role_required(User.ROLE_HR)
def manage_job(request, job_id: int):
    if request.method == "DELETE":
        services.delete_job(request.app_user, job_id)
        return JsonResponse({"detail": "Job deleted"})
    job, warnings = services.update_job(request.app_user, job_id, request.json)
    return JsonResponse({"job": services.job_dict(job, request.app_user), "warnings": warnings})


@api_view(["POST"])
@role_required(User.ROLE_HR)
def publish_job(request, job_id: int):
    job = services.publish_job(request.app_user, job_id)
    return JsonResponse({"job": services.job_dict(job, request.app_user)})


@api_view(["POST"])
@role_required(User.ROLE_HR)
def pause_job(request, job_id: int):
    job = services.pause_job(request.app_user, job_id)
    return JsonResponse({"job": services.job_dict(job, request.app_user)})


@api_view(["POST"])
@role_required(User.ROLE_HR)
def close_job(request, job_id: int):
    job = services.close_job(request.app_user, job_id)
    return JsonResponse({"job": services.job_dict(job, request.app_user)})


@api_view(["POST"])
@role_required(User.ROLE_HR)
def duplicate_job(request, job_id: int):
    job = services.duplicate_job(request.app_user, job_id)
    return JsonResponse({"job": services.job_dict(job, request.app_user)}, status=201)


@api_view(["GET"])
@role_required(User.ROLE_HR)
def job_analytics(request, job_id: int):
    return JsonResponse({"analytics": services.job_analytics(request.app_user, job_id)})


@api_view(["GET"])
@role_required(User.ROLE_HR)
def my_jobs(request):
    jobs = services.my_jobs(request.app_user, request.GET.get("status"), request.GET.get("search"))
    page, limit = _page_args(request)
    body = paginate(jobs, page, limit, lambda job: services.job_dict(job, request.app_user))
    body["stats"] = services.my_jobs_stats(request.app_user)
    return JsonResponse(body)


# ----- Saved jobs -----


@api_view(["POST", "DELETE"])
@role_required(User.ROLE_CANDIDATE)
def save_job(request, job_id: int):
    if request.method == "DELETE":
        saved.unsave_job(request.app_user, job_id)
        return JsonResponse({"detail": "Job removed from saved jobs"})
    item = saved.save_job(request.app_user, job_id, request.json)
    return JsonResponse({"saved_job": saved.saved_job_dict(item)}, status=201)


@api_view(["PUT", "PATCH"])
@role_required(User.ROLE_CANDIDATE)
def saved_job_notes(request, job_id: int):
    item = saved.update_notes(request.app_user, job_id, request.json)
    return JsonResponse({"saved_job": saved.saved_job_dict(item)})


@api_view(["GET"])
@role_required(User.ROLE_CANDIDATE)
def saved_jobs(request):
    page, limit = _page_args(request)
    return JsonResponse(paginate(saved.saved_jobs(request.app_user), page, limit, saved.saved_job_dict))


@api_view(["GET"])
@role_required(User.ROLE_CANDIDATE)
def export_saved_jobs(request):
    return saved.export_saved_jobs(request.app_user, request.GET.get("format", "csv").lower())


@api_view(["GET"])
@role_required(User.ROLE_CANDIDATE)
def saved_jobs_insights(request):
    return JsonResponse({"insights": saved.saved_jobs_insights(request.app_user)})


# ----- Alerts -----


@api_view(["GET", "POST"])
@role_required(User.ROLE_CANDIDATE)
def alert_list(request):
    if request.method == "POST":
        alert = alerts.create_alert(request.app_user, request.json)
        return JsonResponse({"alert": alerts.alert_dict(alert)}, status=201)
    items = alerts.list_alerts(request.app_user)
    return JsonResponse({"alerts": [alerts.alert_dict(a, with_count=True) for a in items]})


@api_view(["GET", "PUT", "PATCH", "DELETE"])
@role_required(User.ROLE_CANDIDATE)
def alert_detail(request, alert_id: int):
    if request.method == "DELETE":
        alerts.delete_alert(request.app_user, alert_id)
        return JsonResponse({"detail": "Alert deleted"})
    if request.method == "GET":
        alert = alerts.get_alert(request.app_user, alert_id)
    else:
        alert = alerts.update_alert(request.app_user, alert_id, request.json)
    return JsonResponse({"alert": alerts.alert_dict(alert, with_count=True)})


@api_view(["POST"])
@role_required(User.ROLE_CANDIDATE)
def toggle_alert(request, alert_id: int):
    alert = alerts.toggle_alert(request.app_user, alert_id)
    return JsonResponse({"alert": alerts.alert_dict(alert)})


@api_view(["GET"])
@role_required(User.ROLE_CANDIDATE)
def alert_jobs(request, alert_id: int):
    alert = alerts.get_alert(request.app_user, alert_id)
    page, limit = _page_args(request)
    return JsonResponse(paginate(alerts.matching_jobs(alert), page, limit, services.job_dict))
