"""
JSON views for CVs, their history, sharing, templates and AI helpers.

Business rules live in :mod:`cvs.crud` and :mod:`cvs.ai`; the views
only pick the CV the session user owns and serialize the result.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.http import HttpResponse, JsonResponse

from cvboard.http import api_view, form_error
from jobs.models import Job
from users.decorators import login_required
from . import ai, crud
from .document import normalize_document
from .exporters import EXPORT_FORMATS, export_response, render_html
from .forms import AdaptCVForm, AnalyzeCVForm, ImproveTextForm, TranslateCVForm


@api_view(["GET", "POST"])
@login_required
def cv_list(request):
    if request.method == "POST":
        cv = crud.create_cv(request.app_user, request.json)
        return JsonResponse({"cv": crud.cv_dict(cv)}, status=201)
    cvs = crud.list_cvs(request.app_user)
    return JsonResponse({"cvs": [crud.cv_dict(cv, include_data=False) for cv in cvs]})


@api_view(["GET", "PUT", "DELETE"])
@login_required
def cv_detail(request, cv_id: int):
    cv = crud.get_owned_cv(request.app_user, cv_id)
    if request.method == "PUT":
        cv = crud.update_cv(cv, request.json)
    elif request.method == "DELETE":
        crud.delete_cv(cv)
        return JsonResponse({"detail": "CV deleted"})
    return JsonResponse({"cv": crud.cv_dict(cv)})


@api_view(["POST"])
@login_required
def cv_operations(request, cv_id: int):
    cv = crud.get_owned_cv(request.app_user, cv_id)
    cv = crud.apply_cv_operations(cv, request.json.get("operations"))
    return JsonResponse({"cv": crud.cv_dict(cv)})


@api_view(["POST"])
@login_required
def cv_import(request):
    cv = crud.import_cv(request.app_user, request.POST, request.FILES)
    return JsonResponse({"cv": crud.cv_dict(cv)}, status=201)


@api_view(["GET"])
@login_required
def cv_export(request, cv_id: int):
    cv = crud.get_owned_cv(request.app_user, cv_id)
    fmt = request.GET.get("format", "pdf").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError({"format": [f"Choose one of: {', '.join(EXPORT_FORMATS)}"]})
    return export_response(normalize_document(cv.data), cv.title, fmt)


# ----- Versions -----


@api_view(["GET", "POST"])
@login_required
def version_list(request, cv_id: int):
    cv = crud.get_owned_cv(request.app_user, cv_id)
    if request.method == "POST":
        version = crud.create_version(cv, request.app_user, request.json)
        return JsonResponse({"version": crud.version_dict(version)}, status=201)
    versions = crud.list_versions(cv)
    return JsonResponse({"versions": [crud.version_dict(v, include_data=False) for v in versions]})


@api_view(["GET"])
@login_required
def version_detail(request, cv_id: int, version_id: int):
    cv = crud.get_owned_cv(request.app_user, cv_id)
    return JsonResponse({"version": crud.version_dict(crud.get_version(cv, version_id))})


@api_view(["POST"])
@login_required
def version_restore(request, cv_id: int, version_id: int):
    cv = crud.get_owned_cv(request.app_user, cv_id)
    cv = crud.restore_version(cv, version_id)
    return JsonResponse({"cv": crud.cv_dict(cv)})


# ----- Sharing -----


@api_view(["POST"])
@login_required
def cv_share(request, cv_id: int):
    cv = crud.get_owned_cv(request.app_user, cv_id)
    share = crud.share_cv(cv, request.app_user)
    return JsonResponse({"share": crud.share_dict(share)}, status=201)


@api_view(["GET"])
def shared_cv(request, token: str):
    share = crud.get_share(token)
    return JsonResponse(
        {
            "title": share.cv.title,
            "data": share.version.data,
            "shared_at": share.created_at,
        }
    )


@api_view(["GET"])
def shared_cv_page(request, token: str):
    share = crud.get_share(token)
    return HttpResponse(render_html(normalize_document(share.version.data), share.cv.title))


# ----- Templates -----


@api_view(["GET"])
def template_list(request):
    return JsonResponse({"templates": [crud.template_dict(t) for t in crud.list_templates()]})


@api_view(["GET"])
def template_detail(request, template_id: int):
    return JsonResponse({"template": crud.template_dict(crud.get_template(template_id))})


# ----- AI -----


def _visible_job(job_id: int, user) -> Job:
    job = Job.objects.get(id=job_id)
    if job.status != Job.STATUS_PUBLISHED and job.posted_by_id != user.id:
        raise Job.DoesNotExist("Job not found")
    return job


@api_view(["POST"])
@login_required
def improve_text(request):
    form = ImproveTextForm(request.json)
    if not form.is_valid():
        raise form_error(form)
    result = ai.improve_text(form.cleaned_data["text"], form.cleaned_data["instruction"])
    return JsonResponse(result)


@api_view(["POST"])
@login_required
def adapt_cv(request):
    form = AdaptCVForm(request.json)
    if not form.is_valid():
        raise form_error(form)
    cv = crud.get_owned_cv(request.app_user, form.cleaned_data["cv_id"])
    if form.cleaned_data["job_id"]:
        description = _visible_job(form.cleaned_data["job_id"], request.app_user).embedding_text()
    else:
        description = form.cleaned_data["job_description"]
    return JsonResponse(ai.adapt_document(normalize_document(cv.data), description))


@api_view(["POST"])
@login_required
def translate_cv(request):
    form = TranslateCVForm(request.json)
    if not form.is_valid():
        raise form_error(form)
    cv = crud.get_owned_cv(request.app_user, form.cleaned_data["cv_id"])
    return JsonResponse(ai.translate_document(normalize_document(cv.data), form.cleaned_data["language"]))


@api_view(["POST"])
@login_required
def analyze_cv(request):
    form = AnalyzeCVForm(request.json)
    if not form.is_valid():
        raise form_error(form)
    cv = crud.get_owned_cv(request.app_user, form.cleaned_data["cv_id"])
    job = None
    if form.cleaned_data["job_id"]:
        job = _visible_job(form.cleaned_data["job_id"], request.app_user)
    return JsonResponse({"analysis": ai.analyze_document(normalize_document(cv.data), job)})
