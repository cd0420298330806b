from django.http import JsonResponse

from cvboard.http import api_view, int_param, paginate
from users.decorators import role_required
from users.models import User
from . import services


def _page_args(request):
    return int_param(request, "page", 1), int_param(request, "limit", 20, maximum=100)


@api_view(["POST"])
@role_required(User.ROLE_CANDIDATE)
def apply_to_job(request, job_id: int):
    application = services.apply_to_job(request.app_user, job_id, request.json)
    return JsonResponse({"application": services.application_dict(application)}, status=201)


@api_view(["GET"])
@role_required(User.ROLE_CANDIDATE)
def my_applications(request):
    applications = services.my_applications(
        request.app_user, request.GET.get("status"), request.GET.get("search")
    )
    page, limit = _page_args(request)
    body = paginate(applications, page, limit, services.application_dict)
    body["stats"] = services.application_stats(request.app_user)
    return JsonResponse(body)


@api_view(["GET"])
@role_required(User.ROLE_CANDIDATE)
def application_detail(request, application_id: int):
    application = services.get_own_application(request.app_user, application_id)
    return JsonResponse(
        {
            "application": services.application_dict(application),
            "timeline": services.application_timeline(application),
        }
    )


@api_view(["POST"])
@role_required(User.ROLE_CANDIDATE)
def withdraw_application(request, application_id: int):
    application = services.withdraw(request.app_user, application_id)
    return JsonResponse({"application": services.application_dict(application)})


@api_view(["POST"])
@role_required(User.ROLE_CANDIDATE)
def bulk_withdraw(request):
    return JsonResponse(services.bulk_withdraw(request.app_user, request.json))


@api_view(["GET"])
@role_required(User.ROLE_CANDIDATE)
def application_analytics(request):
    return JsonResponse({"analytics": services.application_analytics(request.app_user)})


# ----- HR review -----


@api_view(["GET"])
@role_required(User.ROLE_HR)
def job_applications(request, job_id: int):
    applications = services.job_applications(request.app_user, job_id, request.GET.get("status"))
    page, limit = _page_args(request)
    body = paginate(applications, page, limit, lambda a: services.application_dict(a, for_hr=True))
    body["counts"] = services.job_application_counts(job_id)
    return JsonResponse(body)


@api_view(["PUT", "PATCH"])
@role_required(User.ROLE_HR)
def update_application_status(request, job_id: int, application_id: int):
    application = services.update_status(request.app_user, job_id, application_id, request.json)
    return JsonResponse({"application": services.application_dict(application, for_hr=True)})
