"""
JSON helpers shared by the API views.

Services raise Django's own exceptions (``ValidationError``,
``PermissionDenied``, ``ObjectDoesNotExist``) or :class:`Conflict`; the
:func:`api_view` decorator turns them into JSON error responses so each
view only describes the happy path.
"""

from __future__ import annotations

import json
import logging
from functools import wraps
from typing import Any, Dict, Iterable, Optional

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.core.paginator import Paginator
from django.http import Http404, HttpResponseNotAllowed, JsonResponse

logger = logging.getLogger(__name__)


class Conflict(Exception):
    """Raised when a request would duplicate an existing record."""


class AuthenticationRequired(Exception):
    """Raised when a view needs a logged-in user and there is none."""


def error_response(message: str, status: int, details: Optional[Dict[str, Any]] = None) -> JsonResponse:
    body: Dict[str, Any] = {"error": message}
    if details:
        body["details"] = details
    return JsonResponse(body, status=status)


def validation_details(exc: ValidationError) -> Dict[str, Any]:
    if hasattr(exc, "error_dict"):
        return {field: [str(m) for m in messages] for field, messages in exc.message_dict.items()}
    return {"non_field_errors": list(exc.messages)}


def form_error(form) -> ValidationError:
    """Build a ValidationError carrying every error of a bound form."""
    return ValidationError({field: list(errors) for field, errors in form.errors.items()})


def parse_json_body(request) -> Dict[str, Any]:
    """Decode the request body as a JSON object.

    An empty body decodes to an empty dict.  Anything that is not a JSON
    object raises ``ValidationError``.
    """
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError(f"Malformed JSON body: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValidationError("JSON body must be an object")
    return payload


def api_view(methods: Iterable[str]):
    """Restrict a view to ``methods`` and map service errors to JSON.

    For requests with a JSON content type the decoded body is available
    as ``request.json``.
    """
    allowed = [m.upper() for m in methods]

    def decorator(view):
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            if request.method not in allowed:
                return HttpResponseNotAllowed(allowed)
            try:
                if request.content_type == "application/json":
                    request.json = parse_json_body(request)
                else:
                    request.json = {}
                return view(request, *args, **kwargs)
            except AuthenticationRequired as exc:
                return error_response(str(exc) or "Authentication required", 401)
            except ValidationError as exc:
                return error_response("Invalid request", 400, validation_details(exc))
            except PermissionDenied as exc:
                return error_response(str(exc) or "Access denied", 403)
            except (ObjectDoesNotExist, Http404) as exc:
                return error_response(str(exc) or "Not found", 404)
            except Conflict as exc:
                return error_response(str(exc), 409)

        return wrapper

    return decorator


def int_param(request, name: str, default: int, minimum: int = 1, maximum: Optional[int] = None) -> int:
    raw = request.GET.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError({name: [f"'{raw}' is not an integer"]}) from exc
    value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


def paginate(items, page: int, limit: int, serializer) -> Dict[str, Any]:
    """Paginate a queryset or list and serialize the requested page."""
    paginator = Paginator(items, limit)
    page_obj = paginator.get_page(page)
    return {
        "results": [serializer(item) for item in page_obj.object_list],
        "pagination": {
            "page": page_obj.number,
            "limit": limit,
            "total": paginator.count,
            "pages": paginator.num_pages,
        },
    }
