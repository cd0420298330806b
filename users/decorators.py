"""
Session based access control for the JSON views.

The session stores ``user_id`` and ``role`` after login.  These
decorators resolve the current user, attach it as ``request.app_user``
and reject anonymous or wrong-role requests.  They are meant to be
applied below :func:`cvboard.http.api_view` so their exceptions are
turned into JSON responses.
"""

from __future__ import annotations

from functools import wraps
from typing import Optional

from django.core.exceptions import PermissionDenied

from cvboard.http import AuthenticationRequired
from .models import User


def get_session_user(request) -> Optional[User]:
    """Return the active user stored in the session, if any."""
    user_id = request.session.get("user_id")
    if user_id is None:
        return None
    user = User.objects.filter(id=user_id, is_active=True).first()
    if user is None:
        # Stale session: the account was removed or deactivated.
        request.session.flush()
    return user


def login_required(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        user = get_session_user(request)
        if user is None:
            raise AuthenticationRequired("Authentication required")
        request.app_user = user
        return view(request, *args, **kwargs)

    return wrapper


def role_required(*roles: str):
    """Require a logged-in user whose role is one of ``roles``."""

    def decorator(view):
        @wraps(view)
        @login_required
        def wrapper(request, *args, **kwargs):
            if request.app_user.role not in roles:
                raise PermissionDenied(f"This action requires one of the roles: {', '.join(roles)}")
            return view(request, *args, **kwargs)

        return wrapper

    return decorator


def optional_user(view):
    """Attach the session user when there is one, ``None`` otherwise."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        request.app_user = get_session_user(request)
        return view(request, *args, **kwargs)

    return wrapper
