"""
Views for the notifications app.

List notifications for the session user and mark them as read.  The
Observer pattern in ``notifications.services`` creates the records.
"""

from __future__ import annotations

from django.http import JsonResponse

from cvboard.http import api_view, int_param, paginate
from users.decorators import login_required
from . import services
from .models import Notification


@api_view(["GET"])
@login_required
def notification_list(request):
    """Notifications of the logged-in user, most recent first.

    ``?unread=true`` restricts the list to unread notifications.
    """
    notifications = Notification.objects.filter(user=request.app_user)
    unread_count = notifications.filter(read=False).count()
    if request.GET.get("unread", "").lower() in ("1", "true", "yes"):
        notifications = notifications.filter(read=False)
    page = paginate(
        notifications,
        int_param(request, "page", 1),
        int_param(request, "limit", 20, maximum=100),
        services.notification_dict,
    )
    page["unread_count"] = unread_count
    return JsonResponse(page)


@api_view(["POST"])
@login_required
def mark_notification_read(request, notification_id: int):
    notification = services.mark_read(request.app_user, notification_id)
    return JsonResponse({"notification": services.notification_dict(notification)})


@api_view(["POST"])
@login_required
def mark_all_read(request):
    return JsonResponse({"updated": services.mark_all_read(request.app_user)})
