"""
Observer pattern implementation for notifications.

This module defines a ``NotificationSubject`` that maintains a list of
``NotificationObserver`` objects.  When an event occurs (an application
changes status, a job alert finds new postings...), the subject notifies
all observers by calling their ``notify`` method.
``NotificationModelObserver`` stores a ``Notification`` record and
``EmailNotificationObserver`` mails users who accept e-mail
notifications.  More observers can be registered without changing the
callers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.core.mail import send_mail

from users.models import User
from .models import Notification

logger = logging.getLogger(__name__)


class NotificationObserver(ABC):
    """Interface for observers interested in notification events."""

    @abstractmethod
    def notify(self, user: User, message: str, kind: str = "general", link: str = "") -> None:
        """Receive a notification for a specific user."""


class NotificationSubject:
    """Subject that manages notification observers."""

    def __init__(self) -> None:
        self._observers: List[NotificationObserver] = []

    def register(self, observer: NotificationObserver) -> None:
        """Register an observer to receive notifications."""
        self._observers.append(observer)

    def unregister(self, observer: NotificationObserver) -> None:
        """Remove an observer from the notification list."""
        self._observers.remove(observer)

    def notify(self, user: User, message: str, kind: str = "general", link: str = "") -> None:
        """Notify all observers of an event for a particular user."""
        for observer in self._observers:
            observer.notify(user, message, kind=kind, link=link)


class NotificationModelObserver(NotificationObserver):
    """Observer that persists notifications to the database."""

    def notify(self, user: User, message: str, kind: str = "general", link: str = "") -> None:
        Notification.objects.create(user=user, message=message, kind=kind, link=link)


class EmailNotificationObserver(NotificationObserver):
    """Observer that e-mails the notification.

    Disabled unless ``settings.NOTIFICATION_EMAILS`` is true; candidates
    can opt out through their ``email_notifications`` preference.
    """

    def notify(self, user: User, message: str, kind: str = "general", link: str = "") -> None:
        if not settings.NOTIFICATION_EMAILS or not user.email:
            return
        profile = getattr(user, "candidate_profile", None)
        if profile is not None and not profile.email_notifications:
            return
        body = message
        if link:
            body += f"\n\n{settings.PUBLIC_BASE_URL}{link}"
        try:
            send_mail("CV Board notification", body, settings.DEFAULT_FROM_EMAIL, [user.email])
        except OSError:
            logger.warning("Could not e-mail notification to user %s", user.id, exc_info=True)


# Global subject instance used by the application
notification_subject = NotificationSubject()
notification_subject.register(NotificationModelObserver())
notification_subject.register(EmailNotificationObserver())


def notify(user: User, message: str, kind: str = "general", link: str = "") -> None:
    notification_subject.notify(user, message, kind=kind, link=link)


def notification_dict(notification: Notification) -> dict:
    return {
        "id": notification.id,
        "message": notification.message,
        "kind": notification.kind,
        "link": notification.link,
        "read": notification.read,
        "created_at": notification.created_at,
    }


def mark_read(user: User, notification_id: int) -> Notification:
    notification = Notification.objects.get(id=notification_id)
    if notification.user_id != user.id:
        raise PermissionDenied("You cannot modify this notification")
    if not notification.read:
        notification.read = True
        notification.save(update_fields=["read"])
    return notification


def mark_all_read(user: User) -> int:
    return Notification.objects.filter(user=user, read=False).update(read=True)
