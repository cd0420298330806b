"""Tests for the notification observers and endpoints."""

from unittest.mock import Mock

from notifications.models import Notification
from notifications.services import NotificationSubject, notify

from .conftest import login


def test_subject_notifies_every_observer(candidate):
    first, second = Mock(), Mock()
    subject = NotificationSubject()
    subject.register(first)
    subject.register(second)
    subject.notify(candidate, "Hello", kind="general")
    first.notify.assert_called_once_with(candidate, "Hello", kind="general", link="")
    second.notify.assert_called_once()

    subject.unregister(second)
    subject.notify(candidate, "Again")
    assert second.notify.call_count == 1


def test_notify_stores_record(candidate, mailoutbox):
    notify(candidate, "Your CV was viewed", kind="profile_view", link="/api/profiles/candidate/")
    notification = Notification.objects.get(user=candidate)
    assert notification.kind == "profile_view"
    assert notification.read is False
    assert mailoutbox == []


def test_email_notifications_when_enabled(settings, candidate, hr_user, mailoutbox):
    settings.NOTIFICATION_EMAILS = True
    notify(hr_user, "New application", link="/api/jobs/1/applications/")
    assert len(mailoutbox) == 1
    assert "http://testserver/api/jobs/1/applications/" in mailoutbox[0].body

    profile = candidate.candidate_profile
    profile.email_notifications = False
    profile.save()
    notify(candidate, "Status changed")
    assert len(mailoutbox) == 1


def test_list_and_mark_read(candidate_client, candidate):
    for i in range(3):
        notify(candidate, f"Message {i}")
    body = candidate_client.get("/api/notifications/").json()
    assert body["unread_count"] == 3
    assert [n["message"] for n in body["results"]] == ["Message 2", "Message 1", "Message 0"]

    first = body["results"][0]["id"]
    response = candidate_client.post(f"/api/notifications/{first}/read/")
    assert response.json()["notification"]["read"] is True
    body = candidate_client.get("/api/notifications/?unread=true").json()
    assert body["pagination"]["total"] == 2

    assert candidate_client.post("/api/notifications/read-all/").json()["updated"] == 2
    assert candidate_client.get("/api/notifications/").json()["unread_count"] == 0


def test_cannot_mark_someone_elses_notification(candidate, other_candidate):
    notify(candidate, "Private")
    notification = Notification.objects.get(user=candidate)
    response = login(other_candidate).post(f"/api/notifications/{notification.id}/read/")
    assert response.status_code == 403
