from django.urls import path

from . import views

urlpatterns = [
    path("", views.notification_list, name="notification_list"),
    path("read-all/", views.mark_all_read, name="notification_read_all"),
    path("<int:notification_id>/read/", views.mark_notification_read, name="notification_read"),
]
