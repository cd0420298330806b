from django.urls import path

from applications import views as application_views
from . import views

urlpatterns = [
    path("", views.job_list, name="job_list"),
    path("categories/", views.category_list, name="job_categories"),
    path("featured/", views.featured_jobs, name="featured_jobs"),
    path("recommendations/", views.recommended_jobs, name="recommended_jobs"),
    path("my-jobs/", views.my_jobs, name="my_jobs"),
    path("saved/", views.saved_jobs, name="saved_jobs"),
    path("saved/export/", views.export_saved_jobs, name="export_saved_jobs"),
    path("saved/insights/", views.saved_jobs_insights, name="saved_jobs_insights"),
    path("<int:job_id>/", views.job_detail, name="job_detail"),
    path("<int:job_id>/publish/", views.publish_job, name="publish_job"),
    path("<int:job_id>/pause/", views.pause_job, name="pause_job"),
    path("<int:job_id>/close/", views.close_job, name="close_job"),
    path("<int:job_id>/duplicate/", views.duplicate_job, name="duplicate_job"),
    path("<int:job_id>/analytics/", views.job_analytics, name="job_analytics"),
    path("<int:job_id>/save/", views.save_job, name="save_job"),
    path("<int:job_id>/save/notes/", views.saved_job_notes, name="saved_job_notes"),
    path("<int:job_id>/apply/", application_views.apply_to_job, name="apply_to_job"),
    path("<int:job_id>/applications/", application_views.job_applications, name="job_applications"),
    path(
        "<int:job_id>/applications/<int:application_id>/status/",
        application_views.update_application_status,
        name="update_application_status",
    ),
]

alert_urlpatterns = [
    path("", views.alert_list, name="alert_list"),
    path("<int:alert_id>/", views.alert_detail, name="alert_detail"),
    path("<int:alert_id>/toggle/", views.toggle_alert, name="toggle_alert"),
    path("<int:alert_id>/jobs/", views.alert_jobs, name="alert_jobs"),
]
