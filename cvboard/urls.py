"""
URL configuration for the CV Board project.

Every app exposes a JSON API under ``api/``; the only HTML route is the
public page of a shared CV.  Media files are served in development.
"""

from django.conf import settings
from django.conf.urls.static import static
from django.urls import include, path

from cvs import urls as cv_urls
from cvs import views as cv_views
from jobs import urls as job_urls
from users import urls as user_urls

urlpatterns = [
    path("api/auth/", include(user_urls.auth_urlpatterns)),
    path("api/profiles/", include(user_urls.profile_urlpatterns)),
    path("api/cvs/", include(cv_urls.cv_urlpatterns)),
    path("api/shares/", include(cv_urls.share_urlpatterns)),
    path("api/templates/", include(cv_urls.template_urlpatterns)),
    path("api/ai/", include(cv_urls.ai_urlpatterns)),
    path("api/jobs/", include(job_urls.urlpatterns)),
    path("api/job-alerts/", include(job_urls.alert_urlpatterns)),
    path("api/applications/", include("applications.urls")),
    path("api/notifications/", include("notifications.urls")),
    path("share/<str:token>/", cv_views.shared_cv_page, name="shared_cv_page"),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
