from django.urls import path

from . import views

cv_urlpatterns = [
    path("", views.cv_list, name="cv_list"),
    path("import/", views.cv_import, name="cv_import"),
    path("<int:cv_id>/", views.cv_detail, name="cv_detail"),
    path("<int:cv_id>/operations/", views.cv_operations, name="cv_operations"),
    path("<int:cv_id>/export/", views.cv_export, name="cv_export"),
    path("<int:cv_id>/share/", views.cv_share, name="cv_share"),
    path("<int:cv_id>/versions/", views.version_list, name="cv_versions"),
    path("<int:cv_id>/versions/<int:version_id>/", views.version_detail, name="cv_version_detail"),
    path("<int:cv_id>/restore/<int:version_id>/", views.version_restore, name="cv_version_restore"),
]

share_urlpatterns = [
    path("<str:token>/", views.shared_cv, name="shared_cv"),
]

template_urlpatterns = [
    path("", views.template_list, name="template_list"),
    path("<int:template_id>/", views.template_detail, name="template_detail"),
]

ai_urlpatterns = [
    path("improve-text/", views.improve_text, name="ai_improve_text"),
    path("adapt-cv/", views.adapt_cv, name="ai_adapt_cv"),
    path("translate-cv/", views.translate_cv, name="ai_translate_cv"),
    path("analyze-cv/", views.analyze_cv, name="ai_analyze_cv"),
]
