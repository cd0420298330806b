from django.urls import path

from . import views

auth_urlpatterns = [
    path("csrf/", views.csrf, name="csrf"),
    path("register/", views.register, name="register"),
    path("login/", views.login, name="login"),
    path("logout/", views.logout, name="logout"),
    path("me/", views.me, name="me"),
    path("forgot-password/", views.forgot_password, name="forgot_password"),
    path("reset-password/", views.reset_password, name="reset_password"),
    path("verify-email/<str:token>/", views.verify_email, name="verify_email"),
]

profile_urlpatterns = [
    path("candidate/", views.candidate_profile, name="candidate_profile"),
    path("candidate/privacy/", views.candidate_privacy, name="candidate_privacy"),
    path("candidate/avatar/", views.candidate_avatar, name="candidate_avatar"),
    path("candidate/<int:profile_id>/public/", views.public_candidate_profile, name="public_candidate_profile"),
    path("hr/", views.hr_profile, name="hr_profile"),
    path("hr/avatar/", views.hr_avatar, name="hr_avatar"),
    path("search/candidates/", views.search_candidates, name="search_candidates"),
]
