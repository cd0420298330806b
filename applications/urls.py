from django.urls import path

from . import views

urlpatterns = [
    path("", views.my_applications, name="my_applications"),
    path("analytics/", views.application_analytics, name="application_analytics"),
    path("bulk/withdraw/", views.bulk_withdraw, name="bulk_withdraw"),
    path("<int:application_id>/", views.application_detail, name="application_detail"),
    path("<int:application_id>/withdraw/", views.withdraw_application, name="withdraw_application"),
]
