from django.contrib import admin
from django.urls import include, path

from clinica_core.adapters.observability.metrics import metrics_view

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("plugins.django_interface.urls")),
    path("metrics/", metrics_view, name="metrics"),
]
