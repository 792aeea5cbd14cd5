from django.urls import include, path

from .routers import build_router
from .views.agenda_views import FinancialSummaryView
from .views.health_views import HealthCheckView

router = build_router()

urlpatterns = [
    path("healthz/", HealthCheckView.as_view(), name="healthz"),
    path(
        "financial-summary/<str:scope>/<str:scope_id>",
        FinancialSummaryView.as_view(),
        name="financial-summary",
    ),
    path("", include(router.urls)),
]
