from rest_framework.routers import DefaultRouter

from .views.agenda_views import AppointmentViewSet, PaymentViewSet

# lista de (rota, ViewSet)
RESOURCES = [
    ("appointments", AppointmentViewSet),
    ("payments",     PaymentViewSet),
]


def build_router() -> DefaultRouter:
    router = DefaultRouter(trailing_slash=False)
    for prefix, viewset in RESOURCES:
        router.register(prefix, viewset, basename=prefix)
    return router
