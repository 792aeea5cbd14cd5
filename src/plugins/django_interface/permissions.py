from rest_framework.permissions import BasePermission


class IsActor(BasePermission):
    """Exige um ator autenticado (clínica, psicólogo ou paciente)."""

    def has_permission(self, request, view):
        return bool(request.user and getattr(request.user, "actor", None) is not None)
