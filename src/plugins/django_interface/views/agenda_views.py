# ╭────────────────────────────────────────────────────────────────────────────╮
# │  ViewSets REST – Agenda clínica (atendimentos, pagamentos, financeiro)     │
# │                                                                            │
# │  • Payloads      → validados com os DTOs pydantic do core                  │
# │  • Ator          → ``request.user.actor`` (ActorHeaderAuthentication)      │
# │  • Erros         → ``exception_handler.agenda_exception_handler``          │
# ╰────────────────────────────────────────────────────────────────────────────╯
from __future__ import annotations

from typing import Any

from django.utils.dateparse import parse_datetime
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from clinica_core.core.application.dtos.appointment_dto import (
    AvailableSlotsDTO,
    CancelDTO,
    CreateAppointmentDTO,
    RescheduleAppointmentDTO,
    RespondAppointmentDTO,
    TransitionStatusDTO,
    UpdateAppointmentFieldsDTO,
)
from clinica_core.core.application.dtos.payment_dto import (
    CancelPaymentDTO,
    ConfirmPaymentDTO,
    ConfirmPaymentsBatchDTO,
    FinancialSummaryParamsDTO,
    RegisterPaymentMethodDTO,
    UpdatePaymentValueDTO,
)
from clinica_core.core.application.services.agenda_service import AgendaService
from clinica_core.core.domain.entities.enums import SummaryScope
from clinica_core.core.domain.events.exceptions import InvalidInputError
from plugins.django_interface.permissions import IsActor

from ..serializers.agenda_serializers import (
    AppointmentSerializer,
    BatchConfirmResultSerializer,
    FinancialSummarySerializer,
    PaymentSerializer,
    SlotSerializer,
)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def agenda_service() -> AgendaService:
    from clinica_core.adapters.config import composition_root

    if composition_root.container is None:
        from django.conf import settings

        composition_root.setup_di_container_from_settings(settings)
    return composition_root.container.agenda_service()


def _appointment(entity) -> dict[str, Any]:
    return AppointmentSerializer({**entity.to_dict(), "ends_at": entity.ends_at}).data


def _payment(entity) -> dict[str, Any]:
    return PaymentSerializer(entity.to_dict()).data


# ╭──────────────────────────────────────────────────────────────────────────╮
# │ Helper mix-in – paginação + filtros                                      │
# ╰──────────────────────────────────────────────────────────────────────────╯
class PaginationFilterMixin:
    """Extrai page/page_size e mantém só os filtros suportados."""

    filter_keys: tuple[str, ...] = ()
    datetime_keys: tuple[str, ...] = ()

    @staticmethod
    def _pagination(request) -> tuple[int, int]:
        try:
            page = int(request.query_params.get("page", 1))
            size = int(request.query_params.get("page_size", DEFAULT_PAGE_SIZE))
        except ValueError as exc:
            raise InvalidInputError("page/page_size devem ser inteiros") from exc
        return max(page, 1), min(max(size, 1), MAX_PAGE_SIZE)

    def _filters(self, request) -> dict[str, Any]:
        clean: dict[str, Any] = {}
        for key in self.filter_keys:
            value = request.query_params.get(key)
            if value in (None, ""):
                continue
            if key in self.datetime_keys:
                parsed = parse_datetime(value)
                if parsed is None:
                    raise InvalidInputError(f"Data/hora inválida em '{key}'", field=key)
                value = parsed
            clean[key] = value
        return clean

    @staticmethod
    def _page_payload(res, serialize) -> dict[str, Any]:
        return {
            "results": [serialize(item) for item in res.items],
            "total_items": res.total,
            "page": res.page,
            "page_size": res.page_size,
            "total_pages": res.total_pages,
            "items_on_page": len(res.items),
        }


# ───────────────────────────────────────────────────────────────────────────
class AppointmentViewSet(PaginationFilterMixin, viewsets.ViewSet):
    permission_classes = [IsActor]
    filter_keys = ("psychologist_id", "patient_id", "clinic_id", "status", "start", "end")
    datetime_keys = ("start", "end")

    def list(self, request):
        page, page_size = self._pagination(request)
        res = agenda_service().list_appointments(
            request.user.actor, self._filters(request), page=page, page_size=page_size
        )
        return Response(self._page_payload(res, _appointment), status=status.HTTP_200_OK)

    def retrieve(self, request, pk=None):
        appt = agenda_service().get_appointment(request.user.actor, pk)
        return Response(_appointment(appt))

    def create(self, request):
        dto = CreateAppointmentDTO(**request.data)
        appt = agenda_service().create_appointment(request.user.actor, **dto.model_dump())
        return Response(_appointment(appt), status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        dto = UpdateAppointmentFieldsDTO(**request.data)
        appt = agenda_service().update_appointment_fields(request.user.actor, pk, **dto.model_dump())
        return Response(_appointment(appt))

    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):
        dto = RescheduleAppointmentDTO(**request.data)
        appt = agenda_service().reschedule_appointment(request.user.actor, pk, **dto.model_dump())
        return Response(_appointment(appt))

    @action(detail=True, methods=["post"], url_path="status")
    def transition(self, request, pk=None):
        dto = TransitionStatusDTO(**request.data)
        appt = agenda_service().transition_appointment_status(
            request.user.actor,
            pk,
            dto.status,
            reason=dto.reason,
            expected_version=dto.expected_version,
        )
        return Response(_appointment(appt))

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        dto = CancelDTO(**request.data)
        appt = agenda_service().cancel_appointment(request.user.actor, pk, **dto.model_dump())
        return Response(_appointment(appt))

    @action(detail=True, methods=["post"])
    def respond(self, request, pk=None):
        dto = RespondAppointmentDTO(**request.data)
        appt = agenda_service().respond_appointment(request.user.actor, pk, **dto.model_dump())
        return Response(_appointment(appt))

    @action(detail=False, methods=["get"], url_path="available-slots")
    def available_slots(self, request):
        dto = AvailableSlotsDTO(**request.query_params.dict())
        slots = agenda_service().available_slots(request.user.actor, **dto.model_dump())
        return Response({"results": SlotSerializer(slots, many=True).data})


# ───────────────────────────────────────────────────────────────────────────
class PaymentViewSet(PaginationFilterMixin, viewsets.ViewSet):
    permission_classes = [IsActor]
    filter_keys = ("psychologist_id", "patient_id", "clinic_id", "status", "appointment_id")

    def list(self, request):
        page, page_size = self._pagination(request)
        res = agenda_service().list_payments(
            request.user.actor, self._filters(request), page=page, page_size=page_size
        )
        return Response(self._page_payload(res, _payment), status=status.HTTP_200_OK)

    def retrieve(self, request, pk=None):
        return Response(_payment(agenda_service().get_payment(request.user.actor, pk)))

    @action(detail=True, methods=["post"], url_path="register-method")
    def register_method(self, request, pk=None):
        dto = RegisterPaymentMethodDTO(**request.data)
        payment = agenda_service().register_payment_method(request.user.actor, pk, **dto.model_dump())
        return Response(_payment(payment))

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):
        dto = ConfirmPaymentDTO(**request.data)
        payment = agenda_service().confirm_payment(request.user.actor, pk, **dto.model_dump())
        return Response(_payment(payment))

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        dto = CancelPaymentDTO(**request.data)
        payment = agenda_service().cancel_payment(request.user.actor, pk, **dto.model_dump())
        return Response(_payment(payment))

    @action(detail=True, methods=["post"])
    def refund(self, request, pk=None):
        dto = CancelPaymentDTO(**request.data)
        payment = agenda_service().refund_payment(request.user.actor, pk, **dto.model_dump())
        return Response(_payment(payment))

    @action(detail=True, methods=["post"], url_path="value")
    def update_value(self, request, pk=None):
        dto = UpdatePaymentValueDTO(**request.data)
        payment = agenda_service().update_payment_value(request.user.actor, pk, **dto.model_dump())
        return Response(_payment(payment))

    @action(detail=False, methods=["post"], url_path="batch-confirm")
    def batch_confirm(self, request):
        dto = ConfirmPaymentsBatchDTO(**request.data)
        result = agenda_service().confirm_payments_batch(
            request.user.actor, dto.payment_ids, internal_notes=dto.internal_notes
        )
        return Response(BatchConfirmResultSerializer(result).data, status=status.HTTP_200_OK)


# ───────────────────────────────────────────────────────────────────────────
class FinancialSummaryView(APIView):
    """
    GET /api/financial-summary/<scope>/<scope_id>?start=AAAA-MM-DD&end=AAAA-MM-DD
    """
    permission_classes = [IsActor]

    def get(self, request, scope: str, scope_id: str):
        try:
            summary_scope = SummaryScope(scope)
        except ValueError as exc:
            raise InvalidInputError(f"Escopo inválido: {scope}", field="scope") from exc
        params = FinancialSummaryParamsDTO(**request.query_params.dict())
        summary = agenda_service().get_financial_summary(
            request.user.actor, summary_scope, scope_id, params.start, params.end
        )
        return Response(FinancialSummarySerializer(summary).data)
