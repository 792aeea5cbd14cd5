from datetime import datetime
from typing import Any

from django.db import transaction

from clinica_core.adapters.repositories._django_helpers import (
    StaleWrite,
    model_values,
    paginate,
    plain,
)
from clinica_core.core.application.cqrs import PagedResult
from clinica_core.core.domain.entities.enums import SummaryScope
from clinica_core.core.domain.entities.payment_entity import PaymentEntity
from clinica_core.core.domain.repositories.payment_repository import PaymentRepository
from plugins.django_interface.models import Payment as PaymentModel

_WRITABLE = (
    "appointment_id",
    "patient_id",
    "psychologist_id",
    "clinic_id",
    "session_value",
    "discount",
    "final_value",
    "clinic_percentage",
    "clinic_amount",
    "psychologist_amount",
    "status",
    "method",
    "paid_at",
    "confirmed_at",
    "confirmed_by",
    "cancelled_at",
    "cancel_reason",
    "refunded_at",
    "refund_reason",
    "internal_notes",
    "version",
    "created_at",
    "updated_at",
)

_SCOPE_FIELD = {
    SummaryScope.CLINIC: "clinic_id",
    SummaryScope.PSYCHOLOGIST: "psychologist_id",
    SummaryScope.PATIENT: "patient_id",
}

_EXACT_FILTERS = ("psychologist_id", "patient_id", "clinic_id", "status", "appointment_id")


class PaymentRepoImpl(PaymentRepository):
    def find_by_id(self, payment_id: str) -> PaymentEntity | None:
        try:
            m = PaymentModel.objects.get(id=payment_id)
            return PaymentEntity.from_model(m)
        except PaymentModel.DoesNotExist:
            return None

    def find_by_appointment(self, appointment_id: str) -> PaymentEntity | None:
        m = PaymentModel.objects.filter(appointment_id=appointment_id).first()
        return PaymentEntity.from_model(m) if m else None

    def add(self, payment: PaymentEntity) -> None:
        PaymentModel.objects.create(id=payment.id, **model_values(payment, _WRITABLE))

    def save(self, payment: PaymentEntity, *, expected_version: int) -> bool:
        try:
            with transaction.atomic():
                updated = PaymentModel.objects.filter(
                    id=payment.id, version=expected_version
                ).update(**model_values(payment, _WRITABLE))
                if not updated:
                    raise StaleWrite(payment.id)
        except StaleWrite:
            return False
        return True

    def list_for_scope(
        self,
        scope: SummaryScope,
        scope_id: str,
        created_from: datetime,
        created_until: datetime,
    ) -> list[PaymentEntity]:
        qs = PaymentModel.objects.filter(
            **{_SCOPE_FIELD[SummaryScope(scope)]: scope_id},
            created_at__gte=created_from,
            created_at__lt=created_until,
        )
        return [PaymentEntity.from_model(m) for m in qs.order_by("created_at")]

    def list(self, filtros: dict[str, Any], page: int, page_size: int) -> PagedResult[PaymentEntity]:
        qs = PaymentModel.objects.all()
        exact = {k: plain(filtros[k]) for k in _EXACT_FILTERS if filtros.get(k) is not None}
        if exact:
            qs = qs.filter(**exact)
        return paginate(qs.order_by("created_at", "id"), PaymentEntity.from_model, page, page_size)
