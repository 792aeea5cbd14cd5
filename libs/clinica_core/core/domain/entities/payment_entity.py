from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from clinica_core.core.domain.entities._base import EntityMixin
from clinica_core.core.domain.entities.enums import PaymentMethod, PaymentStatus, SummaryScope


@dataclass(slots=True)
class PaymentEntity(EntityMixin):
    id: str
    appointment_id: str
    patient_id: str
    psychologist_id: str
    session_value: Decimal
    final_value: Decimal
    clinic_amount: Decimal
    psychologist_amount: Decimal
    clinic_percentage: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    clinic_id: str | None = None
    status: PaymentStatus = PaymentStatus.PENDING
    method: PaymentMethod | None = None
    paid_at: datetime | None = None
    confirmed_at: datetime | None = None
    confirmed_by: str | None = None
    cancelled_at: datetime | None = None
    cancel_reason: str | None = None
    refunded_at: datetime | None = None
    refund_reason: str | None = None
    internal_notes: str | None = None
    version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.status = PaymentStatus(self.status)
        if self.method is not None:
            self.method = PaymentMethod(self.method)

    @property
    def is_clinic_affiliated(self) -> bool:
        return self.clinic_id is not None

    def share_for(self, scope: SummaryScope | str) -> Decimal:
        """Parcela do valor que pertence ao escopo (o paciente responde pelo total)."""
        scope = SummaryScope(scope)
        if scope is SummaryScope.CLINIC:
            return self.clinic_amount
        if scope is SummaryScope.PSYCHOLOGIST:
            return self.psychologist_amount
        return self.final_value
