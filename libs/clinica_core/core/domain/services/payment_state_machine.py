from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import structlog

from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.appointment_entity import AppointmentEntity
from clinica_core.core.domain.entities.enums import PaymentMethod, PaymentStatus
from clinica_core.core.domain.entities.payment_entity import PaymentEntity
from clinica_core.core.domain.entities.psychologist_entity import PsychologistEntity
from clinica_core.core.domain.events.exceptions import InvalidInputError, InvalidStateError
from clinica_core.core.domain.services.clock import Clock

logger = structlog.get_logger(__name__)

P = PaymentStatus
CENT = Decimal("0.01")
HUNDRED = Decimal("100")

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    P.PENDING: frozenset({P.AWAITING_CONFIRMATION, P.CANCELLED}),
    P.AWAITING_CONFIRMATION: frozenset({P.CONFIRMED, P.CANCELLED}),
    P.CONFIRMED: frozenset({P.REFUNDED}),
    P.CANCELLED: frozenset(),
    P.REFUNDED: frozenset(),
}


def to_money(value: Any, field: str = "value") -> Decimal:
    """Converte para Decimal com 2 casas (half-up); rejeita negativos e não numéricos."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidInputError(f"{field}: valor monetário inválido", field=field) from exc
    if not amount.is_finite() or amount < 0:
        raise InvalidInputError(f"{field}: valor monetário inválido", field=field)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class Split:
    clinic_amount: Decimal
    psychologist_amount: Decimal


def compute_split(final_value: Any, clinic_percentage: Any) -> Split:
    """
    Divide ``final_value`` entre clínica e psicólogo.

    A parte da clínica é arredondada half-up ao centavo e o psicólogo fica
    com o restante, de modo que a soma é sempre exatamente ``final_value``.
    """
    final = to_money(final_value, "final_value")
    try:
        pct = Decimal(str(clinic_percentage))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidInputError("clinic_percentage inválido", field="clinic_percentage") from exc
    if not pct.is_finite() or pct < 0 or pct > HUNDRED:
        raise InvalidInputError("clinic_percentage deve estar entre 0 e 100", field="clinic_percentage")
    clinic = (final * pct / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
    return Split(clinic_amount=clinic, psychologist_amount=final - clinic)


class PaymentStateMachine:
    """Transições do pagamento e cálculo do repasse."""

    def __init__(self, clock: Clock) -> None:
        self.clock = clock

    @staticmethod
    def ensure_transition(payment: PaymentEntity, target: PaymentStatus, attempted: str | None = None) -> None:
        if target not in PAYMENT_TRANSITIONS.get(payment.status, frozenset()):
            raise InvalidStateError("payment", payment.status, attempted or target)

    # ─────────────────────────── criação ───────────────────────────
    def build(
        self,
        payment_id: str,
        appointment: AppointmentEntity,
        psychologist: PsychologistEntity,
        session_value: Any = None,
        discount: Any = Decimal("0"),
    ) -> PaymentEntity:
        value = to_money(psychologist.session_value if session_value is None else session_value, "session_value")
        off = to_money(discount or 0, "discount")
        if off > value:
            raise InvalidInputError("discount não pode exceder session_value", field="discount")
        final = value - off
        pct = Decimal(str(psychologist.clinic_percentage)) if appointment.clinic_id else Decimal("0")
        split = compute_split(final, pct)
        now = self.clock.now()
        return PaymentEntity(
            id=payment_id,
            appointment_id=appointment.id,
            patient_id=appointment.patient_id,
            psychologist_id=appointment.psychologist_id,
            clinic_id=appointment.clinic_id,
            session_value=value,
            discount=off,
            final_value=final,
            clinic_percentage=pct,
            clinic_amount=split.clinic_amount,
            psychologist_amount=split.psychologist_amount,
            created_at=now,
            updated_at=now,
        )

    # ─────────────────────────── transições ───────────────────────────
    def register_method(
        self,
        payment: PaymentEntity,
        method: PaymentMethod,
        paid_at: datetime | None = None,
    ) -> PaymentEntity:
        self.ensure_transition(payment, P.AWAITING_CONFIRMATION, "register_method")
        return replace(
            payment,
            status=P.AWAITING_CONFIRMATION,
            method=PaymentMethod(method),
            paid_at=paid_at or self.clock.now(),
        )

    def confirm(self, payment: PaymentEntity, actor: Actor, internal_notes: str | None = None) -> PaymentEntity:
        self.ensure_transition(payment, P.CONFIRMED)
        return replace(
            payment,
            status=P.CONFIRMED,
            confirmed_at=self.clock.now(),
            confirmed_by=actor.id,
            internal_notes=internal_notes if internal_notes is not None else payment.internal_notes,
        )

    def cancel(self, payment: PaymentEntity, reason: str | None = None) -> PaymentEntity:
        self.ensure_transition(payment, P.CANCELLED)
        return replace(payment, status=P.CANCELLED, cancelled_at=self.clock.now(), cancel_reason=reason)

    def refund(self, payment: PaymentEntity, reason: str | None = None) -> PaymentEntity:
        self.ensure_transition(payment, P.REFUNDED, "refund")
        return replace(payment, status=P.REFUNDED, refunded_at=self.clock.now(), refund_reason=reason)

    def reprice(self, payment: PaymentEntity, session_value: Any, discount: Any = Decimal("0")) -> PaymentEntity:
        """Recalcula valor final e repasse usando o percentual gravado na criação."""
        if payment.status is not P.PENDING:
            raise InvalidStateError("payment", payment.status, "update_value")
        value = to_money(session_value, "session_value")
        off = to_money(discount or 0, "discount")
        if off > value:
            raise InvalidInputError("discount não pode exceder session_value", field="discount")
        final = value - off
        split = compute_split(final, payment.clinic_percentage)
        logger.debug("payment.repriced", payment_id=payment.id, previous=str(payment.final_value), final=str(final))
        return replace(
            payment,
            session_value=value,
            discount=off,
            final_value=final,
            clinic_amount=split.clinic_amount,
            psychologist_amount=split.psychologist_amount,
        )
