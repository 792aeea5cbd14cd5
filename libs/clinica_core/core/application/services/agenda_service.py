from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from clinica_core.core.application.commands.appointment_commands import (
    CancelAppointmentCommand,
    CreateAppointmentCommand,
    RescheduleAppointmentCommand,
    RespondAppointmentCommand,
    TransitionAppointmentStatusCommand,
    UpdateAppointmentFieldsCommand,
)
from clinica_core.core.application.commands.payment_commands import (
    CancelPaymentCommand,
    ConfirmPaymentCommand,
    ConfirmPaymentsBatchCommand,
    RefundPaymentCommand,
    RegisterPaymentMethodCommand,
    UpdatePaymentValueCommand,
)
from clinica_core.core.application.cqrs import BaseService, PagedResult
from clinica_core.core.application.dtos.batch_result_dto import BatchConfirmResultDTO
from clinica_core.core.application.dtos.financial_summary_dto import FinancialSummaryDTO
from clinica_core.core.application.dtos.slot_dto import SlotDTO
from clinica_core.core.application.queries.appointment_queries import (
    AvailableSlotsQuery,
    GetAppointmentQuery,
    ListAppointmentsQuery,
)
from clinica_core.core.application.queries.financial_queries import GetFinancialSummaryQuery
from clinica_core.core.application.queries.payment_queries import GetPaymentQuery, ListPaymentsQuery
from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.appointment_entity import AppointmentEntity
from clinica_core.core.domain.entities.enums import AppointmentStatus, Modality, PaymentMethod, SummaryScope
from clinica_core.core.domain.entities.payment_entity import PaymentEntity
from clinica_core.core.domain.events.exceptions import InvalidInputError
from clinica_core.core.domain.services.identity_resolver import require_id


def _require(reference: Any, field: str) -> str:
    try:
        return require_id(reference, field)
    except ValueError as exc:
        raise InvalidInputError(str(exc), field=field) from exc


class AgendaService(BaseService):
    """
    Fachada da agenda: uma chamada por operação exposta.

    Aceita ids em qualquer formato suportado pelo identity resolver e
    despacha o comando/consulta correspondente nos buses.
    """

    # ------------------------------------------------ atendimentos
    def create_appointment(
        self,
        actor: Actor,
        psychologist_id: Any,
        patient_id: Any,
        scheduled_at: datetime,
        duration_minutes: int | None = None,
        modality: Modality | str = Modality.ONLINE,
        clinic_id: Any = None,
        notes: str | None = None,
        session_value: Decimal | None = None,
        discount: Decimal = Decimal("0"),
    ) -> AppointmentEntity:
        return self.execute(CreateAppointmentCommand(
            actor=actor,
            psychologist_id=_require(psychologist_id, "psychologist_id"),
            patient_id=_require(patient_id, "patient_id"),
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
            modality=Modality(modality),
            clinic_id=_require(clinic_id, "clinic_id") if clinic_id is not None else None,
            notes=notes,
            session_value=session_value,
            discount=discount,
        ))

    def reschedule_appointment(
        self,
        actor: Actor,
        appointment_id: Any,
        new_time: datetime,
        duration_minutes: int | None = None,
        expected_version: int | None = None,
    ) -> AppointmentEntity:
        return self.execute(RescheduleAppointmentCommand(
            actor=actor,
            appointment_id=_require(appointment_id, "appointment_id"),
            new_time=new_time,
            duration_minutes=duration_minutes,
            expected_version=expected_version,
        ))

    def update_appointment_fields(
        self,
        actor: Actor,
        appointment_id: Any,
        modality: Modality | str | None = None,
        notes: str | None = None,
        psychologist_id: Any = None,
        expected_version: int | None = None,
    ) -> AppointmentEntity:
        return self.execute(UpdateAppointmentFieldsCommand(
            actor=actor,
            appointment_id=_require(appointment_id, "appointment_id"),
            modality=Modality(modality) if modality is not None else None,
            notes=notes,
            psychologist_id=_require(psychologist_id, "psychologist_id") if psychologist_id is not None else None,
            expected_version=expected_version,
        ))

    def transition_appointment_status(
        self,
        actor: Actor,
        appointment_id: Any,
        target: AppointmentStatus | str,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> AppointmentEntity:
        return self.execute(TransitionAppointmentStatusCommand(
            actor=actor,
            appointment_id=_require(appointment_id, "appointment_id"),
            target_status=AppointmentStatus(target),
            reason=reason,
            expected_version=expected_version,
        ))

    def cancel_appointment(
        self,
        actor: Actor,
        appointment_id: Any,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> AppointmentEntity:
        return self.execute(CancelAppointmentCommand(
            actor=actor,
            appointment_id=_require(appointment_id, "appointment_id"),
            reason=reason,
            expected_version=expected_version,
        ))

    def respond_appointment(
        self,
        actor: Actor,
        appointment_id: Any,
        accept: bool,
        expected_version: int | None = None,
    ) -> AppointmentEntity:
        return self.execute(RespondAppointmentCommand(
            actor=actor,
            appointment_id=_require(appointment_id, "appointment_id"),
            accept=accept,
            expected_version=expected_version,
        ))

    def get_appointment(self, actor: Actor, appointment_id: Any) -> AppointmentEntity:
        return self.query(GetAppointmentQuery(actor=actor, appointment_id=_require(appointment_id, "appointment_id")))

    def list_appointments(
        self,
        actor: Actor,
        filtros: dict[str, Any] | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> PagedResult[AppointmentEntity]:
        return self.paginate(ListAppointmentsQuery(actor=actor, filtros=filtros or {}, page=page, page_size=page_size))

    def available_slots(
        self,
        actor: Actor,
        psychologist_id: Any,
        day: date,
        duration_minutes: int | None = None,
    ) -> list[SlotDTO]:
        return self.query(AvailableSlotsQuery(
            actor=actor,
            psychologist_id=_require(psychologist_id, "psychologist_id"),
            day=day,
            duration_minutes=duration_minutes,
        ))

    # ------------------------------------------------ pagamentos
    def register_payment_method(
        self,
        actor: Actor,
        payment_id: Any,
        method: PaymentMethod | str,
        paid_at: datetime | None = None,
        expected_version: int | None = None,
    ) -> PaymentEntity:
        return self.execute(RegisterPaymentMethodCommand(
            actor=actor,
            payment_id=_require(payment_id, "payment_id"),
            method=method,
            paid_at=paid_at,
            expected_version=expected_version,
        ))

    def confirm_payment(
        self,
        actor: Actor,
        payment_id: Any,
        internal_notes: str | None = None,
        expected_version: int | None = None,
    ) -> PaymentEntity:
        return self.execute(ConfirmPaymentCommand(
            actor=actor,
            payment_id=_require(payment_id, "payment_id"),
            internal_notes=internal_notes,
            expected_version=expected_version,
        ))

    def cancel_payment(
        self,
        actor: Actor,
        payment_id: Any,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> PaymentEntity:
        return self.execute(CancelPaymentCommand(
            actor=actor,
            payment_id=_require(payment_id, "payment_id"),
            reason=reason,
            expected_version=expected_version,
        ))

    def refund_payment(
        self,
        actor: Actor,
        payment_id: Any,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> PaymentEntity:
        return self.execute(RefundPaymentCommand(
            actor=actor,
            payment_id=_require(payment_id, "payment_id"),
            reason=reason,
            expected_version=expected_version,
        ))

    def update_payment_value(
        self,
        actor: Actor,
        payment_id: Any,
        session_value: Decimal,
        discount: Decimal = Decimal("0"),
        expected_version: int | None = None,
    ) -> PaymentEntity:
        return self.execute(UpdatePaymentValueCommand(
            actor=actor,
            payment_id=_require(payment_id, "payment_id"),
            session_value=session_value,
            discount=discount,
            expected_version=expected_version,
        ))

    def confirm_payments_batch(
        self,
        actor: Actor,
        payment_ids: Iterable[Any],
        internal_notes: str | None = None,
    ) -> BatchConfirmResultDTO:
        return self.execute(ConfirmPaymentsBatchCommand(
            actor=actor,
            payment_ids=tuple(payment_ids),
            internal_notes=internal_notes,
        ))

    def get_payment(self, actor: Actor, payment_id: Any) -> PaymentEntity:
        return self.query(GetPaymentQuery(actor=actor, payment_id=_require(payment_id, "payment_id")))

    def list_payments(
        self,
        actor: Actor,
        filtros: dict[str, Any] | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> PagedResult[PaymentEntity]:
        return self.paginate(ListPaymentsQuery(actor=actor, filtros=filtros or {}, page=page, page_size=page_size))

    # ------------------------------------------------ financeiro
    def get_financial_summary(
        self,
        actor: Actor,
        scope: SummaryScope | str,
        scope_id: Any,
        start: date,
        end: date,
    ) -> FinancialSummaryDTO:
        return self.query(GetFinancialSummaryQuery(
            actor=actor,
            scope=SummaryScope(scope),
            scope_id=_require(scope_id, "scope_id"),
            start=start,
            end=end,
        ))
