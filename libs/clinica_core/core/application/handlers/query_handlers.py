from __future__ import annotations

from typing import Any

from clinica_core.core.application.cqrs import PagedResult, QueryHandler
from clinica_core.core.application.dtos.financial_summary_dto import FinancialSummaryDTO
from clinica_core.core.application.dtos.slot_dto import SlotDTO
from clinica_core.core.application.queries.appointment_queries import (
    AvailableSlotsQuery,
    GetAppointmentQuery,
    ListAppointmentsQuery,
)
from clinica_core.core.application.queries.financial_queries import GetFinancialSummaryQuery
from clinica_core.core.application.queries.payment_queries import GetPaymentQuery, ListPaymentsQuery
from clinica_core.core.application.services.availability_service import AvailabilityService
from clinica_core.core.application.services.financial_aggregator import FinancialAggregator
from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.appointment_entity import AppointmentEntity
from clinica_core.core.domain.entities.enums import ActorRole
from clinica_core.core.domain.entities.payment_entity import PaymentEntity
from clinica_core.core.domain.events.exceptions import NotFoundError
from clinica_core.core.domain.repositories.appointment_repository import AppointmentRepository
from clinica_core.core.domain.repositories.payment_repository import PaymentRepository
from clinica_core.core.domain.services.permission_guard import (
    Operation,
    PermissionGuard,
    PermissionSubject,
)

_SCOPE_KEY = {
    ActorRole.CLINIC: "clinic_id",
    ActorRole.PSYCHOLOGIST: "psychologist_id",
    ActorRole.PATIENT: "patient_id",
}


def scoped_filters(actor: Actor, filtros: dict[str, Any] | None) -> dict[str, Any]:
    """Listagens sempre restritas ao escopo do próprio ator."""
    scoped = {k: v for k, v in (filtros or {}).items() if v not in (None, "")}
    scoped[_SCOPE_KEY[actor.role]] = actor.id
    return scoped


class GetAppointmentHandler(QueryHandler[GetAppointmentQuery, AppointmentEntity]):
    def __init__(self, repo: AppointmentRepository, guard: PermissionGuard):
        self.repo = repo
        self.guard = guard

    def handle(self, q: GetAppointmentQuery) -> AppointmentEntity:
        appt = self.repo.find_by_id(q.appointment_id)
        if appt is None:
            raise NotFoundError("appointment", q.appointment_id)
        self.guard.ensure(q.actor, Operation.READ, PermissionSubject.for_appointment(appt))
        return appt


class ListAppointmentsHandler(QueryHandler[ListAppointmentsQuery, PagedResult[AppointmentEntity]]):
    def __init__(self, repo: AppointmentRepository):
        self.repo = repo

    def handle(self, q: ListAppointmentsQuery) -> PagedResult[AppointmentEntity]:
        return self.repo.list(
            filtros=scoped_filters(q.actor, q.filtros),
            page=q.page,
            page_size=q.page_size,
        )


class AvailableSlotsHandler(QueryHandler[AvailableSlotsQuery, list[SlotDTO]]):
    def __init__(self, service: AvailabilityService):
        self.service = service

    def handle(self, q: AvailableSlotsQuery) -> list[SlotDTO]:
        return self.service.available_slots(q.psychologist_id, q.day, q.duration_minutes)


class GetPaymentHandler(QueryHandler[GetPaymentQuery, PaymentEntity]):
    def __init__(self, repo: PaymentRepository, guard: PermissionGuard):
        self.repo = repo
        self.guard = guard

    def handle(self, q: GetPaymentQuery) -> PaymentEntity:
        payment = self.repo.find_by_id(q.payment_id)
        if payment is None:
            raise NotFoundError("payment", q.payment_id)
        self.guard.ensure(q.actor, Operation.READ, PermissionSubject.for_payment(payment))
        return payment


class ListPaymentsHandler(QueryHandler[ListPaymentsQuery, PagedResult[PaymentEntity]]):
    def __init__(self, repo: PaymentRepository):
        self.repo = repo

    def handle(self, q: ListPaymentsQuery) -> PagedResult[PaymentEntity]:
        return self.repo.list(
            filtros=scoped_filters(q.actor, q.filtros),
            page=q.page,
            page_size=q.page_size,
        )


class GetFinancialSummaryHandler(QueryHandler[GetFinancialSummaryQuery, FinancialSummaryDTO]):
    def __init__(self, aggregator: FinancialAggregator):
        self.aggregator = aggregator

    def handle(self, q: GetFinancialSummaryQuery) -> FinancialSummaryDTO:
        return self.aggregator.summarize(q.actor, q.scope, q.scope_id, q.start, q.end)
