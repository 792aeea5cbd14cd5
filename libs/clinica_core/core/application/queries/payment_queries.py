from __future__ import annotations

from dataclasses import dataclass

from clinica_core.core.application.cqrs import PaginatedQueryDTO, QueryDTO
from clinica_core.core.domain.entities.actor_entity import Actor


@dataclass(frozen=True, kw_only=True)
class GetPaymentQuery(QueryDTO[dict]):
    actor: Actor
    payment_id: str


@dataclass(frozen=True, kw_only=True)
class ListPaymentsQuery(PaginatedQueryDTO[dict]):
    """filtros: psychologist_id, patient_id, clinic_id, status, appointment_id."""
    actor: Actor
