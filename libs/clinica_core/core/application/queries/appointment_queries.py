from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from clinica_core.core.application.cqrs import PaginatedQueryDTO, QueryDTO
from clinica_core.core.domain.entities.actor_entity import Actor


@dataclass(frozen=True, kw_only=True)
class GetAppointmentQuery(QueryDTO[dict]):
    actor: Actor
    appointment_id: str


@dataclass(frozen=True, kw_only=True)
class ListAppointmentsQuery(PaginatedQueryDTO[dict]):
    """filtros: psychologist_id, patient_id, clinic_id, status, start, end."""
    actor: Actor


@dataclass(frozen=True, kw_only=True)
class AvailableSlotsQuery(QueryDTO[dict]):
    actor: Actor
    psychologist_id: str
    day: date
    duration_minutes: int | None = None
