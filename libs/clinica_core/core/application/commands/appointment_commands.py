from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from clinica_core.core.application.cqrs import CommandDTO
from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.enums import AppointmentStatus, Modality


@dataclass(frozen=True, slots=True)
class CreateAppointmentCommand(CommandDTO):
    actor: Actor
    psychologist_id: str
    patient_id: str
    scheduled_at: datetime
    duration_minutes: int | None = None
    modality: Modality = Modality.ONLINE
    clinic_id: str | None = None
    notes: str | None = None
    session_value: Decimal | None = None
    discount: Decimal = Decimal("0")


@dataclass(frozen=True, slots=True)
class RescheduleAppointmentCommand(CommandDTO):
    actor: Actor
    appointment_id: str
    new_time: datetime
    duration_minutes: int | None = None
    expected_version: int | None = None


@dataclass(frozen=True, slots=True)
class UpdateAppointmentFieldsCommand(CommandDTO):
    """Campos ``None`` não são alterados; ``notes=""`` limpa as observações."""
    actor: Actor
    appointment_id: str
    modality: Modality | None = None
    notes: str | None = None
    psychologist_id: str | None = None
    expected_version: int | None = None


@dataclass(frozen=True, slots=True)
class TransitionAppointmentStatusCommand(CommandDTO):
    actor: Actor
    appointment_id: str
    target_status: AppointmentStatus
    reason: str | None = None
    expected_version: int | None = None


@dataclass(frozen=True, slots=True)
class CancelAppointmentCommand(CommandDTO):
    actor: Actor
    appointment_id: str
    reason: str | None = None
    expected_version: int | None = None


@dataclass(frozen=True, slots=True)
class RespondAppointmentCommand(CommandDTO):
    actor: Actor
    appointment_id: str
    accept: bool
    expected_version: int | None = None
