from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from clinica_core.core.domain.entities._base import EntityMixin
from clinica_core.core.domain.entities.enums import AppointmentStatus, Modality

TERMINAL_APPOINTMENT_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
})

BILLABLE_APPOINTMENT_STATUSES = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.AWAITING_PATIENT,
    AppointmentStatus.AWAITING_PSYCHOLOGIST,
    AppointmentStatus.CONFIRMED,
})


@dataclass(slots=True)
class AppointmentEntity(EntityMixin):
    id: str
    psychologist_id: str
    patient_id: str
    scheduled_at: datetime
    duration_minutes: int = 50
    modality: Modality = Modality.ONLINE
    status: AppointmentStatus = AppointmentStatus.PENDING
    clinic_id: str | None = None
    notes: str | None = None
    payment_id: str | None = None
    cancel_reason: str | None = None
    cancelled_by: str | None = None
    patient_declined_at: datetime | None = None
    version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.modality = Modality(self.modality)
        self.status = AppointmentStatus(self.status)

    @property
    def ends_at(self) -> datetime:
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_APPOINTMENT_STATUSES

    @property
    def is_billable(self) -> bool:
        return self.status in BILLABLE_APPOINTMENT_STATUSES

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Intervalos semiabertos ``[início, fim)``; encostar não conflita."""
        return self.scheduled_at < end and self.ends_at > start
