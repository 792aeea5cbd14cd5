from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal


# ───────────────────────────────────────────────
# Event Base e Domain Events
# ───────────────────────────────────────────────
@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    actor_id: str | None = None
    actor_role: str | None = None


# ╭──────────────────────────────────────────────╮
# │ 1. Atendimentos                              │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class AppointmentCreated(DomainEvent):
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None
    scheduled_at: datetime
    status: str


@dataclass(frozen=True)
class AppointmentRescheduled(DomainEvent):
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None
    previous_at: datetime
    scheduled_at: datetime


@dataclass(frozen=True)
class AppointmentUpdated(DomainEvent):
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None
    changed_fields: tuple[str, ...]


@dataclass(frozen=True)
class AppointmentStatusChanged(DomainEvent):
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None
    from_status: str
    to_status: str


@dataclass(frozen=True)
class AppointmentConfirmed(DomainEvent):
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None
    from_status: str


@dataclass(frozen=True)
class AppointmentCancelled(DomainEvent):
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None
    from_status: str
    reason: str | None = None


@dataclass(frozen=True)
class AppointmentDeclinedByPatient(DomainEvent):
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None


# ╭──────────────────────────────────────────────╮
# │ 2. Pagamentos                                │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class PaymentCreated(DomainEvent):
    payment_id: str
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None
    final_value: Decimal
    clinic_amount: Decimal
    psychologist_amount: Decimal


@dataclass(frozen=True)
class PaymentMethodRegistered(DomainEvent):
    payment_id: str
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None
    method: str


@dataclass(frozen=True)
class PaymentConfirmed(DomainEvent):
    payment_id: str
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None
    final_value: Decimal


@dataclass(frozen=True)
class PaymentCancelled(DomainEvent):
    payment_id: str
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None
    reason: str | None = None


@dataclass(frozen=True)
class PaymentRefunded(DomainEvent):
    payment_id: str
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None
    final_value: Decimal
    reason: str | None = None


@dataclass(frozen=True)
class PaymentValueUpdated(DomainEvent):
    payment_id: str
    appointment_id: str
    psychologist_id: str
    patient_id: str
    clinic_id: str | None
    previous_value: Decimal
    final_value: Decimal


@dataclass(frozen=True)
class PaymentBatchConfirmed(DomainEvent):
    requested: int
    confirmed: int
    failed: int
