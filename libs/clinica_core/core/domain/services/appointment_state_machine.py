from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta

import structlog

from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.appointment_entity import (
    TERMINAL_APPOINTMENT_STATUSES,
    AppointmentEntity,
)
from clinica_core.core.domain.entities.enums import ActorRole, AppointmentStatus
from clinica_core.core.domain.events.exceptions import (
    DoubleBookingError,
    InvalidStateError,
    InvalidTimeWindowError,
)
from clinica_core.core.domain.services.clock import Clock

logger = structlog.get_logger(__name__)

S = AppointmentStatus

_PRE_CONFIRMATION_TARGETS = frozenset({S.AWAITING_PATIENT, S.AWAITING_PSYCHOLOGIST, S.CONFIRMED, S.CANCELLED})

APPOINTMENT_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    S.PENDING: _PRE_CONFIRMATION_TARGETS,
    S.SCHEDULED: _PRE_CONFIRMATION_TARGETS,
    S.AWAITING_PATIENT: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.AWAITING_PSYCHOLOGIST: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.COMPLETED, S.CANCELLED, S.NO_SHOW}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.NO_SHOW: frozenset(),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in APPOINTMENT_TRANSITIONS.get(current, frozenset())


class AppointmentStateMachine:
    """
    Regras de ciclo de vida de um atendimento.

    Opera sobre um estado recém-lido; a detecção de escrita concorrente
    fica a cargo do ConflictCoordinator.
    """

    def __init__(self, clock: Clock) -> None:
        self.clock = clock

    # ─────────────────────────── criação ───────────────────────────
    @staticmethod
    def initial_status_for(role: ActorRole) -> AppointmentStatus:
        """Paciente solicita (pending); psicólogo ou clínica agendam direto."""
        return S.PENDING if role is ActorRole.PATIENT else S.SCHEDULED

    # ─────────────────────────── janela de horário ───────────────────────────
    def validate_window(self, start: datetime, duration_minutes: int) -> tuple[datetime, datetime]:
        if not isinstance(start, datetime) or start.tzinfo is None or start.utcoffset() is None:
            raise InvalidTimeWindowError("Horário deve ser informado com timezone", proposed=None)
        if not isinstance(duration_minutes, int) or isinstance(duration_minutes, bool) or duration_minutes <= 0:
            raise InvalidTimeWindowError("Duração deve ser um inteiro positivo em minutos", proposed=start)
        if start <= self.clock.now():
            raise InvalidTimeWindowError("Horário deve estar no futuro", proposed=start)
        return start, start + timedelta(minutes=duration_minutes)

    @staticmethod
    def ensure_no_overlap(
        psychologist_id: str,
        start: datetime,
        end: datetime,
        existing: Iterable[AppointmentEntity],
        *,
        exclude_id: str | None = None,
    ) -> None:
        for other in existing:
            if other.id == exclude_id or other.status is S.CANCELLED:
                continue
            if other.psychologist_id == psychologist_id and other.overlaps(start, end):
                raise DoubleBookingError(
                    other.id,
                    psychologist_id=psychologist_id,
                    window_start=other.scheduled_at,
                    window_end=other.ends_at,
                )

    # ─────────────────────────── transições ───────────────────────────
    @staticmethod
    def ensure_mutable(appt: AppointmentEntity, attempted: str) -> None:
        if appt.status in TERMINAL_APPOINTMENT_STATUSES:
            raise InvalidStateError("appointment", appt.status, attempted)

    @staticmethod
    def ensure_transition(appt: AppointmentEntity, target: AppointmentStatus) -> None:
        if not can_transition(appt.status, target):
            raise InvalidStateError("appointment", appt.status, target)

    def transition(
        self,
        appt: AppointmentEntity,
        target: AppointmentStatus,
        *,
        actor: Actor | None = None,
        reason: str | None = None,
    ) -> AppointmentEntity:
        self.ensure_transition(appt, target)
        changes: dict = {"status": target}
        if target is S.CANCELLED:
            changes["cancel_reason"] = reason
            changes["cancelled_by"] = actor.role.value if actor else None
        logger.debug(
            "appointment.transition",
            appointment_id=appt.id,
            from_status=appt.status.value,
            to_status=target.value,
        )
        return replace(appt, **changes)

    def reschedule(self, appt: AppointmentEntity, start: datetime, duration_minutes: int) -> AppointmentEntity:
        self.ensure_mutable(appt, "reschedule")
        return replace(appt, scheduled_at=start, duration_minutes=duration_minutes)

    def record_decline(self, appt: AppointmentEntity) -> AppointmentEntity:
        if appt.status is not S.AWAITING_PATIENT:
            raise InvalidStateError("appointment", appt.status, "decline")
        return replace(appt, patient_declined_at=self.clock.now())
