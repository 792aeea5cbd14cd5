from __future__ import annotations

from dataclasses import replace

import structlog

from clinica_core.core.application.commands.appointment_commands import (
    CancelAppointmentCommand,
    CreateAppointmentCommand,
    RescheduleAppointmentCommand,
    RespondAppointmentCommand,
    TransitionAppointmentStatusCommand,
    UpdateAppointmentFieldsCommand,
)
from clinica_core.core.application.cqrs import CommandHandler, HandlerResult
from clinica_core.core.application.handlers._event_fields import appointment_fields, payment_fields
from clinica_core.core.application.services.conflict_coordinator import ConflictCoordinator
from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.agenda_settings_entity import AgendaSettings
from clinica_core.core.domain.entities.appointment_entity import AppointmentEntity
from clinica_core.core.domain.entities.enums import AppointmentStatus, Modality, PaymentStatus
from clinica_core.core.domain.entities.payment_entity import PaymentEntity
from clinica_core.core.domain.entities.psychologist_entity import PsychologistEntity
from clinica_core.core.domain.events.events import (
    AppointmentCancelled,
    AppointmentConfirmed,
    AppointmentCreated,
    AppointmentDeclinedByPatient,
    AppointmentRescheduled,
    AppointmentStatusChanged,
    AppointmentUpdated,
    DomainEvent,
    PaymentCancelled,
    PaymentCreated,
)
from clinica_core.core.domain.events.exceptions import (
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from clinica_core.core.domain.repositories.appointment_repository import AppointmentRepository
from clinica_core.core.domain.repositories.directory_repository import (
    ClinicRepository,
    PatientRepository,
    PsychologistRepository,
)
from clinica_core.core.domain.repositories.payment_repository import PaymentRepository
from clinica_core.core.domain.services.appointment_state_machine import AppointmentStateMachine
from clinica_core.core.domain.services.identity_resolver import new_id
from clinica_core.core.domain.services.payment_state_machine import PaymentStateMachine
from clinica_core.core.domain.services.permission_guard import (
    EntityKind,
    Operation,
    PermissionGuard,
    PermissionSubject,
)

logger = structlog.get_logger(__name__)

S = AppointmentStatus

_OPERATION_FOR_TARGET: dict[AppointmentStatus, Operation] = {
    S.CONFIRMED: Operation.CONFIRM,
    S.CANCELLED: Operation.CANCEL,
    S.COMPLETED: Operation.COMPLETE,
    S.NO_SHOW: Operation.NO_SHOW,
}

APPOINTMENT_CANCELLED_REASON = "appointment cancelled"
PATIENT_DECLINED_REASON = "declined by patient"


# ───────────────────────────────────────────────
# Base compartilhada pelos handlers de escrita
# ───────────────────────────────────────────────
class _AppointmentWriteHandler:
    def __init__(
        self,
        appointment_repo: AppointmentRepository,
        payment_repo: PaymentRepository,
        psychologist_repo: PsychologistRepository,
        patient_repo: PatientRepository,
        clinic_repo: ClinicRepository,
        guard: PermissionGuard,
        coordinator: ConflictCoordinator,
        machine: AppointmentStateMachine,
        payment_machine: PaymentStateMachine,
        settings: AgendaSettings,
    ) -> None:
        self.appointment_repo = appointment_repo
        self.payment_repo = payment_repo
        self.psychologist_repo = psychologist_repo
        self.patient_repo = patient_repo
        self.clinic_repo = clinic_repo
        self.guard = guard
        self.coordinator = coordinator
        self.machine = machine
        self.payment_machine = payment_machine
        self.settings = settings

    # ---------- leitura ----------
    def _load(self, appointment_id: str) -> AppointmentEntity:
        return self.coordinator.load("appointment", appointment_id, self.appointment_repo.find_by_id)

    def _psychologist(self, psychologist_id: str) -> PsychologistEntity:
        psychologist = self.psychologist_repo.find_by_id(psychologist_id)
        if psychologist is None:
            raise NotFoundError("psychologist", psychologist_id)
        return psychologist

    def _clinic_name(self, clinic_id: str | None) -> str | None:
        if not clinic_id:
            return None
        clinic = self.clinic_repo.find_by_id(clinic_id)
        return clinic.name if clinic else None

    def _subject(self, appt: AppointmentEntity) -> PermissionSubject:
        return PermissionSubject.for_appointment(
            appt,
            self.psychologist_repo.find_by_id(appt.psychologist_id),
            self._clinic_name(appt.clinic_id),
        )

    # ---------- escrita ----------
    def _persist(self, current: AppointmentEntity, updated: AppointmentEntity, **kwargs) -> AppointmentEntity:
        return self.coordinator.persist(
            "appointment", current, updated,
            self.appointment_repo.save, self.appointment_repo.find_by_id,
            **kwargs,
        )

    def _build_payment(self, appt: AppointmentEntity, session_value=None, discount=None) -> PaymentEntity:
        psychologist = self._psychologist(appt.psychologist_id)
        return self.payment_machine.build(new_id(), appt, psychologist, session_value, discount)

    def _payment_created(self, payment: PaymentEntity, actor: Actor) -> PaymentCreated:
        return PaymentCreated(
            **payment_fields(payment, actor),
            final_value=payment.final_value,
            clinic_amount=payment.clinic_amount,
            psychologist_amount=payment.psychologist_amount,
        )

    def _status_event(
        self,
        before: AppointmentEntity,
        after: AppointmentEntity,
        actor: Actor,
        reason: str | None,
    ) -> DomainEvent:
        fields = appointment_fields(after, actor)
        if after.status is S.CONFIRMED:
            return AppointmentConfirmed(**fields, from_status=before.status.value)
        if after.status is S.CANCELLED:
            return AppointmentCancelled(**fields, from_status=before.status.value, reason=reason)
        return AppointmentStatusChanged(**fields, from_status=before.status.value, to_status=after.status.value)

    def _cancel_pending_payment(self, appt: AppointmentEntity, actor: Actor) -> list[DomainEvent]:
        if not appt.payment_id:
            return []
        payment = self.payment_repo.find_by_id(appt.payment_id)
        if payment is None or payment.status is not PaymentStatus.PENDING:
            return []
        cancelled = self.payment_machine.cancel(payment, APPOINTMENT_CANCELLED_REASON)
        saved = self.coordinator.persist(
            "payment", payment, cancelled, self.payment_repo.save, self.payment_repo.find_by_id,
        )
        logger.info("payment.auto_cancelled", payment_id=saved.id, appointment_id=appt.id)
        return [PaymentCancelled(**payment_fields(saved, actor), reason=APPOINTMENT_CANCELLED_REASON)]

    def _apply_transition(
        self,
        appt: AppointmentEntity,
        target: AppointmentStatus,
        actor: Actor,
        reason: str | None = None,
    ) -> tuple[AppointmentEntity, list[DomainEvent]]:
        """Transição + criação lazy do pagamento + cancelamento do pagamento pendente."""
        updated = self.machine.transition(appt, target, actor=actor, reason=reason)
        payment = None
        if updated.is_billable and updated.payment_id is None:
            payment = self._build_payment(updated)
            updated = replace(updated, payment_id=payment.id)

        saved = self._persist(appt, updated)
        events: list[DomainEvent] = [self._status_event(appt, saved, actor, reason)]
        if payment is not None:
            self.payment_repo.add(payment)
            events.append(self._payment_created(payment, actor))
        if target is S.CANCELLED:
            events.extend(self._cancel_pending_payment(saved, actor))

        logger.info(
            "appointment.status_changed",
            appointment_id=saved.id,
            from_status=appt.status.value,
            to_status=saved.status.value,
            actor_role=actor.role.value,
        )
        return saved, events

    def _cancel(
        self,
        appt: AppointmentEntity,
        actor: Actor,
        reason: str | None,
        expected_version: int | None,
    ) -> HandlerResult[AppointmentEntity]:
        self.guard.ensure(actor, Operation.CANCEL, self._subject(appt))
        if appt.status is S.CANCELLED:
            logger.info("appointment.cancel.noop", appointment_id=appt.id)
            return HandlerResult(appt)
        self.coordinator.check_precondition("appointment", appt, expected_version)
        saved, events = self._apply_transition(appt, S.CANCELLED, actor, reason)
        return HandlerResult(saved, events)


# ───────────────────────────────────────────────
# Handlers
# ───────────────────────────────────────────────
class CreateAppointmentHandler(_AppointmentWriteHandler, CommandHandler[CreateAppointmentCommand]):
    def handle(self, cmd: CreateAppointmentCommand) -> HandlerResult[AppointmentEntity]:
        actor = cmd.actor
        psychologist = self._psychologist(cmd.psychologist_id)
        if self.patient_repo.find_by_id(cmd.patient_id) is None:
            raise NotFoundError("patient", cmd.patient_id)
        if cmd.clinic_id and cmd.clinic_id != psychologist.clinic_id:
            raise InvalidInputError(
                "Psicólogo não pertence à clínica informada",
                clinic_id=cmd.clinic_id,
                psychologist_id=psychologist.id,
            )
        clinic_id = cmd.clinic_id or psychologist.clinic_id

        subject = PermissionSubject(
            kind=EntityKind.APPOINTMENT,
            psychologist_id=psychologist.id,
            patient_id=cmd.patient_id,
            clinic_id=clinic_id,
            psychologist_name=psychologist.name,
            clinic_name=self._clinic_name(clinic_id),
            delegated=psychologist.delegates_to_clinic and clinic_id is not None,
        )
        self.guard.ensure(actor, Operation.CREATE, subject)

        duration = cmd.duration_minutes or self.settings.default_duration_minutes
        start, end = self.machine.validate_window(cmd.scheduled_at, duration)
        now = self.coordinator.clock.now()

        with self.coordinator.atomic():
            schedule_version = self.appointment_repo.get_schedule_version(psychologist.id)
            self.machine.ensure_no_overlap(
                psychologist.id, start, end,
                self.appointment_repo.list_overlapping(psychologist.id, start, end),
            )
            appt = AppointmentEntity(
                id=new_id(),
                psychologist_id=psychologist.id,
                patient_id=cmd.patient_id,
                clinic_id=clinic_id,
                scheduled_at=start,
                duration_minutes=duration,
                modality=Modality(cmd.modality),
                status=self.machine.initial_status_for(actor.role),
                notes=cmd.notes,
                created_at=now,
                updated_at=now,
            )
            payment = None
            if appt.is_billable:
                payment = self.payment_machine.build(new_id(), appt, psychologist, cmd.session_value, cmd.discount)
                appt.payment_id = payment.id

            appt = self.coordinator.insert(
                "appointment", appt,
                self.appointment_repo.add, self.appointment_repo.find_by_id,
                schedule_version=schedule_version,
            )
            if payment is not None:
                self.payment_repo.add(payment)

        events: list[DomainEvent] = [
            AppointmentCreated(
                **appointment_fields(appt, actor),
                scheduled_at=appt.scheduled_at,
                status=appt.status.value,
            )
        ]
        if payment is not None:
            events.append(self._payment_created(payment, actor))
        logger.info(
            "appointment.created",
            appointment_id=appt.id,
            psychologist_id=appt.psychologist_id,
            status=appt.status.value,
            payment_id=appt.payment_id,
        )
        return HandlerResult(appt, events)


class RescheduleAppointmentHandler(_AppointmentWriteHandler, CommandHandler[RescheduleAppointmentCommand]):
    """Não é idempotente: cada chamada valida a nova janela contra a agenda atual."""

    def handle(self, cmd: RescheduleAppointmentCommand) -> HandlerResult[AppointmentEntity]:
        with self.coordinator.atomic():
            appt = self._load(cmd.appointment_id)
            self.guard.ensure(cmd.actor, Operation.RESCHEDULE, self._subject(appt))
            self.coordinator.check_precondition("appointment", appt, cmd.expected_version)
            self.machine.ensure_mutable(appt, "reschedule")

            duration = cmd.duration_minutes or appt.duration_minutes
            start, end = self.machine.validate_window(cmd.new_time, duration)
            schedule_version = self.appointment_repo.get_schedule_version(appt.psychologist_id)
            self.machine.ensure_no_overlap(
                appt.psychologist_id, start, end,
                self.appointment_repo.list_overlapping(appt.psychologist_id, start, end, exclude_id=appt.id),
                exclude_id=appt.id,
            )
            saved = self._persist(
                appt,
                self.machine.reschedule(appt, start, duration),
                schedule_version=schedule_version,
            )

        logger.info(
            "appointment.rescheduled",
            appointment_id=saved.id,
            previous_at=appt.scheduled_at.isoformat(),
            scheduled_at=saved.scheduled_at.isoformat(),
        )
        return HandlerResult(saved, [
            AppointmentRescheduled(
                **appointment_fields(saved, cmd.actor),
                previous_at=appt.scheduled_at,
                scheduled_at=saved.scheduled_at,
            )
        ])


class UpdateAppointmentFieldsHandler(_AppointmentWriteHandler, CommandHandler[UpdateAppointmentFieldsCommand]):
    def handle(self, cmd: UpdateAppointmentFieldsCommand) -> HandlerResult[AppointmentEntity]:
        with self.coordinator.atomic():
            appt = self._load(cmd.appointment_id)

            changes: dict = {}
            if cmd.modality is not None and Modality(cmd.modality) is not appt.modality:
                changes["modality"] = Modality(cmd.modality)
            if cmd.notes is not None and (cmd.notes or None) != appt.notes:
                changes["notes"] = cmd.notes or None
            new_psychologist = None
            if cmd.psychologist_id and cmd.psychologist_id != appt.psychologist_id:
                new_psychologist = self._psychologist(cmd.psychologist_id)
                changes["psychologist_id"] = new_psychologist.id

            subject = self._subject(appt)
            if new_psychologist is None or set(changes) - {"psychologist_id"}:
                self.guard.ensure(cmd.actor, Operation.UPDATE_FIELDS, subject)
            if new_psychologist is not None:
                self.guard.ensure(cmd.actor, Operation.REASSIGN, subject)

            if not changes:
                return HandlerResult(appt)

            self.coordinator.check_precondition("appointment", appt, cmd.expected_version)
            self.machine.ensure_mutable(appt, "update_fields")

            schedule_version = None
            if new_psychologist is not None:
                if appt.clinic_id and new_psychologist.clinic_id != appt.clinic_id:
                    raise InvalidInputError(
                        "Novo psicólogo não pertence à clínica do atendimento",
                        psychologist_id=new_psychologist.id,
                        clinic_id=appt.clinic_id,
                    )
                schedule_version = self.appointment_repo.get_schedule_version(new_psychologist.id)
                self.machine.ensure_no_overlap(
                    new_psychologist.id, appt.scheduled_at, appt.ends_at,
                    self.appointment_repo.list_overlapping(
                        new_psychologist.id, appt.scheduled_at, appt.ends_at, exclude_id=appt.id,
                    ),
                    exclude_id=appt.id,
                )

            saved = self._persist(appt, replace(appt, **changes), schedule_version=schedule_version)
            if new_psychologist is not None:
                self._reassign_pending_payment(saved)

        logger.info("appointment.updated", appointment_id=saved.id, changed=sorted(changes))
        return HandlerResult(saved, [
            AppointmentUpdated(**appointment_fields(saved, cmd.actor), changed_fields=tuple(sorted(changes))),
        ])

    def _reassign_pending_payment(self, appt: AppointmentEntity) -> None:
        if not appt.payment_id:
            return
        payment = self.payment_repo.find_by_id(appt.payment_id)
        if payment is None or payment.status is not PaymentStatus.PENDING:
            return
        self.coordinator.persist(
            "payment", payment, replace(payment, psychologist_id=appt.psychologist_id),
            self.payment_repo.save, self.payment_repo.find_by_id,
        )


class TransitionAppointmentStatusHandler(
    _AppointmentWriteHandler, CommandHandler[TransitionAppointmentStatusCommand]
):
    def handle(self, cmd: TransitionAppointmentStatusCommand) -> HandlerResult[AppointmentEntity]:
        target = AppointmentStatus(cmd.target_status)
        with self.coordinator.atomic():
            appt = self._load(cmd.appointment_id)
            if target is S.CANCELLED:
                return self._cancel(appt, cmd.actor, cmd.reason, cmd.expected_version)

            operation = _OPERATION_FOR_TARGET.get(target, Operation.REQUEST_CONFIRMATION)
            self.guard.ensure(cmd.actor, operation, self._subject(appt))
            if target is S.CONFIRMED and appt.status is S.CONFIRMED:
                logger.info("appointment.confirm.noop", appointment_id=appt.id)
                return HandlerResult(appt)
            self.coordinator.check_precondition("appointment", appt, cmd.expected_version)
            saved, events = self._apply_transition(appt, target, cmd.actor, cmd.reason)
        return HandlerResult(saved, events)


class CancelAppointmentHandler(_AppointmentWriteHandler, CommandHandler[CancelAppointmentCommand]):
    """Idempotente: cancelar um atendimento já cancelado é sucesso sem efeito."""

    def handle(self, cmd: CancelAppointmentCommand) -> HandlerResult[AppointmentEntity]:
        with self.coordinator.atomic():
            appt = self._load(cmd.appointment_id)
            return self._cancel(appt, cmd.actor, cmd.reason, cmd.expected_version)


class RespondAppointmentHandler(_AppointmentWriteHandler, CommandHandler[RespondAppointmentCommand]):
    """
    Aceite/recusa do paciente para atendimentos ``awaiting_patient``.
    A recusa cancela automaticamente ou apenas registra, conforme
    ``AgendaSettings.patient_decline_auto_cancel``.
    """

    def handle(self, cmd: RespondAppointmentCommand) -> HandlerResult[AppointmentEntity]:
        with self.coordinator.atomic():
            appt = self._load(cmd.appointment_id)
            self.guard.ensure(cmd.actor, Operation.RESPOND, self._subject(appt))

            if appt.status is not S.AWAITING_PATIENT:
                already = S.CONFIRMED if cmd.accept else S.CANCELLED
                if appt.status is already:
                    return HandlerResult(appt)
                raise InvalidStateError("appointment", appt.status, "respond")
            self.coordinator.check_precondition("appointment", appt, cmd.expected_version)

            if cmd.accept:
                saved, events = self._apply_transition(appt, S.CONFIRMED, cmd.actor)
                return HandlerResult(saved, events)

            declined = AppointmentDeclinedByPatient(**appointment_fields(appt, cmd.actor))
            if self.settings.patient_decline_auto_cancel:
                saved, events = self._apply_transition(appt, S.CANCELLED, cmd.actor, PATIENT_DECLINED_REASON)
                return HandlerResult(saved, [declined, *events])

            saved = self._persist(appt, self.machine.record_decline(appt))
            logger.info("appointment.declined", appointment_id=saved.id, auto_cancel=False)
            return HandlerResult(saved, [declined])
