from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any

import structlog

from clinica_core.core.application.commands.payment_commands import (
    CancelPaymentCommand,
    ConfirmPaymentCommand,
    ConfirmPaymentsBatchCommand,
    RefundPaymentCommand,
    RegisterPaymentMethodCommand,
    UpdatePaymentValueCommand,
)
from clinica_core.core.application.cqrs import CommandHandler, HandlerResult
from clinica_core.core.application.dtos.batch_result_dto import BatchConfirmResultDTO, BatchFailureDTO
from clinica_core.core.application.handlers._event_fields import payment_fields
from clinica_core.core.application.services.conflict_coordinator import ConflictCoordinator
from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.agenda_settings_entity import AgendaSettings
from clinica_core.core.domain.entities.enums import PaymentMethod, PaymentStatus
from clinica_core.core.domain.entities.payment_entity import PaymentEntity
from clinica_core.core.domain.events.events import (
    DomainEvent,
    PaymentBatchConfirmed,
    PaymentCancelled,
    PaymentConfirmed,
    PaymentMethodRegistered,
    PaymentRefunded,
    PaymentValueUpdated,
)
from clinica_core.core.domain.events.exceptions import AgendaError, InvalidInputError
from clinica_core.core.domain.repositories.directory_repository import (
    ClinicRepository,
    PsychologistRepository,
)
from clinica_core.core.domain.repositories.payment_repository import PaymentRepository
from clinica_core.core.domain.repositories.unit_of_work import UnitOfWork
from clinica_core.core.domain.services.identity_resolver import resolve_id
from clinica_core.core.domain.services.payment_state_machine import PaymentStateMachine
from clinica_core.core.domain.services.permission_guard import (
    Operation,
    PermissionGuard,
    PermissionSubject,
)

logger = structlog.get_logger(__name__)

P = PaymentStatus


class _PaymentWriteHandler:
    def __init__(
        self,
        payment_repo: PaymentRepository,
        psychologist_repo: PsychologistRepository,
        clinic_repo: ClinicRepository,
        guard: PermissionGuard,
        coordinator: ConflictCoordinator,
        machine: PaymentStateMachine,
    ) -> None:
        self.payment_repo = payment_repo
        self.psychologist_repo = psychologist_repo
        self.clinic_repo = clinic_repo
        self.guard = guard
        self.coordinator = coordinator
        self.machine = machine

    def _load(self, payment_id: str) -> PaymentEntity:
        return self.coordinator.load("payment", payment_id, self.payment_repo.find_by_id)

    def _subject(self, payment: PaymentEntity) -> PermissionSubject:
        psychologist = self.psychologist_repo.find_by_id(payment.psychologist_id)
        clinic = self.clinic_repo.find_by_id(payment.clinic_id) if payment.clinic_id else None
        return PermissionSubject.for_payment(
            payment,
            psychologist_name=psychologist.name if psychologist else None,
            clinic_name=clinic.name if clinic else None,
        )

    def _persist(self, current: PaymentEntity, updated: PaymentEntity) -> PaymentEntity:
        return self.coordinator.persist(
            "payment", current, updated, self.payment_repo.save, self.payment_repo.find_by_id,
        )


class RegisterPaymentMethodHandler(_PaymentWriteHandler, CommandHandler[RegisterPaymentMethodCommand]):
    """Não idempotente: só sai de ``pending`` uma vez."""

    def handle(self, cmd: RegisterPaymentMethodCommand) -> HandlerResult[PaymentEntity]:
        try:
            method = PaymentMethod(cmd.method)
        except ValueError as exc:
            raise InvalidInputError(f"Método de pagamento inválido: {cmd.method}", field="method") from exc

        with self.coordinator.atomic():
            payment = self._load(cmd.payment_id)
            self.guard.ensure(cmd.actor, Operation.REGISTER_METHOD, self._subject(payment))
            self.coordinator.check_precondition("payment", payment, cmd.expected_version)
            saved = self._persist(payment, self.machine.register_method(payment, method, cmd.paid_at))

        logger.info("payment.method_registered", payment_id=saved.id, method=method.value)
        return HandlerResult(saved, [PaymentMethodRegistered(**payment_fields(saved, cmd.actor), method=method.value)])


class ConfirmPaymentHandler(_PaymentWriteHandler, CommandHandler[ConfirmPaymentCommand]):
    """Idempotente: confirmar um pagamento já confirmado é sucesso sem efeito."""

    def confirm(
        self,
        actor: Actor,
        payment_id: str,
        internal_notes: str | None = None,
        expected_version: int | None = None,
    ) -> tuple[PaymentEntity, list[DomainEvent]]:
        with self.coordinator.atomic():
            payment = self._load(payment_id)
            self.guard.ensure(actor, Operation.CONFIRM, self._subject(payment))
            if payment.status is P.CONFIRMED:
                logger.info("payment.confirm.noop", payment_id=payment.id)
                return payment, []
            self.coordinator.check_precondition("payment", payment, expected_version)
            saved = self._persist(payment, self.machine.confirm(payment, actor, internal_notes))

        logger.info("payment.confirmed", payment_id=saved.id, actor_role=actor.role.value)
        return saved, [PaymentConfirmed(**payment_fields(saved, actor), final_value=saved.final_value)]

    def handle(self, cmd: ConfirmPaymentCommand) -> HandlerResult[PaymentEntity]:
        saved, events = self.confirm(cmd.actor, cmd.payment_id, cmd.internal_notes, cmd.expected_version)
        return HandlerResult(saved, events)


class CancelPaymentHandler(_PaymentWriteHandler, CommandHandler[CancelPaymentCommand]):
    def handle(self, cmd: CancelPaymentCommand) -> HandlerResult[PaymentEntity]:
        with self.coordinator.atomic():
            payment = self._load(cmd.payment_id)
            self.guard.ensure(cmd.actor, Operation.CANCEL, self._subject(payment))
            if payment.status is P.CANCELLED:
                return HandlerResult(payment)
            self.coordinator.check_precondition("payment", payment, cmd.expected_version)
            saved = self._persist(payment, self.machine.cancel(payment, cmd.reason))

        logger.info("payment.cancelled", payment_id=saved.id, reason=cmd.reason)
        return HandlerResult(saved, [PaymentCancelled(**payment_fields(saved, cmd.actor), reason=cmd.reason)])


class RefundPaymentHandler(_PaymentWriteHandler, CommandHandler[RefundPaymentCommand]):
    def handle(self, cmd: RefundPaymentCommand) -> HandlerResult[PaymentEntity]:
        with self.coordinator.atomic():
            payment = self._load(cmd.payment_id)
            self.guard.ensure(cmd.actor, Operation.REFUND, self._subject(payment))
            if payment.status is P.REFUNDED:
                return HandlerResult(payment)
            self.coordinator.check_precondition("payment", payment, cmd.expected_version)
            saved = self._persist(payment, self.machine.refund(payment, cmd.reason))

        logger.info("payment.refunded", payment_id=saved.id, final_value=str(saved.final_value))
        return HandlerResult(saved, [
            PaymentRefunded(**payment_fields(saved, cmd.actor), final_value=saved.final_value, reason=cmd.reason),
        ])


class UpdatePaymentValueHandler(_PaymentWriteHandler, CommandHandler[UpdatePaymentValueCommand]):
    def handle(self, cmd: UpdatePaymentValueCommand) -> HandlerResult[PaymentEntity]:
        with self.coordinator.atomic():
            payment = self._load(cmd.payment_id)
            self.guard.ensure(cmd.actor, Operation.UPDATE_VALUE, self._subject(payment))
            self.coordinator.check_precondition("payment", payment, cmd.expected_version)
            saved = self._persist(payment, self.machine.reprice(payment, cmd.session_value, cmd.discount))

        return HandlerResult(saved, [
            PaymentValueUpdated(
                **payment_fields(saved, cmd.actor),
                previous_value=payment.final_value,
                final_value=saved.final_value,
            )
        ])


# ───────────────────────────────────────────────
# Confirmação em lote
# ───────────────────────────────────────────────
_Outcome = list[DomainEvent] | BatchFailureDTO


class ConfirmPaymentsBatchHandler(CommandHandler[ConfirmPaymentsBatchCommand]):
    """
    Aplica ``confirm`` a cada id de forma independente. O lote nunca é
    atômico: o resultado lista confirmados e falhas com o motivo.
    Roda em paralelo quando a unidade de trabalho permite.
    """

    def __init__(self, confirm_handler: ConfirmPaymentHandler, uow: UnitOfWork, settings: AgendaSettings) -> None:
        self.confirm_handler = confirm_handler
        self.uow = uow
        self.settings = settings

    def handle(self, cmd: ConfirmPaymentsBatchCommand) -> HandlerResult[BatchConfirmResultDTO]:
        references = list(cmd.payment_ids)
        if len(references) > self.settings.batch_max_size:
            raise InvalidInputError(
                f"Lote excede o limite de {self.settings.batch_max_size} pagamentos",
                requested=len(references),
            )

        outcomes: dict[int, tuple[str | None, _Outcome]] = {}
        jobs: list[tuple[int, str]] = []
        seen: set[str] = set()
        for idx, ref in enumerate(references):
            payment_id = resolve_id(ref)
            if payment_id is None:
                outcomes[idx] = (None, BatchFailureDTO(
                    id=None, reason=InvalidInputError.kind,
                    message="Referência de pagamento inválida", details={"reference": repr(ref)},
                ))
            elif payment_id in seen:
                outcomes[idx] = (payment_id, BatchFailureDTO(
                    id=payment_id, reason="Duplicate", message="Id repetido no lote",
                ))
            else:
                seen.add(payment_id)
                jobs.append((idx, payment_id))

        for idx, payment_id, outcome in self._run(jobs, cmd.actor, cmd.internal_notes):
            outcomes[idx] = (payment_id, outcome)

        confirmed: list[str] = []
        failed: list[BatchFailureDTO] = []
        events: list[DomainEvent] = []
        for idx in sorted(outcomes):
            payment_id, outcome = outcomes[idx]
            if isinstance(outcome, BatchFailureDTO):
                failed.append(outcome)
            else:
                confirmed.append(payment_id)
                events.extend(outcome)

        result = BatchConfirmResultDTO(confirmed=confirmed, failed=failed)
        events.append(PaymentBatchConfirmed(
            actor_id=cmd.actor.id,
            actor_role=cmd.actor.role.value,
            requested=len(references),
            confirmed=len(confirmed),
            failed=len(failed),
        ))
        logger.info(
            "payment.batch_confirm.finished",
            requested=len(references),
            confirmed=len(confirmed),
            failed=len(failed),
        )
        return HandlerResult(result, events)

    def _run(self, jobs: list[tuple[int, str]], actor: Actor, notes: str | None):
        if len(jobs) > 1 and self.uow.allows_parallel():
            workers = max(1, min(self.settings.batch_max_workers, len(jobs)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="batch-confirm") as pool:
                futures = [(idx, pid, pool.submit(self._worker, actor, pid, notes)) for idx, pid in jobs]
                return [(idx, pid, future.result()) for idx, pid, future in futures]
        return [(idx, pid, self._confirm_isolated(actor, pid, notes)) for idx, pid in jobs]

    def _worker(self, actor: Actor, payment_id: str, notes: str | None) -> _Outcome:
        try:
            return self._confirm_isolated(actor, payment_id, notes)
        finally:
            self.uow.release()

    def _confirm_isolated(self, actor: Actor, payment_id: str, notes: str | None) -> _Outcome:
        try:
            _, events = self.confirm_handler.confirm(actor, payment_id, notes)
            return events
        except AgendaError as exc:
            details: dict[str, Any] = {k: v for k, v in exc.to_dict().items() if k not in ("kind", "message")}
            logger.info("payment.batch_confirm.item_failed", payment_id=payment_id, reason=exc.kind)
            return BatchFailureDTO(id=payment_id, reason=exc.kind, message=exc.message, details=details)
        except Exception as exc:
            # falha de infraestrutura num item não derruba o lote
            logger.error(
                "payment.batch_confirm.item_error",
                payment_id=payment_id,
                error=str(exc),
                exc_info=True,
            )
            return BatchFailureDTO(
                id=payment_id,
                reason="Unexpected",
                message="Erro inesperado ao confirmar pagamento",
                details={"error": type(exc).__name__},
            )
