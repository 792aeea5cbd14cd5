"""
Guarda de permissões por papel.

``evaluate`` é uma função pura: consulta a matriz de capacidades indexada
por ``(papel, tipo de entidade, operação)`` e devolve ``Allow`` ou ``Deny``.
``PermissionGuard.ensure`` converte a negação em ``PermissionDeniedError``.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

import structlog

from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.appointment_entity import AppointmentEntity
from clinica_core.core.domain.entities.enums import ActorRole, AppointmentStatus, PaymentStatus
from clinica_core.core.domain.entities.payment_entity import PaymentEntity
from clinica_core.core.domain.entities.psychologist_entity import PsychologistEntity
from clinica_core.core.domain.events.exceptions import PermissionDeniedError

logger = structlog.get_logger(__name__)


class EntityKind(str, Enum):
    APPOINTMENT = "appointment"
    PAYMENT = "payment"
    SUMMARY = "summary"


class Operation(str, Enum):
    READ = "read"
    CREATE = "create"
    RESCHEDULE = "reschedule"
    UPDATE_FIELDS = "update_fields"
    REASSIGN = "reassign"
    REQUEST_CONFIRMATION = "request_confirmation"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    COMPLETE = "complete"
    NO_SHOW = "no_show"
    RESPOND = "respond"
    REGISTER_METHOD = "register_method"
    REFUND = "refund"
    UPDATE_VALUE = "update_value"


@dataclass(frozen=True, slots=True)
class PermissionSubject:
    """Recorte da entidade alvo com o que a matriz precisa para decidir."""
    kind: EntityKind
    psychologist_id: str | None = None
    patient_id: str | None = None
    clinic_id: str | None = None
    status: str | None = None
    psychologist_name: str | None = None
    clinic_name: str | None = None
    delegated: bool = False

    @classmethod
    def for_appointment(
        cls,
        appt: AppointmentEntity,
        psychologist: PsychologistEntity | None = None,
        clinic_name: str | None = None,
    ) -> PermissionSubject:
        return cls(
            kind=EntityKind.APPOINTMENT,
            psychologist_id=appt.psychologist_id,
            patient_id=appt.patient_id,
            clinic_id=appt.clinic_id,
            status=appt.status.value,
            psychologist_name=psychologist.name if psychologist else None,
            clinic_name=clinic_name,
            delegated=bool(psychologist and psychologist.delegates_to_clinic
                           and psychologist.clinic_id == appt.clinic_id),
        )

    @classmethod
    def for_payment(
        cls,
        payment: PaymentEntity,
        psychologist_name: str | None = None,
        clinic_name: str | None = None,
    ) -> PermissionSubject:
        return cls(
            kind=EntityKind.PAYMENT,
            psychologist_id=payment.psychologist_id,
            patient_id=payment.patient_id,
            clinic_id=payment.clinic_id,
            status=payment.status.value,
            psychologist_name=psychologist_name,
            clinic_name=clinic_name,
        )


@dataclass(frozen=True, slots=True)
class Allow:
    allowed: ClassVar[bool] = True


@dataclass(frozen=True, slots=True)
class Deny:
    reason: str
    required_actor: str | None = None
    required_role: ActorRole | None = None
    hint: str | None = None
    allowed: ClassVar[bool] = False


Decision = Allow | Deny
Rule = Callable[[Actor, PermissionSubject], Decision]

ALLOW = Allow()


# ───────────────────────────────────────────────
# Predicados de escopo
# ───────────────────────────────────────────────
def _is_own_psychologist(actor: Actor, s: PermissionSubject) -> bool:
    return s.psychologist_id is not None and s.psychologist_id == actor.id


def _is_own_patient(actor: Actor, s: PermissionSubject) -> bool:
    return s.patient_id is not None and s.patient_id == actor.id


def _is_own_clinic(actor: Actor, s: PermissionSubject) -> bool:
    return s.clinic_id is not None and s.clinic_id == actor.id


def _psychologist_label(s: PermissionSubject) -> str:
    return s.psychologist_name or s.psychologist_id or "psicólogo responsável"


def _clinic_label(s: PermissionSubject) -> str:
    return s.clinic_name or s.clinic_id or "clínica"


def _out_of_scope(actor: Actor, s: PermissionSubject) -> Deny:
    return Deny(
        reason=f"{s.kind.value} fora do escopo do ator",
        hint="Somente entidades vinculadas ao próprio ator podem ser acessadas",
    )


def _needs_psychologist(s: PermissionSubject, reason: str) -> Deny:
    name = _psychologist_label(s)
    return Deny(
        reason=reason,
        required_actor=name,
        required_role=ActorRole.PSYCHOLOGIST,
        hint=f"Solicite a {name} que realize a operação",
    )


def _needs_patient(s: PermissionSubject) -> Deny:
    return Deny(
        reason="Atendimento aguardando confirmação do paciente",
        required_actor=s.patient_id,
        required_role=ActorRole.PATIENT,
        hint="Somente o paciente pode confirmar este atendimento",
    )


def _needs_clinic(s: PermissionSubject, reason: str) -> Deny:
    name = _clinic_label(s)
    return Deny(
        reason=reason,
        required_actor=name,
        required_role=ActorRole.CLINIC,
        hint=f"Solicite a {name} que realize a operação",
    )


def _awaited_party(s: PermissionSubject, role: ActorRole) -> Deny | None:
    """Confirmação a partir de awaiting_* exige a parte aguardada."""
    if s.status == AppointmentStatus.AWAITING_PATIENT.value and role is not ActorRole.PATIENT:
        return _needs_patient(s)
    if s.status == AppointmentStatus.AWAITING_PSYCHOLOGIST.value and role is not ActorRole.PSYCHOLOGIST:
        return _needs_psychologist(s, "Atendimento aguardando confirmação do psicólogo")
    return None


# ───────────────────────────────────────────────
# Regras: atendimentos
# ───────────────────────────────────────────────
def _psychologist_manages_appointment(actor: Actor, s: PermissionSubject) -> Decision:
    return ALLOW if _is_own_psychologist(actor, s) else _out_of_scope(actor, s)


def _psychologist_confirms_appointment(actor: Actor, s: PermissionSubject) -> Decision:
    if not _is_own_psychologist(actor, s):
        return _out_of_scope(actor, s)
    return _awaited_party(s, actor.role) or ALLOW


def _psychologist_responds(actor: Actor, s: PermissionSubject) -> Decision:
    if not _is_own_psychologist(actor, s):
        return _out_of_scope(actor, s)
    return Deny(
        reason="Aceite/recusa é exclusivo do paciente",
        required_actor=s.patient_id,
        required_role=ActorRole.PATIENT,
        hint="Use a confirmação de status para atendimentos aguardando o psicólogo",
    )


def _clinic_reads(actor: Actor, s: PermissionSubject) -> Decision:
    return ALLOW if _is_own_clinic(actor, s) else _out_of_scope(actor, s)


def _clinic_manages_appointment(actor: Actor, s: PermissionSubject) -> Decision:
    if not _is_own_clinic(actor, s):
        return _out_of_scope(actor, s)
    if not s.delegated:
        return _needs_psychologist(s, "Psicólogo não delegou a gestão da agenda à clínica")
    return ALLOW


def _clinic_confirms_appointment(actor: Actor, s: PermissionSubject) -> Decision:
    decision = _clinic_manages_appointment(actor, s)
    if isinstance(decision, Deny):
        return decision
    return _awaited_party(s, actor.role) or ALLOW


def _clinic_responds(actor: Actor, s: PermissionSubject) -> Decision:
    if not _is_own_clinic(actor, s):
        return _out_of_scope(actor, s)
    return Deny(
        reason="Aceite/recusa é exclusivo do paciente",
        required_actor=s.patient_id,
        required_role=ActorRole.PATIENT,
    )


def _patient_reads(actor: Actor, s: PermissionSubject) -> Decision:
    return ALLOW if _is_own_patient(actor, s) else _out_of_scope(actor, s)


def _patient_confirms_appointment(actor: Actor, s: PermissionSubject) -> Decision:
    if not _is_own_patient(actor, s):
        return _out_of_scope(actor, s)
    if s.status == AppointmentStatus.AWAITING_PATIENT.value:
        return ALLOW
    return _needs_psychologist(s, "Paciente só confirma atendimentos aguardando sua resposta")


def _patient_mutation_denied(actor: Actor, s: PermissionSubject) -> Decision:
    if not _is_own_patient(actor, s):
        return _out_of_scope(actor, s)
    return _needs_psychologist(s, "Pacientes não alteram atendimentos diretamente")


# ───────────────────────────────────────────────
# Regras: pagamentos
# ───────────────────────────────────────────────
def _psychologist_reads_payment(actor: Actor, s: PermissionSubject) -> Decision:
    return ALLOW if _is_own_psychologist(actor, s) else _out_of_scope(actor, s)


def _psychologist_confirms_payment(actor: Actor, s: PermissionSubject) -> Decision:
    if not _is_own_psychologist(actor, s):
        return _out_of_scope(actor, s)
    if s.clinic_id is not None:
        return _needs_clinic(s, "Pagamentos vinculados à clínica são confirmados pela clínica")
    return ALLOW


def _psychologist_cancels_payment(actor: Actor, s: PermissionSubject) -> Decision:
    if not _is_own_psychologist(actor, s):
        return _out_of_scope(actor, s)
    if s.clinic_id is not None and s.status != PaymentStatus.PENDING.value:
        return _needs_clinic(s, "Pagamentos da clínica em conferência são cancelados pela clínica")
    return ALLOW


def _patient_payment_denied(actor: Actor, s: PermissionSubject) -> Decision:
    if not _is_own_patient(actor, s):
        return _out_of_scope(actor, s)
    if s.clinic_id is not None:
        return _needs_clinic(s, "Pacientes não movimentam pagamentos")
    return _needs_psychologist(s, "Pacientes não movimentam pagamentos")


# ───────────────────────────────────────────────
# Regras: resumo financeiro
# ───────────────────────────────────────────────
def _clinic_reads_summary(actor: Actor, s: PermissionSubject) -> Decision:
    return ALLOW if _is_own_clinic(actor, s) else _out_of_scope(actor, s)


def _psychologist_reads_summary(actor: Actor, s: PermissionSubject) -> Decision:
    if _is_own_psychologist(actor, s) and s.patient_id is None:
        return ALLOW
    return _out_of_scope(actor, s)


def _patient_reads_summary(actor: Actor, s: PermissionSubject) -> Decision:
    return ALLOW if _is_own_patient(actor, s) else _out_of_scope(actor, s)


# ───────────────────────────────────────────────
# Matriz de capacidades
# ───────────────────────────────────────────────
R, K, O = ActorRole, EntityKind, Operation

_APPOINTMENT_MANAGEMENT = (
    O.CREATE, O.RESCHEDULE, O.UPDATE_FIELDS, O.REQUEST_CONFIRMATION,
    O.CANCEL, O.COMPLETE, O.NO_SHOW,
)

CAPABILITY_MATRIX: dict[tuple[ActorRole, EntityKind, Operation], Rule] = {
    # psicólogo × atendimento
    **{(R.PSYCHOLOGIST, K.APPOINTMENT, op): _psychologist_manages_appointment
       for op in (O.READ, O.REASSIGN, *_APPOINTMENT_MANAGEMENT)},
    (R.PSYCHOLOGIST, K.APPOINTMENT, O.CONFIRM): _psychologist_confirms_appointment,
    (R.PSYCHOLOGIST, K.APPOINTMENT, O.RESPOND): _psychologist_responds,
    # clínica × atendimento
    (R.CLINIC, K.APPOINTMENT, O.READ): _clinic_reads,
    (R.CLINIC, K.APPOINTMENT, O.REASSIGN): _clinic_reads,
    **{(R.CLINIC, K.APPOINTMENT, op): _clinic_manages_appointment for op in _APPOINTMENT_MANAGEMENT},
    (R.CLINIC, K.APPOINTMENT, O.CONFIRM): _clinic_confirms_appointment,
    (R.CLINIC, K.APPOINTMENT, O.RESPOND): _clinic_responds,
    # paciente × atendimento
    (R.PATIENT, K.APPOINTMENT, O.READ): _patient_reads,
    (R.PATIENT, K.APPOINTMENT, O.CREATE): _patient_reads,
    (R.PATIENT, K.APPOINTMENT, O.RESPOND): _patient_reads,
    (R.PATIENT, K.APPOINTMENT, O.CONFIRM): _patient_confirms_appointment,
    **{(R.PATIENT, K.APPOINTMENT, op): _patient_mutation_denied
       for op in (O.RESCHEDULE, O.UPDATE_FIELDS, O.REASSIGN, O.REQUEST_CONFIRMATION,
                  O.CANCEL, O.COMPLETE, O.NO_SHOW)},
    # psicólogo × pagamento
    (R.PSYCHOLOGIST, K.PAYMENT, O.READ): _psychologist_reads_payment,
    (R.PSYCHOLOGIST, K.PAYMENT, O.REGISTER_METHOD): _psychologist_reads_payment,
    (R.PSYCHOLOGIST, K.PAYMENT, O.UPDATE_VALUE): _psychologist_reads_payment,
    (R.PSYCHOLOGIST, K.PAYMENT, O.CONFIRM): _psychologist_confirms_payment,
    (R.PSYCHOLOGIST, K.PAYMENT, O.REFUND): _psychologist_confirms_payment,
    (R.PSYCHOLOGIST, K.PAYMENT, O.CANCEL): _psychologist_cancels_payment,
    # clínica × pagamento
    **{(R.CLINIC, K.PAYMENT, op): _clinic_reads
       for op in (O.READ, O.REGISTER_METHOD, O.UPDATE_VALUE, O.CONFIRM, O.CANCEL, O.REFUND)},
    # paciente × pagamento
    (R.PATIENT, K.PAYMENT, O.READ): _patient_reads,
    **{(R.PATIENT, K.PAYMENT, op): _patient_payment_denied
       for op in (O.REGISTER_METHOD, O.UPDATE_VALUE, O.CONFIRM, O.CANCEL, O.REFUND)},
    # resumo financeiro
    (R.CLINIC, K.SUMMARY, O.READ): _clinic_reads_summary,
    (R.PSYCHOLOGIST, K.SUMMARY, O.READ): _psychologist_reads_summary,
    (R.PATIENT, K.SUMMARY, O.READ): _patient_reads_summary,
}


def evaluate(actor: Actor, operation: Operation, subject: PermissionSubject) -> Decision:
    rule = CAPABILITY_MATRIX.get((actor.role, subject.kind, operation))
    if rule is None:
        return Deny(
            reason=f"Operação '{operation.value}' não permitida para o papel '{actor.role.value}'",
            hint="Operação fora da matriz de capacidades",
        )
    return rule(actor, subject)


class PermissionGuard:
    """Aplica ``evaluate`` e levanta ``PermissionDeniedError`` em caso de negação."""

    def evaluate(self, actor: Actor, operation: Operation, subject: PermissionSubject) -> Decision:
        return evaluate(actor, operation, subject)

    def ensure(self, actor: Actor, operation: Operation, subject: PermissionSubject) -> None:
        decision = evaluate(actor, operation, subject)
        if isinstance(decision, Allow):
            return
        logger.info(
            "permission.denied",
            actor_id=actor.id,
            actor_role=actor.role.value,
            entity=subject.kind.value,
            operation=operation.value,
            reason=decision.reason,
            required_actor=decision.required_actor,
        )
        raise PermissionDeniedError(
            decision.reason,
            required_actor=decision.required_actor,
            required_role=decision.required_role,
            hint=decision.hint,
            operation=operation,
        )
