from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

import structlog

from clinica_core.core.application.dtos.financial_summary_dto import (
    FinancialSummaryDTO,
    PsychologistBreakdownDTO,
    StatusBucketDTO,
)
from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.enums import PaymentStatus, SummaryScope
from clinica_core.core.domain.entities.payment_entity import PaymentEntity
from clinica_core.core.domain.events.exceptions import InvalidInputError, NotFoundError
from clinica_core.core.domain.repositories.directory_repository import (
    ClinicRepository,
    PatientRepository,
    PsychologistRepository,
)
from clinica_core.core.domain.repositories.payment_repository import PaymentRepository
from clinica_core.core.domain.services.permission_guard import (
    EntityKind,
    Operation,
    PermissionGuard,
    PermissionSubject,
)

logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")
_EXPECTED = (PaymentStatus.PENDING, PaymentStatus.AWAITING_CONFIRMATION, PaymentStatus.CONFIRMED)


@dataclass
class _Bucket:
    count: int = 0
    total: Decimal = ZERO
    clinic: Decimal = ZERO
    psychologist: Decimal = ZERO

    def add(self, p: PaymentEntity) -> None:
        self.count += 1
        self.total += p.final_value
        self.clinic += p.clinic_amount
        self.psychologist += p.psychologist_amount

    def freeze(self) -> StatusBucketDTO:
        return StatusBucketDTO(self.count, self.total, self.clinic, self.psychologist)


@dataclass
class _Breakdown:
    sessions: int = 0
    by_status: dict[PaymentStatus, Decimal] = field(default_factory=dict)

    def add(self, p: PaymentEntity) -> None:
        if p.status is not PaymentStatus.CANCELLED:
            self.sessions += 1
        self.by_status[p.status] = self.by_status.get(p.status, ZERO) + p.final_value


def aggregate(
    payments: Iterable[PaymentEntity],
    scope: SummaryScope,
    scope_id: str,
    start: date,
    end: date,
    psychologist_names: Mapping[str, str] | None = None,
) -> FinancialSummaryDTO:
    """
    Agregação pura sobre os pagamentos já filtrados.
    Os valores vêm das parcelas gravadas; o percentual nunca é
    inferido a partir dos totais.
    """
    buckets = {status: _Bucket() for status in PaymentStatus}
    breakdown: dict[str, _Breakdown] = {}
    expected_earnings = expected_total = confirmed_earnings = pending_earnings = ZERO

    for p in payments:
        buckets[p.status].add(p)
        if p.status in _EXPECTED:
            share = p.share_for(scope)
            expected_earnings += share
            expected_total += p.final_value
            if p.status is PaymentStatus.CONFIRMED:
                confirmed_earnings += share
            else:
                pending_earnings += share
        if scope is SummaryScope.CLINIC:
            breakdown.setdefault(p.psychologist_id, _Breakdown()).add(p)

    names = psychologist_names or {}
    by_psychologist = [
        PsychologistBreakdownDTO(
            psychologist_id=pid,
            name=names.get(pid, pid),
            session_count=b.sessions,
            confirmed_value=b.by_status.get(PaymentStatus.CONFIRMED, ZERO),
            pending_value=b.by_status.get(PaymentStatus.PENDING, ZERO),
            awaiting_confirmation_value=b.by_status.get(PaymentStatus.AWAITING_CONFIRMATION, ZERO),
            cancelled_value=b.by_status.get(PaymentStatus.CANCELLED, ZERO),
        )
        for pid, b in sorted(breakdown.items(), key=lambda item: names.get(item[0], item[0]))
    ]

    total_sessions = sum(b.count for status, b in buckets.items() if status is not PaymentStatus.CANCELLED)
    return FinancialSummaryDTO(
        scope=scope.value,
        scope_id=scope_id,
        start=start,
        end=end,
        total_sessions=total_sessions,
        pending=buckets[PaymentStatus.PENDING].freeze(),
        awaiting_confirmation=buckets[PaymentStatus.AWAITING_CONFIRMATION].freeze(),
        confirmed=buckets[PaymentStatus.CONFIRMED].freeze(),
        cancelled=buckets[PaymentStatus.CANCELLED].freeze(),
        refunded=buckets[PaymentStatus.REFUNDED].freeze(),
        expected_earnings=expected_earnings,
        expected_total=expected_total,
        confirmed_earnings=confirmed_earnings,
        pending_earnings=pending_earnings,
        by_psychologist=by_psychologist,
    )


class FinancialAggregator:
    """Resumo financeiro por escopo, recalculado a cada leitura."""

    def __init__(
        self,
        payment_repo: PaymentRepository,
        clinic_repo: ClinicRepository,
        psychologist_repo: PsychologistRepository,
        patient_repo: PatientRepository,
        guard: PermissionGuard,
        timezone: str = "America/Sao_Paulo",
    ) -> None:
        self.payment_repo = payment_repo
        self.clinic_repo = clinic_repo
        self.psychologist_repo = psychologist_repo
        self.patient_repo = patient_repo
        self.guard = guard
        self.tz = ZoneInfo(timezone)

    def _subject(self, scope: SummaryScope, scope_id: str) -> PermissionSubject:
        if scope is SummaryScope.CLINIC:
            if self.clinic_repo.find_by_id(scope_id) is None:
                raise NotFoundError("clinic", scope_id)
            return PermissionSubject(kind=EntityKind.SUMMARY, clinic_id=scope_id)
        if scope is SummaryScope.PSYCHOLOGIST:
            psychologist = self.psychologist_repo.find_by_id(scope_id)
            if psychologist is None:
                raise NotFoundError("psychologist", scope_id)
            return PermissionSubject(
                kind=EntityKind.SUMMARY,
                psychologist_id=scope_id,
                clinic_id=psychologist.clinic_id,
            )
        patient = self.patient_repo.find_by_id(scope_id)
        if patient is None:
            raise NotFoundError("patient", scope_id)
        return PermissionSubject(kind=EntityKind.SUMMARY, patient_id=scope_id, clinic_id=patient.clinic_id)

    def _bounds(self, start: date, end: date) -> tuple[datetime, datetime]:
        return (
            datetime.combine(start, time.min, tzinfo=self.tz),
            datetime.combine(end + timedelta(days=1), time.min, tzinfo=self.tz),
        )

    def summarize(
        self,
        actor: Actor,
        scope: SummaryScope,
        scope_id: str,
        start: date,
        end: date,
    ) -> FinancialSummaryDTO:
        scope = SummaryScope(scope)
        if start > end:
            raise InvalidInputError("Intervalo inválido: start > end", start=start, end=end)
        subject = self._subject(scope, scope_id)
        self.guard.ensure(actor, Operation.READ, subject)

        created_from, created_until = self._bounds(start, end)
        payments = self.payment_repo.list_for_scope(scope, scope_id, created_from, created_until)

        names: dict[str, str] = {}
        if scope is SummaryScope.CLINIC:
            found = self.psychologist_repo.find_many({p.psychologist_id for p in payments})
            names = {pid: ps.name for pid, ps in found.items()}

        summary = aggregate(payments, scope, scope_id, start, end, names)
        logger.info(
            "financial.summary",
            scope=scope.value,
            scope_id=scope_id,
            payments=len(payments),
            expected_earnings=str(summary.expected_earnings),
        )
        return summary
