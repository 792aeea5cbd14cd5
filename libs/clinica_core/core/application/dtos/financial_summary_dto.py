from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class StatusBucketDTO:
    count: int = 0
    total_value: Decimal = ZERO
    clinic_value: Decimal = ZERO
    psychologist_value: Decimal = ZERO


@dataclass(frozen=True)
class PsychologistBreakdownDTO:
    psychologist_id: str
    name: str
    session_count: int = 0
    confirmed_value: Decimal = ZERO
    pending_value: Decimal = ZERO
    awaiting_confirmation_value: Decimal = ZERO
    cancelled_value: Decimal = ZERO


@dataclass(frozen=True)
class FinancialSummaryDTO:
    scope: str
    scope_id: str
    start: date
    end: date
    total_sessions: int = 0
    pending: StatusBucketDTO = field(default_factory=StatusBucketDTO)
    awaiting_confirmation: StatusBucketDTO = field(default_factory=StatusBucketDTO)
    confirmed: StatusBucketDTO = field(default_factory=StatusBucketDTO)
    cancelled: StatusBucketDTO = field(default_factory=StatusBucketDTO)
    refunded: StatusBucketDTO = field(default_factory=StatusBucketDTO)
    expected_earnings: Decimal = ZERO
    expected_total: Decimal = ZERO
    confirmed_earnings: Decimal = ZERO
    pending_earnings: Decimal = ZERO
    by_psychologist: list[PsychologistBreakdownDTO] = field(default_factory=list)
