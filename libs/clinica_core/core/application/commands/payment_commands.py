from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from clinica_core.core.application.cqrs import CommandDTO
from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.enums import PaymentMethod


@dataclass(frozen=True, slots=True)
class RegisterPaymentMethodCommand(CommandDTO):
    actor: Actor
    payment_id: str
    method: PaymentMethod
    paid_at: datetime | None = None
    expected_version: int | None = None


@dataclass(frozen=True, slots=True)
class ConfirmPaymentCommand(CommandDTO):
    actor: Actor
    payment_id: str
    internal_notes: str | None = None
    expected_version: int | None = None


@dataclass(frozen=True, slots=True)
class CancelPaymentCommand(CommandDTO):
    actor: Actor
    payment_id: str
    reason: str | None = None
    expected_version: int | None = None


@dataclass(frozen=True, slots=True)
class RefundPaymentCommand(CommandDTO):
    actor: Actor
    payment_id: str
    reason: str | None = None
    expected_version: int | None = None


@dataclass(frozen=True, slots=True)
class UpdatePaymentValueCommand(CommandDTO):
    actor: Actor
    payment_id: str
    session_value: Decimal
    discount: Decimal = Decimal("0")
    expected_version: int | None = None


@dataclass(frozen=True, slots=True)
class ConfirmPaymentsBatchCommand(CommandDTO):
    """``payment_ids`` aceita qualquer formato suportado pelo identity resolver."""
    actor: Actor
    payment_ids: tuple[Any, ...]
    internal_notes: str | None = None
