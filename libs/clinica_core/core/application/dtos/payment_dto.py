"""Payloads de entrada da API de pagamentos."""
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, model_validator

from clinica_core.core.domain.entities.enums import PaymentMethod


class RegisterPaymentMethodDTO(BaseModel):
    method: PaymentMethod
    paid_at: datetime | None = None
    expected_version: int | None = None


class ConfirmPaymentDTO(BaseModel):
    internal_notes: str | None = None
    expected_version: int | None = None


class CancelPaymentDTO(BaseModel):
    reason: str | None = None
    expected_version: int | None = None


class UpdatePaymentValueDTO(BaseModel):
    session_value: Decimal = Field(ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    expected_version: int | None = None

    @model_validator(mode="after")
    def _discount_within_value(self) -> "UpdatePaymentValueDTO":
        if self.discount > self.session_value:
            raise ValueError("discount não pode exceder session_value")
        return self


class ConfirmPaymentsBatchDTO(BaseModel):
    # ids em qualquer formato; a normalização acontece no handler
    payment_ids: list[Any] = Field(min_length=1)
    internal_notes: str | None = None


class FinancialSummaryParamsDTO(BaseModel):
    start: date
    end: date

    @model_validator(mode="after")
    def _ordered(self) -> "FinancialSummaryParamsDTO":
        if self.start > self.end:
            raise ValueError("start deve ser anterior ou igual a end")
        return self
