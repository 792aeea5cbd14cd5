"""Payloads de entrada da API de atendimentos (validados com pydantic)."""
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from clinica_core.core.domain.entities.enums import AppointmentStatus, Modality
from clinica_core.core.domain.services.identity_resolver import require_id, resolve_id


class CreateAppointmentDTO(BaseModel):
    psychologist_id: str
    patient_id: str
    scheduled_at: datetime
    duration_minutes: int | None = Field(default=None, gt=0)
    modality: Modality = Modality.ONLINE
    clinic_id: str | None = None
    notes: str | None = None
    session_value: Decimal | None = Field(default=None, ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("psychologist_id", "patient_id", mode="before")
    @classmethod
    def _normalize_required_ids(cls, value: Any, info: ValidationInfo) -> str:
        return require_id(value, info.field_name)

    @field_validator("clinic_id", mode="before")
    @classmethod
    def _normalize_optional_id(cls, value: Any) -> str | None:
        return resolve_id(value)


class RescheduleAppointmentDTO(BaseModel):
    new_time: datetime
    duration_minutes: int | None = Field(default=None, gt=0)
    expected_version: int | None = None


class UpdateAppointmentFieldsDTO(BaseModel):
    modality: Modality | None = None
    notes: str | None = None
    psychologist_id: str | None = None
    expected_version: int | None = None

    @field_validator("psychologist_id", mode="before")
    @classmethod
    def _normalize_psychologist(cls, value: Any) -> str | None:
        if value is None:
            return None
        return require_id(value, "psychologist_id")


class TransitionStatusDTO(BaseModel):
    status: AppointmentStatus
    reason: str | None = None
    expected_version: int | None = None


class CancelDTO(BaseModel):
    reason: str | None = None
    expected_version: int | None = None


class RespondAppointmentDTO(BaseModel):
    accept: bool
    expected_version: int | None = None


class AvailableSlotsDTO(BaseModel):
    psychologist_id: str
    day: date
    duration_minutes: int | None = Field(default=None, gt=0)

    @field_validator("psychologist_id", mode="before")
    @classmethod
    def _normalize_psychologist(cls, value: Any) -> str:
        return require_id(value, "psychologist_id")
