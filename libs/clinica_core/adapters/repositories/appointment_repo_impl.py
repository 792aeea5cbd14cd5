from datetime import datetime
from typing import Any

from django.db import IntegrityError, transaction

from clinica_core.adapters.repositories._django_helpers import (
    StaleWrite,
    bump_schedule,
    model_values,
    paginate,
    plain,
)
from clinica_core.core.application.cqrs import PagedResult
from clinica_core.core.domain.entities.appointment_entity import AppointmentEntity
from clinica_core.core.domain.entities.enums import AppointmentStatus
from clinica_core.core.domain.repositories.appointment_repository import AppointmentRepository
from plugins.django_interface.models import Appointment as AppointmentModel
from plugins.django_interface.models import PsychologistSchedule

_WRITABLE = (
    "psychologist_id",
    "patient_id",
    "clinic_id",
    "scheduled_at",
    "duration_minutes",
    "modality",
    "status",
    "notes",
    "payment_id",
    "cancel_reason",
    "cancelled_by",
    "patient_declined_at",
    "version",
    "created_at",
    "updated_at",
)

_EXACT_FILTERS = ("psychologist_id", "patient_id", "clinic_id", "status")


def _values(appointment: AppointmentEntity) -> dict[str, Any]:
    values = model_values(appointment, _WRITABLE)
    values["ends_at"] = appointment.ends_at
    return values


class AppointmentRepoImpl(AppointmentRepository):
    def find_by_id(self, appointment_id: str) -> AppointmentEntity | None:
        try:
            m = AppointmentModel.objects.get(id=appointment_id)
            return AppointmentEntity.from_model(m)
        except AppointmentModel.DoesNotExist:
            return None

    def add(self, appointment: AppointmentEntity, *, schedule_version: int) -> bool:
        try:
            with transaction.atomic():
                bump_schedule(appointment.psychologist_id, schedule_version)
                AppointmentModel.objects.create(id=appointment.id, **_values(appointment))
        except (StaleWrite, IntegrityError):
            return False
        return True

    def save(
        self,
        appointment: AppointmentEntity,
        *,
        expected_version: int,
        schedule_version: int | None = None,
    ) -> bool:
        try:
            with transaction.atomic():
                if schedule_version is not None:
                    bump_schedule(appointment.psychologist_id, schedule_version)
                updated = AppointmentModel.objects.filter(
                    id=appointment.id, version=expected_version
                ).update(**_values(appointment))
                if not updated:
                    raise StaleWrite(appointment.id)
        except StaleWrite:
            return False
        return True

    def get_schedule_version(self, psychologist_id: str) -> int:
        version = (
            PsychologistSchedule.objects.filter(psychologist_id=psychologist_id)
            .values_list("version", flat=True)
            .first()
        )
        return version or 0

    def list_overlapping(
        self,
        psychologist_id: str,
        start: datetime,
        end: datetime,
        *,
        exclude_id: str | None = None,
    ) -> list[AppointmentEntity]:
        qs = AppointmentModel.objects.filter(
            psychologist_id=psychologist_id,
            scheduled_at__lt=end,
            ends_at__gt=start,
        ).exclude(status=AppointmentStatus.CANCELLED.value)
        if exclude_id:
            qs = qs.exclude(id=exclude_id)
        return [AppointmentEntity.from_model(m) for m in qs.order_by("scheduled_at")]

    def list(self, filtros: dict[str, Any], page: int, page_size: int) -> PagedResult[AppointmentEntity]:
        """
        Lista paginada ordenada por horário.

        - filtros exatos: psychologist_id, patient_id, clinic_id, status
        - ``start``/``end``: janela sobre ``scheduled_at`` (fim exclusivo)
        """
        qs = AppointmentModel.objects.all()
        exact = {k: plain(filtros[k]) for k in _EXACT_FILTERS if filtros.get(k) is not None}
        if exact:
            qs = qs.filter(**exact)
        if filtros.get("start") is not None:
            qs = qs.filter(scheduled_at__gte=filtros["start"])
        if filtros.get("end") is not None:
            qs = qs.filter(scheduled_at__lt=filtros["end"])
        return paginate(qs.order_by("scheduled_at", "id"), AppointmentEntity.from_model, page, page_size)
