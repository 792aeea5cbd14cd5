"""
Repositórios em memória: uso standalone e testes do core.

Cada repositório protege seu estado com um lock; ``save`` faz o
compare-and-set de versão sob o mesmo lock, reproduzindo a semântica
dos repositórios Django. A unidade de trabalho não faz rollback.
"""
from __future__ import annotations

import threading
from collections.abc import Iterable
from contextlib import nullcontext
from dataclasses import replace
from datetime import datetime
from typing import Any

from clinica_core.core.application.cqrs import PagedResult
from clinica_core.core.domain.entities.appointment_entity import AppointmentEntity
from clinica_core.core.domain.entities.clinic_entity import ClinicEntity
from clinica_core.core.domain.entities.enums import AppointmentStatus, SummaryScope
from clinica_core.core.domain.entities.patient_entity import PatientEntity
from clinica_core.core.domain.entities.payment_entity import PaymentEntity
from clinica_core.core.domain.entities.psychologist_entity import PsychologistEntity
from clinica_core.core.domain.repositories.appointment_repository import AppointmentRepository
from clinica_core.core.domain.repositories.directory_repository import (
    ClinicRepository,
    PatientRepository,
    PsychologistRepository,
)
from clinica_core.core.domain.repositories.payment_repository import PaymentRepository
from clinica_core.core.domain.repositories.unit_of_work import UnitOfWork

_SCOPE_ATTR = {
    SummaryScope.CLINIC: "clinic_id",
    SummaryScope.PSYCHOLOGIST: "psychologist_id",
    SummaryScope.PATIENT: "patient_id",
}


def _paginate(items: list, page: int, page_size: int) -> PagedResult:
    page = max(page, 1)
    offset = (page - 1) * page_size
    return PagedResult(items=items[offset:offset + page_size], total=len(items), page=page, page_size=page_size)


def _matches(entity: Any, filtros: dict[str, Any], keys: Iterable[str]) -> bool:
    for key in keys:
        if key not in filtros:
            continue
        value = getattr(entity, key)
        if key == "status":
            value = value.value
        if str(value) != str(filtros[key]):
            return False
    return True


class InMemoryUnitOfWork(UnitOfWork):
    def atomic(self):
        return nullcontext()


class InMemoryAppointmentRepo(AppointmentRepository):
    def __init__(self) -> None:
        self._items: dict[str, AppointmentEntity] = {}
        self._schedule: dict[str, int] = {}
        self._lock = threading.Lock()

    def find_by_id(self, appointment_id: str) -> AppointmentEntity | None:
        with self._lock:
            found = self._items.get(appointment_id)
            return replace(found) if found else None

    def add(self, appointment: AppointmentEntity, *, schedule_version: int) -> bool:
        with self._lock:
            pid = appointment.psychologist_id
            if appointment.id in self._items or self._schedule.get(pid, 0) != schedule_version:
                return False
            self._schedule[pid] = schedule_version + 1
            self._items[appointment.id] = replace(appointment)
            return True

    def save(
        self,
        appointment: AppointmentEntity,
        *,
        expected_version: int,
        schedule_version: int | None = None,
    ) -> bool:
        with self._lock:
            current = self._items.get(appointment.id)
            if current is None or current.version != expected_version:
                return False
            if schedule_version is not None:
                pid = appointment.psychologist_id
                if self._schedule.get(pid, 0) != schedule_version:
                    return False
                self._schedule[pid] = schedule_version + 1
            self._items[appointment.id] = replace(appointment)
            return True

    def get_schedule_version(self, psychologist_id: str) -> int:
        with self._lock:
            return self._schedule.get(psychologist_id, 0)

    def list_overlapping(
        self,
        psychologist_id: str,
        start: datetime,
        end: datetime,
        *,
        exclude_id: str | None = None,
    ) -> list[AppointmentEntity]:
        with self._lock:
            return [
                replace(a) for a in self._items.values()
                if a.psychologist_id == psychologist_id
                and a.id != exclude_id
                and a.status is not AppointmentStatus.CANCELLED
                and a.overlaps(start, end)
            ]

    def list(self, filtros: dict[str, Any], page: int, page_size: int) -> PagedResult[AppointmentEntity]:
        with self._lock:
            items = [
                replace(a) for a in self._items.values()
                if _matches(a, filtros, ("psychologist_id", "patient_id", "clinic_id", "status"))
                and ("start" not in filtros or a.scheduled_at >= filtros["start"])
                and ("end" not in filtros or a.scheduled_at < filtros["end"])
            ]
        items.sort(key=lambda a: a.scheduled_at)
        return _paginate(items, page, page_size)


class InMemoryPaymentRepo(PaymentRepository):
    def __init__(self) -> None:
        self._items: dict[str, PaymentEntity] = {}
        self._lock = threading.Lock()

    def find_by_id(self, payment_id: str) -> PaymentEntity | None:
        with self._lock:
            found = self._items.get(payment_id)
            return replace(found) if found else None

    def find_by_appointment(self, appointment_id: str) -> PaymentEntity | None:
        with self._lock:
            found = next((p for p in self._items.values() if p.appointment_id == appointment_id), None)
            return replace(found) if found else None

    def add(self, payment: PaymentEntity) -> None:
        with self._lock:
            if payment.id in self._items:
                raise ValueError(f"Pagamento duplicado: {payment.id}")
            self._items[payment.id] = replace(payment)

    def save(self, payment: PaymentEntity, *, expected_version: int) -> bool:
        with self._lock:
            current = self._items.get(payment.id)
            if current is None or current.version != expected_version:
                return False
            self._items[payment.id] = replace(payment)
            return True

    def list_for_scope(
        self,
        scope: SummaryScope,
        scope_id: str,
        created_from: datetime,
        created_until: datetime,
    ) -> list[PaymentEntity]:
        attr = _SCOPE_ATTR[SummaryScope(scope)]
        with self._lock:
            return [
                replace(p) for p in self._items.values()
                if getattr(p, attr) == scope_id
                and p.created_at is not None
                and created_from <= p.created_at < created_until
            ]

    def list(self, filtros: dict[str, Any], page: int, page_size: int) -> PagedResult[PaymentEntity]:
        with self._lock:
            items = [
                replace(p) for p in self._items.values()
                if _matches(p, filtros, ("psychologist_id", "patient_id", "clinic_id", "status", "appointment_id"))
            ]
        items.sort(key=lambda p: p.created_at.timestamp() if p.created_at else 0.0)
        return _paginate(items, page, page_size)


class InMemoryClinicRepo(ClinicRepository):
    def __init__(self) -> None:
        self._items: dict[str, ClinicEntity] = {}

    def find_by_id(self, clinic_id: str) -> ClinicEntity | None:
        return self._items.get(clinic_id)

    def save(self, clinic: ClinicEntity) -> ClinicEntity:
        self._items[clinic.id] = clinic
        return clinic


class InMemoryPsychologistRepo(PsychologistRepository):
    def __init__(self) -> None:
        self._items: dict[str, PsychologistEntity] = {}

    def find_by_id(self, psychologist_id: str) -> PsychologistEntity | None:
        return self._items.get(psychologist_id)

    def find_many(self, ids: Iterable[str]) -> dict[str, PsychologistEntity]:
        return {pid: self._items[pid] for pid in ids if pid in self._items}

    def save(self, psychologist: PsychologistEntity) -> PsychologistEntity:
        self._items[psychologist.id] = psychologist
        return psychologist


class InMemoryPatientRepo(PatientRepository):
    def __init__(self) -> None:
        self._items: dict[str, PatientEntity] = {}

    def find_by_id(self, patient_id: str) -> PatientEntity | None:
        return self._items.get(patient_id)

    def save(self, patient: PatientEntity) -> PatientEntity:
        self._items[patient.id] = patient
        return patient
