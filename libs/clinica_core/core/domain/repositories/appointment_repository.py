from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from clinica_core.core.application.cqrs import PagedResult
from clinica_core.core.domain.entities.appointment_entity import AppointmentEntity


class AppointmentRepository(ABC):
    @abstractmethod
    def find_by_id(self, appointment_id: str) -> AppointmentEntity | None:
        """Busca atendimento por id."""
        ...

    @abstractmethod
    def add(self, appointment: AppointmentEntity, *, schedule_version: int) -> bool:
        """
        Insere um novo atendimento e incrementa a versão da agenda do psicólogo.

        Retorna ``False`` quando a agenda mudou desde ``schedule_version``
        (outra reserva venceu a corrida).
        """
        ...

    @abstractmethod
    def save(
        self,
        appointment: AppointmentEntity,
        *,
        expected_version: int,
        schedule_version: int | None = None,
    ) -> bool:
        """
        Compare-and-set: grava somente se a versão persistida ainda for
        ``expected_version``. Quando ``schedule_version`` é informado, a
        versão da agenda do psicólogo também é verificada e incrementada.
        """
        ...

    @abstractmethod
    def get_schedule_version(self, psychologist_id: str) -> int:
        """Versão atual da agenda do psicólogo (0 quando ainda não existe)."""
        ...

    @abstractmethod
    def list_overlapping(
        self,
        psychologist_id: str,
        start: datetime,
        end: datetime,
        *,
        exclude_id: str | None = None,
    ) -> list[AppointmentEntity]:
        """Atendimentos não cancelados que cruzam ``[start, end)``."""
        ...

    @abstractmethod
    def list(self, filtros: dict[str, Any], page: int, page_size: int) -> PagedResult[AppointmentEntity]:
        """
        Lista paginada. Filtros aceitos: psychologist_id, patient_id,
        clinic_id, status, start, end.
        """
        ...
