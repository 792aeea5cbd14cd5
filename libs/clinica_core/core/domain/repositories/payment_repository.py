from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from clinica_core.core.application.cqrs import PagedResult
from clinica_core.core.domain.entities.enums import SummaryScope
from clinica_core.core.domain.entities.payment_entity import PaymentEntity


class PaymentRepository(ABC):
    @abstractmethod
    def find_by_id(self, payment_id: str) -> PaymentEntity | None:
        ...

    @abstractmethod
    def find_by_appointment(self, appointment_id: str) -> PaymentEntity | None:
        ...

    @abstractmethod
    def add(self, payment: PaymentEntity) -> None:
        """Persiste um novo pagamento."""
        ...

    @abstractmethod
    def save(self, payment: PaymentEntity, *, expected_version: int) -> bool:
        """Compare-and-set pela versão; ``False`` se outra escrita venceu."""
        ...

    @abstractmethod
    def list_for_scope(
        self,
        scope: SummaryScope,
        scope_id: str,
        created_from: datetime,
        created_until: datetime,
    ) -> list[PaymentEntity]:
        """
        Pagamentos do escopo (clínica, psicólogo ou paciente) criados em
        ``[created_from, created_until)``.
        """
        ...

    @abstractmethod
    def list(self, filtros: dict[str, Any], page: int, page_size: int) -> PagedResult[PaymentEntity]:
        """Filtros aceitos: psychologist_id, patient_id, clinic_id, status, appointment_id."""
        ...
