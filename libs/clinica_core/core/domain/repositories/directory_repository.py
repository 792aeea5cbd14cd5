from abc import ABC, abstractmethod
from collections.abc import Iterable

from clinica_core.core.domain.entities.clinic_entity import ClinicEntity
from clinica_core.core.domain.entities.patient_entity import PatientEntity
from clinica_core.core.domain.entities.psychologist_entity import PsychologistEntity


class ClinicRepository(ABC):
    @abstractmethod
    def find_by_id(self, clinic_id: str) -> ClinicEntity | None:
        ...

    @abstractmethod
    def save(self, clinic: ClinicEntity) -> ClinicEntity:
        """Cria ou atualiza a clínica."""
        ...


class PsychologistRepository(ABC):
    @abstractmethod
    def find_by_id(self, psychologist_id: str) -> PsychologistEntity | None:
        ...

    @abstractmethod
    def find_many(self, ids: Iterable[str]) -> dict[str, PsychologistEntity]:
        """Mapa id → psicólogo (ids inexistentes são omitidos)."""
        ...

    @abstractmethod
    def save(self, psychologist: PsychologistEntity) -> PsychologistEntity:
        ...


class PatientRepository(ABC):
    @abstractmethod
    def find_by_id(self, patient_id: str) -> PatientEntity | None:
        ...

    @abstractmethod
    def save(self, patient: PatientEntity) -> PatientEntity:
        ...
