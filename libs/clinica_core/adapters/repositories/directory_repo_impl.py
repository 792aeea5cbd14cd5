from collections.abc import Iterable

from clinica_core.core.domain.entities.clinic_entity import ClinicEntity
from clinica_core.core.domain.entities.patient_entity import PatientEntity
from clinica_core.core.domain.entities.psychologist_entity import PsychologistEntity
from clinica_core.core.domain.repositories.directory_repository import (
    ClinicRepository,
    PatientRepository,
    PsychologistRepository,
)
from plugins.django_interface.models import Clinic as ClinicModel
from plugins.django_interface.models import Patient as PatientModel
from plugins.django_interface.models import Psychologist as PsychologistModel


class ClinicRepoImpl(ClinicRepository):
    def find_by_id(self, clinic_id: str) -> ClinicEntity | None:
        try:
            return ClinicEntity.from_model(ClinicModel.objects.get(id=clinic_id))
        except ClinicModel.DoesNotExist:
            return None

    def save(self, clinic: ClinicEntity) -> ClinicEntity:
        m, _ = ClinicModel.objects.update_or_create(id=clinic.id, defaults={"name": clinic.name})
        return ClinicEntity.from_model(m)


class PsychologistRepoImpl(PsychologistRepository):
    def find_by_id(self, psychologist_id: str) -> PsychologistEntity | None:
        try:
            return PsychologistEntity.from_model(PsychologistModel.objects.get(id=psychologist_id))
        except PsychologistModel.DoesNotExist:
            return None

    def find_many(self, ids: Iterable[str]) -> dict[str, PsychologistEntity]:
        qs = PsychologistModel.objects.filter(id__in=list(ids))
        return {m.id: PsychologistEntity.from_model(m) for m in qs}

    def save(self, psychologist: PsychologistEntity) -> PsychologistEntity:
        data = psychologist.to_dict()
        data.pop("id")
        m, _ = PsychologistModel.objects.update_or_create(id=psychologist.id, defaults=data)
        return PsychologistEntity.from_model(m)


class PatientRepoImpl(PatientRepository):
    def find_by_id(self, patient_id: str) -> PatientEntity | None:
        try:
            return PatientEntity.from_model(PatientModel.objects.get(id=patient_id))
        except PatientModel.DoesNotExist:
            return None

    def save(self, patient: PatientEntity) -> PatientEntity:
        data = patient.to_dict()
        data.pop("id")
        m, _ = PatientModel.objects.update_or_create(id=patient.id, defaults=data)
        return PatientEntity.from_model(m)
