"""
Mundo de teste em memória: container DI com repositórios em memória,
relógio congelado e um diretório mínimo (clínica, psicólogos, paciente).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from clinica_core.adapters.config.composition_root import build_in_memory_container
from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.agenda_settings_entity import AgendaSettings
from clinica_core.core.domain.entities.clinic_entity import ClinicEntity
from clinica_core.core.domain.entities.enums import ActorRole
from clinica_core.core.domain.entities.patient_entity import PatientEntity
from clinica_core.core.domain.entities.psychologist_entity import PsychologistEntity
from clinica_core.core.domain.events.events import DomainEvent
from clinica_core.core.domain.services.clock import FrozenClock

TZ = ZoneInfo("America/Sao_Paulo")
# segunda-feira, 09:00 no horário local
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=TZ)

CLINIC_ID = "cl-aurora"
OTHER_CLINIC_ID = "cl-boreal"
SOLO_ID = "ps-solo"          # psicóloga independente
CLINIC_PSY_ID = "ps-clinica"  # vinculada, sem delegação
DELEGATED_ID = "ps-delegou"   # vinculada, delegou a agenda
COLLEAGUE_ID = "ps-colega"    # mesma clínica, usado em reatribuições
OUTSIDER_ID = "ps-boreal"     # outra clínica
PATIENT_ID = "pt-ana"


def at(days: int, hour: int, minute: int = 0) -> datetime:
    """Horário local ``days`` dias após NOW."""
    base = NOW + timedelta(days=days)
    return base.replace(hour=hour, minute=minute, second=0, microsecond=0)


@dataclass
class AgendaWorld:
    container: object
    clock: FrozenClock
    events: list[DomainEvent] = field(default_factory=list)

    @property
    def service(self):
        return self.container.agenda_service()

    @property
    def appointments(self):
        return self.container.appointment_repo()

    @property
    def payments(self):
        return self.container.payment_repo()

    # ---------- atores ----------
    @staticmethod
    def clinic(clinic_id: str = CLINIC_ID) -> Actor:
        return Actor(id=clinic_id, role=ActorRole.CLINIC)

    @staticmethod
    def psychologist(psychologist_id: str = SOLO_ID) -> Actor:
        return Actor(id=psychologist_id, role=ActorRole.PSYCHOLOGIST)

    @staticmethod
    def patient(patient_id: str = PATIENT_ID) -> Actor:
        return Actor(id=patient_id, role=ActorRole.PATIENT)

    def events_of(self, event_type: type) -> list:
        return [e for e in self.events if isinstance(e, event_type)]


def seed_directory(container) -> None:
    clinics = container.clinic_repo()
    clinics.save(ClinicEntity(id=CLINIC_ID, name="Clínica Aurora"))
    clinics.save(ClinicEntity(id=OTHER_CLINIC_ID, name="Clínica Boreal"))

    psychologists = container.psychologist_repo()
    psychologists.save(PsychologistEntity(
        id=SOLO_ID, name="Dra. Helena Prado", session_value=Decimal("200.00"),
    ))
    psychologists.save(PsychologistEntity(
        id=CLINIC_PSY_ID, name="Dr. Caio Menezes", clinic_id=CLINIC_ID,
        clinic_percentage=Decimal("30"), session_value=Decimal("150.00"),
    ))
    psychologists.save(PsychologistEntity(
        id=DELEGATED_ID, name="Dra. Marina Luz", clinic_id=CLINIC_ID,
        clinic_percentage=Decimal("30"), session_value=Decimal("150.00"), delegates_to_clinic=True,
    ))
    psychologists.save(PsychologistEntity(
        id=COLLEAGUE_ID, name="Dr. Bruno Sales", clinic_id=CLINIC_ID,
        clinic_percentage=Decimal("30"), session_value=Decimal("150.00"),
    ))
    psychologists.save(PsychologistEntity(
        id=OUTSIDER_ID, name="Dra. Iara Costa", clinic_id=OTHER_CLINIC_ID,
        clinic_percentage=Decimal("20"), session_value=Decimal("180.00"),
    ))

    container.patient_repo().save(PatientEntity(id=PATIENT_ID, name="Ana Ribeiro", clinic_id=CLINIC_ID))


def build_world(**settings) -> AgendaWorld:
    clock = FrozenClock(NOW)
    agenda_settings = AgendaSettings(**settings) if settings else None
    container = build_in_memory_container(agenda_settings=agenda_settings, clock=clock)
    seed_directory(container)
    world = AgendaWorld(container=container, clock=clock)
    container.event_dispatcher().subscribe(DomainEvent, world.events.append)
    return world
