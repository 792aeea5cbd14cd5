from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import structlog

from clinica_core.core.application.dtos.slot_dto import SlotDTO
from clinica_core.core.domain.entities.agenda_settings_entity import AgendaSettings
from clinica_core.core.domain.events.exceptions import InvalidInputError, NotFoundError
from clinica_core.core.domain.repositories.appointment_repository import AppointmentRepository
from clinica_core.core.domain.repositories.directory_repository import PsychologistRepository
from clinica_core.core.domain.services.clock import Clock

logger = structlog.get_logger(__name__)


def _overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


class AvailabilityService:
    """Horários livres de um psicólogo dentro do expediente configurado."""

    def __init__(
        self,
        appointment_repo: AppointmentRepository,
        psychologist_repo: PsychologistRepository,
        settings: AgendaSettings,
        clock: Clock,
    ) -> None:
        self.appointment_repo = appointment_repo
        self.psychologist_repo = psychologist_repo
        self.settings = settings
        self.clock = clock

    def available_slots(
        self,
        psychologist_id: str,
        day: date,
        duration_minutes: int | None = None,
    ) -> list[SlotDTO]:
        if self.psychologist_repo.find_by_id(psychologist_id) is None:
            raise NotFoundError("psychologist", psychologist_id)
        minutes = duration_minutes or self.settings.default_duration_minutes
        if minutes <= 0:
            raise InvalidInputError("duration_minutes deve ser positivo", field="duration_minutes")

        tz = ZoneInfo(self.settings.timezone)
        day_start = datetime.combine(day, self.settings.workday_start, tzinfo=tz)
        day_end = datetime.combine(day, self.settings.workday_end, tzinfo=tz)
        duration = timedelta(minutes=minutes)
        step = timedelta(minutes=self.settings.slot_step_minutes)

        busy = [
            (a.scheduled_at, a.ends_at)
            for a in self.appointment_repo.list_overlapping(psychologist_id, day_start, day_end)
        ]
        now = self.clock.now()

        slots: list[SlotDTO] = []
        current = day_start
        while current + duration <= day_end:
            slot_end = current + duration
            free = current > now and not any(_overlaps(current, slot_end, b0, b1) for b0, b1 in busy)
            slots.append(SlotDTO(start=current, end=slot_end, available=free))
            current += step

        logger.debug(
            "availability.computed",
            psychologist_id=psychologist_id,
            day=day.isoformat(),
            slots=len(slots),
            busy=len(busy),
        )
        return slots
