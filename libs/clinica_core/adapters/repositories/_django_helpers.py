from __future__ import annotations

from enum import Enum
from typing import Any

from django.db.models import F
from django.utils import timezone

from clinica_core.core.application.cqrs import PagedResult
from plugins.django_interface.models import PsychologistSchedule


class StaleWrite(Exception):
    """Sinaliza, dentro de ``transaction.atomic``, que o compare-and-set perdeu."""


def plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def model_values(entity: Any, names: tuple[str, ...]) -> dict[str, Any]:
    return {name: plain(getattr(entity, name)) for name in names}


def bump_schedule(psychologist_id: str, expected: int) -> None:
    """Compare-and-set na versão da agenda do psicólogo (0 = agenda ainda inexistente)."""
    if expected == 0:
        _, created = PsychologistSchedule.objects.get_or_create(
            psychologist_id=psychologist_id, defaults={"version": 1}
        )
        if not created:
            raise StaleWrite(psychologist_id)
        return
    updated = PsychologistSchedule.objects.filter(
        psychologist_id=psychologist_id, version=expected
    ).update(version=F("version") + 1, updated_at=timezone.now())
    if not updated:
        raise StaleWrite(psychologist_id)


def paginate(qs, to_entity, page: int, page_size: int) -> PagedResult:
    page = max(page, 1)
    total = qs.count()
    offset = (page - 1) * page_size
    items = [to_entity(m) for m in qs[offset: offset + page_size]]
    return PagedResult(items=items, total=total, page=page, page_size=page_size)
