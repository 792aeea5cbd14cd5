from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from datetime import time
from typing import Any


def _parse_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    hours, _, minutes = str(value).partition(":")
    return time(int(hours), int(minutes or 0))


@dataclass(frozen=True, slots=True)
class AgendaSettings:
    """Parâmetros operacionais da agenda (vindos do settings do Django)."""
    default_duration_minutes: int = 50
    patient_decline_auto_cancel: bool = True
    batch_max_workers: int = 4
    batch_max_size: int = 200
    workday_start: time = time(8, 0)
    workday_end: time = time(20, 0)
    slot_step_minutes: int = 30
    timezone: str = "America/Sao_Paulo"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> AgendaSettings:
        if not data:
            return cls()
        names = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in names and v is not None}
        for key in ("workday_start", "workday_end"):
            if key in values:
                values[key] = _parse_time(values[key])
        return cls(**values)
