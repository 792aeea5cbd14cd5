from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from clinica_core.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class PsychologistEntity(EntityMixin):
    id: str
    name: str
    clinic_id: str | None = None
    clinic_percentage: Decimal = Decimal("0")
    session_value: Decimal = Decimal("0")
    delegates_to_clinic: bool = False
    email: str | None = None

    @property
    def is_affiliated(self) -> bool:
        return self.clinic_id is not None
