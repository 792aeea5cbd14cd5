from __future__ import annotations

from dataclasses import dataclass

from clinica_core.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class PatientEntity(EntityMixin):
    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    clinic_id: str | None = None
