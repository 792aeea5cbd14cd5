from __future__ import annotations

from dataclasses import dataclass

from clinica_core.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class ClinicEntity(EntityMixin):
    id: str
    name: str
