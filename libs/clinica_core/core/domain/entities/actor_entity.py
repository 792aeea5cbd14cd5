from __future__ import annotations

from dataclasses import dataclass

from clinica_core.core.domain.entities.enums import ActorRole


@dataclass(frozen=True, slots=True)
class Actor:
    """
    Identidade já autenticada que executa a operação.
    Para atores do papel ``clinic`` o ``id`` é o próprio id da clínica.
    """
    id: str
    role: ActorRole
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", ActorRole(self.role))

    @property
    def is_clinic(self) -> bool:
        return self.role is ActorRole.CLINIC

    @property
    def is_psychologist(self) -> bool:
        return self.role is ActorRole.PSYCHOLOGIST

    @property
    def is_patient(self) -> bool:
        return self.role is ActorRole.PATIENT
