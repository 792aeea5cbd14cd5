from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class BatchFailureDTO:
    id: str | None
    reason: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchConfirmResultDTO:
    """Resultado parcial: cada id é confirmado ou falha de forma independente."""
    confirmed: list[str] = field(default_factory=list)
    failed: list[BatchFailureDTO] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.confirmed) and bool(self.failed)

    @property
    def failed_ids(self) -> list[str | None]:
        return [f.id for f in self.failed]
