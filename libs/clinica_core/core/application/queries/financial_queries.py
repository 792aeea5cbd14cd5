from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from clinica_core.core.application.cqrs import QueryDTO
from clinica_core.core.domain.entities.actor_entity import Actor
from clinica_core.core.domain.entities.enums import SummaryScope


@dataclass(frozen=True, kw_only=True)
class GetFinancialSummaryQuery(QueryDTO[dict]):
    actor: Actor
    scope: SummaryScope
    scope_id: str
    start: date
    end: date
