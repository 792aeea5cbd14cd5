from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import replace
from typing import Any, TypeVar

import structlog

from clinica_core.core.domain.events.exceptions import ConflictError, NotFoundError
from clinica_core.core.domain.repositories.unit_of_work import UnitOfWork
from clinica_core.core.domain.services.clock import Clock

logger = structlog.get_logger(__name__)

E = TypeVar("E")


class ConflictCoordinator:
    """
    Envolve toda operação de escrita com controle otimista de concorrência.

    Ordem das verificações: entidade ausente → (permissão, no handler) →
    no-op idempotente → versão esperada desatualizada → validação de
    estado → gravação compare-and-set. Não há retry automático.
    """

    def __init__(self, uow: UnitOfWork, clock: Clock) -> None:
        self.uow = uow
        self.clock = clock

    def atomic(self) -> AbstractContextManager:
        return self.uow.atomic()

    @staticmethod
    def load(entity: str, entity_id: Any, finder: Callable[[str], E | None]) -> E:
        found = finder(entity_id) if entity_id else None
        if found is None:
            raise NotFoundError(entity, entity_id)
        return found

    @staticmethod
    def check_precondition(entity: str, current: Any, expected_version: int | None) -> None:
        """Versão informada pelo cliente diferente da persistida → Conflict."""
        if expected_version is None or expected_version == current.version:
            return
        logger.info(
            "conflict.stale_precondition",
            entity=entity,
            entity_id=current.id,
            expected_version=expected_version,
            current_version=current.version,
        )
        raise ConflictError(
            entity,
            current.id,
            current_state=current.status,
            current_version=current.version,
        )

    def persist(
        self,
        entity: str,
        current: E,
        updated: E,
        saver: Callable[..., bool],
        finder: Callable[[str], E | None],
        **save_kwargs: Any,
    ) -> E:
        """Grava ``updated`` com versão+1 se ``current`` ainda é o estado persistido."""
        candidate = replace(updated, version=current.version + 1, updated_at=self.clock.now())
        if saver(candidate, expected_version=current.version, **save_kwargs):
            return candidate
        raise self._lost_race(entity, current, finder)

    def insert(
        self,
        entity: str,
        new: E,
        adder: Callable[..., bool],
        finder: Callable[[str], E | None],
        **add_kwargs: Any,
    ) -> E:
        if adder(new, **add_kwargs):
            return new
        raise self._lost_race(entity, new, finder)

    @staticmethod
    def _lost_race(entity: str, attempted: Any, finder: Callable[[str], Any]) -> ConflictError:
        latest = finder(attempted.id)
        if latest is not None and latest.version != attempted.version:
            reason = None
        else:
            reason = "A agenda do psicólogo foi alterada por outra operação"
        logger.info(
            "conflict.write_lost",
            entity=entity,
            entity_id=attempted.id,
            current_version=latest.version if latest else None,
        )
        return ConflictError(
            entity,
            attempted.id,
            current_state=latest.status if latest else None,
            current_version=latest.version if latest else None,
            reason=reason,
        )
