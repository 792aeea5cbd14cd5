from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


# ───────────────────────────────────────────────
# Hierarquia de erros de domínio
# ───────────────────────────────────────────────
class AgendaError(Exception):
    """
    Erro base da agenda. Cada subclasse define ``kind`` e carrega o
    contexto necessário para o cliente decidir o próximo passo.
    """
    kind = "AgendaError"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        payload = {"kind": self.kind, "message": self.message}
        payload.update({k: _plain(v) for k, v in self.context.items() if v is not None})
        return payload


class NotFoundError(AgendaError):
    kind = "NotFound"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} '{entity_id}' não encontrado", entity=entity, entity_id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class PermissionDeniedError(AgendaError):
    kind = "PermissionDenied"

    def __init__(
        self,
        reason: str,
        *,
        required_actor: str | None = None,
        required_role: Any = None,
        hint: str | None = None,
        operation: Any = None,
    ) -> None:
        super().__init__(
            reason,
            required_actor=required_actor,
            required_role=required_role,
            hint=hint,
            operation=operation,
        )
        self.reason = reason
        self.required_actor = required_actor
        self.required_role = required_role
        self.hint = hint


class InvalidStateError(AgendaError):
    kind = "InvalidState"

    def __init__(self, entity: str, from_status: Any, attempted: Any) -> None:
        super().__init__(
            f"{entity}: transição inválida de '{_plain(from_status)}' para '{_plain(attempted)}'",
            entity=entity,
            from_status=from_status,
            attempted=attempted,
        )
        self.from_status = from_status
        self.attempted = attempted


class InvalidTimeWindowError(AgendaError):
    kind = "InvalidTimeWindow"

    def __init__(self, reason: str, *, proposed: datetime | None = None) -> None:
        super().__init__(reason, proposed=proposed)
        self.proposed = proposed


class DoubleBookingError(AgendaError):
    kind = "DoubleBooking"

    def __init__(
        self,
        conflicting_appointment_id: str,
        *,
        psychologist_id: str | None = None,
        window_start: datetime | None = None,
        window_end: datetime | None = None,
    ) -> None:
        super().__init__(
            "Psicólogo já possui atendimento no horário solicitado",
            conflicting_appointment_id=conflicting_appointment_id,
            psychologist_id=psychologist_id,
            window_start=window_start,
            window_end=window_end,
        )
        self.conflicting_appointment_id = conflicting_appointment_id


class ConflictError(AgendaError):
    kind = "Conflict"

    def __init__(
        self,
        entity: str,
        entity_id: str,
        *,
        current_state: Any = None,
        current_version: int | None = None,
        reason: str | None = None,
        suggestion: str = "reload and retry",
    ) -> None:
        super().__init__(
            reason or f"{entity} '{entity_id}' foi alterado por outra operação",
            entity=entity,
            entity_id=entity_id,
            current_state=current_state,
            current_version=current_version,
            suggestion=suggestion,
        )
        self.entity_id = entity_id
        self.current_state = current_state
        self.current_version = current_version
        self.suggestion = suggestion


class InvalidInputError(AgendaError):
    kind = "InvalidInput"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, **context)
