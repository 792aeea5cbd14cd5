"""
Assinante do EventDispatcher que publica os eventos de domínio no broker.

Cada mensagem leva o evento serializado e a lista de destinatários a
notificar: as partes do atendimento/pagamento que não executaram a ação.
"""
from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict
from typing import Any

import structlog
from kombu import Exchange

from clinica_core.adapters.message_broker.rabbitmq import MessagingService
from clinica_core.core.domain.entities.enums import ActorRole
from clinica_core.core.domain.events.events import DomainEvent

logger = structlog.get_logger(__name__)

_PARTIES = (
    (ActorRole.PSYCHOLOGIST, "psychologist_id"),
    (ActorRole.PATIENT, "patient_id"),
    (ActorRole.CLINIC, "clinic_id"),
)


def counterpart_recipients(event: DomainEvent) -> list[dict[str, str]]:
    """Partes envolvidas no evento, exceto o próprio ator."""
    recipients = []
    for role, attr in _PARTIES:
        party_id = getattr(event, attr, None)
        if not party_id:
            continue
        if party_id == event.actor_id and role.value == event.actor_role:
            continue
        recipients.append({"role": role.value, "id": party_id})
    return recipients


def event_message(event: DomainEvent) -> dict[str, Any]:
    return {
        "event": type(event).__name__,
        "payload": asdict(event),
        "recipients": counterpart_recipients(event),
    }


class NotificationEventPublisher:
    """
    Fire-and-forget: a mensagem é montada no dispatch e entregue ao broker
    por um pool de threads próprio, fora do caminho do comando.

    ``defer`` recebe o agendamento do envio (no Django, ``transaction.on_commit``)
    para que nada seja publicado de uma transação desfeita. Falhas de
    publicação são logadas e descartadas; com a fila cheia o evento é
    descartado com aviso.
    """

    def __init__(
        self,
        messaging: MessagingService,
        exchange: Exchange,
        *,
        max_workers: int = 2,
        max_pending: int = 1000,
        defer: Callable[[Callable[[], None]], None] | None = None,
    ) -> None:
        self.messaging = messaging
        self.exchange = exchange
        self.defer = defer
        self._slots = threading.BoundedSemaphore(max_pending)
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="event-publisher",
        )

    def __call__(self, event: DomainEvent) -> None:
        name = type(event).__name__
        message = event_message(event)

        def schedule() -> None:
            self.submit(name, message)

        if self.defer is not None:
            self.defer(schedule)
        else:
            schedule()

    def submit(self, routing_key: str, message: dict[str, Any]) -> None:
        if not self._slots.acquire(blocking=False):
            logger.warning("notification.publish_dropped", event_name=routing_key, reason="queue_full")
            return
        try:
            self._executor.submit(self._publish, routing_key, message)
        except RuntimeError as exc:
            self._slots.release()
            logger.warning("notification.publish_dropped", event_name=routing_key, reason=str(exc))

    def _publish(self, routing_key: str, message: dict[str, Any]) -> None:
        try:
            self.messaging.publish(self.exchange, routing_key=routing_key, message=message)
        except Exception as exc:
            logger.warning("notification.publish_failed", event_name=routing_key, error=str(exc))
        finally:
            self._slots.release()

    def shutdown(self, wait: bool = True) -> None:
        """Espera (ou não) as publicações pendentes e encerra o pool."""
        self._executor.shutdown(wait=wait)
