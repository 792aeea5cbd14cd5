from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

import structlog
from kombu import Connection, Exchange
from kombu.pools import producers
from kombu.serialization import register

log = structlog.get_logger(__name__)


def build_events_exchange(name: str = "agenda.events") -> Exchange:
    """Exchange ``topic``: a routing key é o nome do evento de domínio."""
    return Exchange(name, type="topic", durable=True)


# --- Serializer Customizado ---
def _default_serializer(obj):
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, datetime | date):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps(data):
    return json.dumps(data, default=_default_serializer)


register("custom_json", dumps, json.loads, content_type="application/json", content_encoding="utf-8")


class MessagingService:
    def __init__(self, rabbitmq_url: str):
        if not rabbitmq_url:
            raise ValueError("A URL do RabbitMQ é obrigatória.")
        self.rabbitmq_url = rabbitmq_url
        log.info("messaging.initialized")

    def publish(self, exchange: Exchange, routing_key: str, message: dict):
        log.debug("messaging.publish", exchange=exchange.name, routing_key=routing_key)
        try:
            with Connection(self.rabbitmq_url) as conn, producers[conn].acquire(block=True) as producer:
                producer.publish(
                    body=message,
                    exchange=exchange,
                    routing_key=routing_key,
                    declare=[exchange],
                    serializer="custom_json",
                    retry=True,
                    retry_policy={
                        "interval_start": 0, "interval_step": 2,
                        "interval_max": 30, "max_retries": 3,
                    },
                )
            log.info("messaging.published", exchange=exchange.name, routing_key=routing_key)
        except Exception:
            log.exception("messaging.publish_failed", exchange=exchange.name, routing_key=routing_key)
            raise


__all__ = ["MessagingService", "build_events_exchange"]
