from django.http import HttpResponse
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from clinica_core.core.domain.events.events import DomainEvent, PaymentBatchConfirmed

registry = CollectorRegistry()

DOMAIN_EVENTS = Counter(
    "agenda_domain_events_total",
    "Eventos de dominio publicados",
    ["entity", "event"],
    registry=registry,
)

DOMAIN_ERRORS = Counter(
    "agenda_domain_errors_total",
    "Erros de dominio devolvidos pela API",
    ["kind"],
    registry=registry,
)

BATCH_SIZE = Histogram(
    "agenda_payment_batch_size",
    "Quantidade de pagamentos por lote de confirmacao",
    buckets=(1, 5, 10, 25, 50, 100, 200),
    registry=registry,
)

BATCH_OUTCOMES = Counter(
    "agenda_payment_batch_items_total",
    "Itens de lotes de confirmacao por resultado",
    ["outcome"],
    registry=registry,
)


def _entity_of(event: DomainEvent) -> str:
    name = type(event).__name__
    if name.startswith("Appointment"):
        return "appointment"
    if name.startswith("Payment"):
        return "payment"
    return "other"


def record_event(event: DomainEvent) -> None:
    DOMAIN_EVENTS.labels(entity=_entity_of(event), event=type(event).__name__).inc()


def record_batch(event: PaymentBatchConfirmed) -> None:
    BATCH_SIZE.observe(event.requested)
    BATCH_OUTCOMES.labels(outcome="confirmed").inc(event.confirmed)
    BATCH_OUTCOMES.labels(outcome="failed").inc(event.failed)


def record_error(kind: str) -> None:
    DOMAIN_ERRORS.labels(kind=kind).inc()


def subscribe_metrics(dispatcher) -> None:
    dispatcher.subscribe(DomainEvent, record_event)
    dispatcher.subscribe(PaymentBatchConfirmed, record_batch)


def metrics_view(request):
    data = generate_latest(registry)
    return HttpResponse(data, content_type=CONTENT_TYPE_LATEST)
