from collections.abc import Callable

import structlog

from clinica_core.core.domain.events.events import DomainEvent

logger = structlog.get_logger(__name__)


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", type(handler).__name__)


class EventDispatcher:
    """
    Dispatcher de eventos de domínio.
    Assinaturas numa classe base recebem também os eventos das subclasses.
    """
    def __init__(self) -> None:
        self._subs: dict[type[DomainEvent], list[Callable[[DomainEvent], None]]] = {}

    def subscribe(self, event_type: type[DomainEvent], handler: Callable[[DomainEvent], None]) -> None:
        self._subs.setdefault(event_type, []).append(handler)
        logger.debug(
            "event.subscribed",
            event_type=event_type.__name__,
            handler_name=_handler_name(handler),
        )

    def _handlers_for(self, event: DomainEvent) -> list[Callable[[DomainEvent], None]]:
        handlers: list[Callable[[DomainEvent], None]] = []
        for klass in type(event).__mro__:
            handlers.extend(self._subs.get(klass, []))
        return handlers

    def dispatch(self, event: DomainEvent) -> None:
        handlers = self._handlers_for(event)
        logger.info(
            "event.dispatch",
            event_name=type(event).__name__,
            listeners=len(handlers),
        )
        for h in handlers:
            try:
                h(event)
            except Exception as e:
                logger.error(
                    "event.handler_error",
                    event_name=type(event).__name__,
                    handler_name=_handler_name(h),
                    error=str(e),
                    exc_info=True,
                )
