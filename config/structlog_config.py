import logging
import os
import sys

import structlog


def configure_logging(
    level: str = os.getenv("LOG_LEVEL", "INFO"),
    json_logs: bool = bool(os.getenv("JSON_LOGS", "")),
) -> None:
    """
    Configura structlog + logging:
     - Em `json_logs` ativa JSONRenderer para produção.
     - Caso contrário, usa ConsoleRenderer colorido para dev.
    Deve ser chamado ANTES de qualquer import que crie loggers.
    """

    # Pré-processors comuns a stdlib e structlog
    pre_chain = [
        structlog.contextvars.merge_contextvars,     # request_id, actor_id, actor_role
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    final_processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.add_logger_name,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,  # ponte para stdlib
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=final_processor,
        foreign_pre_chain=pre_chain,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    logging.captureWarnings(True)
