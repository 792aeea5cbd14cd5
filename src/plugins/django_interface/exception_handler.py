"""
Tradução dos erros de domínio para respostas HTTP.

Corpo padrão: ``{"error": {"kind": ..., "message": ..., ...contexto}}``.
"""
import json

import structlog
from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from clinica_core.adapters.observability.metrics import record_error
from clinica_core.core.domain.events.exceptions import AgendaError, InvalidInputError

logger = structlog.get_logger(__name__)

STATUS_BY_KIND = {
    "NotFound": status.HTTP_404_NOT_FOUND,
    "PermissionDenied": status.HTTP_403_FORBIDDEN,
    "InvalidState": status.HTTP_409_CONFLICT,
    "InvalidTimeWindow": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "DoubleBooking": status.HTTP_409_CONFLICT,
    "Conflict": status.HTTP_409_CONFLICT,
    "InvalidInput": status.HTTP_400_BAD_REQUEST,
}


def agenda_exception_handler(exc, context):
    if isinstance(exc, AgendaError):
        body = exc.to_dict()
    elif isinstance(exc, ValidationError):
        body = {
            "kind": InvalidInputError.kind,
            "message": "Payload inválido",
            "errors": json.loads(exc.json(include_url=False)),
        }
    else:
        return drf_exception_handler(exc, context)

    kind = body["kind"]
    http_status = STATUS_BY_KIND.get(kind, status.HTTP_400_BAD_REQUEST)
    record_error(kind)
    view = context.get("view")
    logger.info(
        "http.domain_error",
        kind=kind,
        status=http_status,
        view=type(view).__name__ if view else None,
    )
    return Response({"error": body}, status=http_status)
