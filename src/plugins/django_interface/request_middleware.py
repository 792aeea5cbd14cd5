import uuid

import structlog


class RequestContextMiddleware:
    """Vincula request_id e ator aos logs estruturados da requisição."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            actor_id=request.headers.get("X-Actor-Id"),
            actor_role=request.headers.get("X-Actor-Role"),
            path=request.path,
        )
        try:
            response = self.get_response(request)
        finally:
            structlog.contextvars.clear_contextvars()
        response["X-Request-Id"] = request_id
        return response
