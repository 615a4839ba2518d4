from __future__ import annotations

import logging
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from msgbridge.api.error_handlers import error_payload
from msgbridge.core.logging import request_id_ctx
from msgbridge.observability.metrics import now_ms, record_request

REQUEST_ID_HEADER = "X-Request-Id"

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request id for the whole request, including unhandled failures.

    Anything that escapes the exception handlers is rendered here, while the
    request id is still bound, so every response carries ``X-Request-Id``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        req_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_ctx.set(req_id)
        start = now_ms()
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception("unhandled error", extra={"path": request.url.path})
                response = error_payload(500, "internal_error", "Unexpected error")
            duration_ms = now_ms() - start
            response.headers[REQUEST_ID_HEADER] = req_id
            # Label metrics with the route template, not the raw path.
            route = request.scope.get("route")
            path_template = getattr(route, "path", None) or request.url.path
            record_request(
                request.app.state.settings,
                request.method,
                path_template,
                response.status_code,
                duration_ms,
            )
            logger.info(
                "request",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "latency_ms": round(duration_ms, 2),
                    "client_ip": request.client.host if request.client else None,
                },
            )
            return response
        finally:
            request_id_ctx.reset(token)
