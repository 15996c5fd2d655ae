"""
Correlation ID Middleware

Tags every request with a correlation ID so account changes, audit events
and log lines from one request can be joined later.
"""

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from ...utils.logger import get_logger, set_correlation_id
from ...utils.idgen import generate_correlation_id

logger = get_logger(__name__)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Reuse the caller's X-Correlation-Id or mint one, expose it to logging
    and audit through the context variable, and echo it on the response.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = (
            request.headers.get("X-Correlation-Id") or generate_correlation_id()
        )
        set_correlation_id(correlation_id)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers["X-Correlation-Id"] = correlation_id
        logger.debug(
            f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms",
            extra={"status": response.status_code}
        )
        return response
