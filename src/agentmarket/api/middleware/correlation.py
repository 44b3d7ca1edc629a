"""Correlation ID middleware for request tracing.

Every request gets a correlation id, taken from the ``X-Correlation-ID``
request header or generated, which is bound to the logging context and
echoed in the response.
"""

import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from agentmarket.observability.logging import get_logger, set_correlation_id
from agentmarket.observability.metrics import get_metrics_collector

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _route_path(request: Request) -> str:
    # Route template keeps metric label cardinality bounded
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Injects correlation ids and records request metrics."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        set_correlation_id(correlation_id)

        start = time.perf_counter()
        logger.info("request_started", method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                duration_ms=int((time.perf_counter() - start) * 1000),
            )
            raise

        duration_seconds = time.perf_counter() - start
        get_metrics_collector().record_http_request(
            method=request.method,
            endpoint=_route_path(request),
            status_code=response.status_code,
            duration_seconds=duration_seconds,
        )
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=int(duration_seconds * 1000),
        )

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
