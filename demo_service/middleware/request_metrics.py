"""
Middleware that feeds the in-process request counters.

Every request increments the process-wide total before it is routed. Once the
router has resolved the request, the per-endpoint counter keyed by
``"<METHOD> <route path template>"`` is incremented as well. Requests that do
not match any route only count toward the total, so endpoint keys stay bounded
by the set of declared routes rather than by arbitrary client paths.

The middleware also assigns a request id (honouring an incoming
``X-Request-ID`` header), binds it into structlog's context for the duration
of the request and echoes it back in the response headers.
"""
from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from demo_service.adapters.metrics import RequestMetrics


logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def route_key(request: Request) -> str | None:
    """Return the endpoint key for a routed request, or None when unmatched.

    A path match with a method the route does not declare (405) is treated as
    unmatched, since the method string comes from the client.
    """
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if not path or request.method not in (getattr(route, "methods", None) or ()):
        return None
    return f"{request.method} {path}"


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, metrics: RequestMetrics):  # type: ignore[no-untyped-def]
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        self.metrics.increment_request_count()
        started = time.perf_counter()
        status_code = 500

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await call_next(request)
                status_code = response.status_code
            finally:
                key = route_key(request)
                if key is not None:
                    self.metrics.increment_endpoint_count(key)
                logger.info(
                    "request.completed",
                    method=request.method,
                    path=request.url.path,
                    route=key,
                    status_code=status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                )

        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        return response
