"""Request-context middleware: request ids, trace ids, access logs and metrics."""

from __future__ import annotations

import logging
import time
import uuid

from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from .metrics import ServiceMetrics

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
TRACE_ID_HEADER = "X-Trace-ID"
TRACEPARENT_HEADER = "traceparent"


def trace_id_from_headers(headers: Headers) -> str | None:
    """Extract the trace id from a W3C ``traceparent`` or ``X-Trace-ID`` header.

    ``traceparent`` has the form ``<version>-<trace-id>-<parent-id>-<flags>``;
    a malformed value is ignored.
    """
    traceparent = headers.get(TRACEPARENT_HEADER)
    if traceparent:
        parts = traceparent.strip().split("-")
        if len(parts) == 4 and len(parts[1]) == 32 and parts[1] != "0" * 32:
            return parts[1]
    trace_id = headers.get(TRACE_ID_HEADER)
    return trace_id.strip() if trace_id and trace_id.strip() else None


def request_id(request: Request) -> str:
    """The id assigned to *request* by ``RequestContextMiddleware``."""
    return getattr(request.state, "request_id", "") or ""


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns request/trace ids, logs each request and records metrics."""

    def __init__(self, app: ASGIApp, metrics: ServiceMetrics) -> None:
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        trace_id = trace_id_from_headers(request.headers) or rid
        request.state.request_id = rid
        request.state.trace_id = trace_id

        start = time.monotonic()
        response = await call_next(request)
        duration = time.monotonic() - start

        response.headers[REQUEST_ID_HEADER] = rid
        response.headers[TRACE_ID_HEADER] = trace_id
        self.metrics.record_request(
            request.method, request.url.path, response.status_code, duration
        )

        logger.info(
            "http_request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration * 1000, 2),
                "request_id": rid,
                "trace_id": trace_id,
            },
        )
        return response
