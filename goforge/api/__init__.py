"""goforge HTTP service -- FastAPI application, request middleware and counters."""

from goforge.api.app import create_app
from goforge.api.metrics import ServiceMetrics
from goforge.api.middleware import RequestContextMiddleware

__all__ = ["RequestContextMiddleware", "ServiceMetrics", "create_app"]
