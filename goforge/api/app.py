"""goforge HTTP service.

``create_app`` builds a FastAPI application around an explicitly injected
manifest store, settings object, rate limiter and metrics collector.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from goforge.config import Settings
from goforge.errors import AppError
from goforge.scaffolder import GenerateRequest, ManifestStore, ProjectGenerator

from .metrics import ServiceMetrics
from .middleware import REQUEST_ID_HEADER, RequestContextMiddleware, request_id

logger = logging.getLogger(__name__)

SERVICE_NAME = "goforge"
API_VERSION = "1.0.0"

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


# ---------------------------------------------------------------------------
# Error responses
# ---------------------------------------------------------------------------


def error_response(request: Request, status_code: int, message: str) -> JSONResponse:
    """The ``{error, requestId}`` payload every failure is returned as."""
    rid = request_id(request)
    headers = {REQUEST_ID_HEADER: rid} if rid else None
    return JSONResponse(
        {"error": message, "requestId": rid}, status_code=status_code, headers=headers
    )


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        level,
        "Request failed: %s",
        exc,
        extra={"app_error": exc.log_fields(), "request_id": request_id(request)},
    )
    return error_response(request, exc.status_code, exc.public_message)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _first_validation_message(exc.errors())
    logger.warning(
        "Invalid request body: %s",
        message,
        extra={"request_id": request_id(request), "path": request.url.path},
    )
    return error_response(request, 400, message)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error on %s", request.url.path, extra={"request_id": request_id(request)}
    )
    return error_response(request, 500, "Internal server error")


def handle_rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    # Called synchronously by SlowAPIMiddleware.
    response = error_response(request, 429, f"Rate limit exceeded: {exc.detail}")
    response.headers["Retry-After"] = str(exc.limit.limit.get_expiry())
    return response


def _first_validation_message(errors: Any) -> str:
    if not errors:
        return "Invalid request body"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    message = str(first.get("msg", "invalid value")).removeprefix("Value error, ")
    if first.get("type") == "missing" and loc:
        return f"{loc[-1]} is required"
    if first.get("type") == "json_invalid":
        return "Invalid request body"
    # Custom validators already name the field.
    if loc and not message.startswith(loc[-1]):
        return f"{loc[-1]}: {message}"
    return message


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    settings: Settings | None = None,
    store: ManifestStore | None = None,
    metrics: ServiceMetrics | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Service settings; defaults to ``Settings.from_env()``.
        store: Pre-loaded manifest. When omitted the manifest at
            ``settings.manifest_path`` is loaded at startup, and a failing
            load aborts startup.
        metrics: Counter object; a fresh one is created when omitted.
    """
    settings = settings or Settings.from_env()
    metrics = metrics or ServiceMetrics()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "store", None) is None:
            _install_store(app, ManifestStore.load(settings.manifest_path), settings)
        logger.info("goforge ready (manifest %s)", app.state.store.manifest.version)
        yield
        logger.info("goforge shutting down")

    app = FastAPI(
        title="goforge",
        version=API_VERSION,
        description="Generates Go service projects from a manifest of frameworks and libraries.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.metrics = metrics
    app.state.store = None
    if store is not None:
        _install_store(app, store, settings)

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit] if settings.rate_limit_enabled else [],
        enabled=settings.rate_limit_enabled,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, handle_rate_limited)
    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    # Added last so it wraps the rate limiter and stamps ids on 429s too.
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestContextMiddleware, metrics=metrics)

    # -- Routes ------------------------------------------------------------

    @app.post("/generate", tags=["generate"])
    async def generate(request: Request, payload: GenerateRequest) -> Response:
        """Generate a project and return it as a zip archive."""
        generator: ProjectGenerator = request.app.state.generator
        start = time.monotonic()
        try:
            data = await generator.generate(payload)
        except AppError:
            metrics.record_generation(success=False, duration=time.monotonic() - start)
            raise
        metrics.record_generation(
            success=True, duration=time.monotonic() - start, size=len(data)
        )
        return Response(
            content=data,
            media_type="application/zip",
            headers={
                "Content-Disposition": f"attachment; filename={payload.project_name}.zip"
            },
        )

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": SERVICE_NAME}

    @app.get("/manifest", tags=["manifest"])
    async def manifest(request: Request) -> JSONResponse:
        """The loaded manifest, never cached by clients."""
        loaded: ManifestStore = request.app.state.store
        return JSONResponse(
            loaded.document,
            headers=NO_CACHE_HEADERS,
        )

    @app.get("/metrics", tags=["metrics"])
    async def metrics_snapshot() -> dict[str, Any]:
        return metrics.snapshot()

    # Exempt by name; the routes above keep their coroutine endpoints unwrapped.
    limiter.exempt(health)
    limiter.exempt(metrics_snapshot)

    return app


def _install_store(app: FastAPI, store: ManifestStore, settings: Settings) -> None:
    app.state.store = store
    app.state.generator = ProjectGenerator(store, staging_prefix=settings.staging_prefix)
