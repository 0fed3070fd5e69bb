"""FastAPI application entry point.

Configures logging, metrics, exception handling, health checks and the
chat routes.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from codechat import __version__
from codechat.api.routes import router
from codechat.config import get_settings
from codechat.exceptions import CodechatError, ErrorCode
from codechat.logging_config import get_logger, setup_logging
from codechat.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)
from codechat.wiring import build_services

logger = get_logger(__name__)

_STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.ITEM_NOT_FOUND: 404,
    ErrorCode.LLM_RATE_LIMIT: 429,
    ErrorCode.SERVICE_UNAVAILABLE: 503,
    ErrorCode.LLM_TIMEOUT: 504,
    ErrorCode.DATABASE_ERROR: 502,
    ErrorCode.EMBEDDING_SERVICE_ERROR: 502,
    ErrorCode.LLM_SERVICE_ERROR: 502,
    ErrorCode.RETRIEVAL_ERROR: 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Wires services onto ``app.state`` at startup and closes them on shutdown.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level)
    logger.info(
        "Starting codechat",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
        },
    )

    services = build_services(settings)
    app.state.services = services

    yield

    logger.info("Shutting down codechat")
    await services.aclose()
    app.state.services = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="codechat",
        description="Chat over vector-embedded code examples",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(MetricsMiddleware)
    app.add_exception_handler(CodechatError, codechat_exception_handler)

    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Metrics"])
    app.include_router(router)

    return app


async def codechat_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Convert CodechatError exceptions to structured JSON responses."""
    if not isinstance(exc, CodechatError):
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": str(exc),
                    "details": {},
                }
            },
        )

    logger.error(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(
        status_code=get_status_code(exc.code),
        content=exc.to_dict(),
    )


def get_status_code(code: ErrorCode) -> int:
    """Map an error code to an HTTP status code."""
    return _STATUS_CODES.get(code, 500)


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> dict[str, Any]:
    """Readiness probe.

    Reports the database once services are wired.
    """
    checks: dict[str, str] = {
        "config": "ok",
    }

    services = getattr(request.app.state, "services", None)
    if services is not None:
        checks["database"] = "ok" if await services.repository.ping() else "unavailable"

    all_ok = all(v == "ok" for v in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def liveness_check() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "alive"}


async def metrics_endpoint() -> Response:
    """Prometheus exposition."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


app = create_app()
