"""FastAPI application entry point.

파트너 정산 API - 하위 유저 활동 기반 롤링/루징/환전 수수료 및 통합 정산
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from affiliate_admin import __version__
from affiliate_admin.api import settlement
from affiliate_admin.config import get_settings
from affiliate_admin.logging_config import clear_context, configure_logging, get_logger
from affiliate_admin.middleware.sentry import init_sentry
from affiliate_admin.utils.db import close_db, engine, init_db
from affiliate_admin.utils.errors import DataAccessError, ErrorCode, SettlementError
from affiliate_admin.utils.json_utils import ORJSONResponse

settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_logs=settings.app_env == "production",
    app_env=settings.app_env,
)
logger = get_logger(__name__)

sentry_enabled = init_sentry(
    dsn=settings.sentry_dsn,
    environment=settings.app_env,
    release=__version__,
    traces_sample_rate=settings.sentry_traces_sample_rate
    if settings.app_env == "production"
    else 0.0,
)
if sentry_enabled:
    logger.info("sentry_initialized")
elif settings.app_env == "production":
    logger.warning("sentry_dsn_not_configured")


# =============================================================================
# Lifespan Events
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    logger.info("application_starting", env=settings.app_env)
    try:
        await init_db()
        logger.info("database_connected")
    except Exception as e:
        logger.error("application_startup_failed", error=str(e))
        raise

    yield

    logger.info("application_shutting_down")
    await close_db()
    logger.info("database_closed")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Affiliate Settlement API",
    version=__version__,
    description="파트너 수수료 정산 API",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

cors_origins = [origin.strip() for origin in settings.cors_origins.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Trace-Id"],
    expose_headers=["X-Trace-Id"],
)


@app.middleware("http")
async def clear_log_context(request: Request, call_next):
    """Reset per-request log context bound by the routers."""
    clear_context()
    return await call_next(request)


# =============================================================================
# Error Handlers
# =============================================================================


def get_trace_id(request: Request) -> str:
    return request.headers.get("X-Trace-Id") or str(uuid.uuid4())


def create_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    trace_id: str | None = None,
) -> dict[str, Any]:
    """Create standardized error response."""
    return {
        "errorCode": code,
        "errorMessage": message,
        "details": details or {},
        "traceId": trace_id,
    }


@app.exception_handler(SettlementError)
async def settlement_error_handler(
    request: Request, exc: SettlementError
) -> ORJSONResponse:
    """Handle settlement request errors."""
    trace_id = get_trace_id(request)
    status_code = (
        status.HTTP_404_NOT_FOUND if exc.is_not_found else status.HTTP_400_BAD_REQUEST
    )

    logger.warning(
        "settlement_error", code=exc.code, message=exc.message, trace_id=trace_id
    )
    return ORJSONResponse(
        status_code=status_code,
        content={**exc.to_dict(), "traceId": trace_id},
    )


@app.exception_handler(DataAccessError)
async def data_access_error_handler(
    request: Request, exc: DataAccessError
) -> ORJSONResponse:
    """Handle a data source failure outside the engine (e.g. partner lookup)."""
    trace_id = get_trace_id(request)
    logger.error(
        "data_source_unavailable",
        operation=exc.operation,
        error=str(exc),
        trace_id=trace_id,
    )
    return ORJSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=create_error_response(
            code=ErrorCode.DATA_SOURCE_UNAVAILABLE.value,
            message="데이터베이스를 사용할 수 없습니다",
            details={"operation": exc.operation},
            trace_id=trace_id,
        ),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Handle unexpected exceptions."""
    trace_id = get_trace_id(request)
    logger.error(
        "unexpected_error",
        error_type=type(exc).__name__,
        error_message=str(exc),
        trace_id=trace_id,
        exc_info=True,
    )

    # Don't expose internal error details in production
    message = "Internal server error"
    if settings.app_debug:
        message = f"{type(exc).__name__}: {exc}"

    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=create_error_response(
            code=ErrorCode.INTERNAL_ERROR.value,
            message=message,
            trace_id=trace_id,
        ),
    )


# =============================================================================
# Health Check
# =============================================================================


@app.get(
    "/health",
    tags=["Health"],
    summary="Health check endpoint",
)
async def health_check() -> dict[str, Any]:
    """Check application health status including database connectivity."""
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "services": {"database": "unknown"},
    }

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["services"]["database"] = "healthy"
    except Exception as e:
        health_status["services"]["database"] = f"unhealthy: {e}"
        health_status["status"] = "degraded"
        logger.error("database_health_check_failed", error=str(e))

    return health_status


# =============================================================================
# API Routers
# =============================================================================

app.include_router(settlement.router, prefix="/api")


# =============================================================================
# Development / Production Server
# =============================================================================


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "affiliate_admin.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
        log_level=settings.log_level.lower(),
    )
