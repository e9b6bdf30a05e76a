"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from tokengate.api.deps import DBSession
from tokengate.api.v1 import api_router
from tokengate.core.config import settings
from tokengate.core.errors import APIException, api_exception_handler
from tokengate.core.metrics import get_metrics
from tokengate.core.middleware import (
    SecurityHeadersMiddleware,
    TokenRedactionMiddleware,
    install_token_redaction_logging,
    redact_exception_args,
    redact_token_from_path,
)
from tokengate.core.rate_limit import limiter
from tokengate.db.session import Base, engine
from tokengate.schemas.common import HealthResponse

# Import all models so they're registered with Base.metadata
from tokengate.models import access_log, content  # noqa: F401

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    print(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    from tokengate.core.logging_config import configure_logging
    configure_logging()
    print("Configured structured JSON logging")

    # Signed asset URLs are bearer credentials; keep them out of every log
    install_token_redaction_logging()
    print("Installed token redaction logging filters")
    print(f"Environment: {settings.ENVIRONMENT}")
    print(f"Chain adapter: {settings.CHAIN_ADAPTER}")

    if settings.CHAIN_ADAPTER == "mock" and settings.ENVIRONMENT == "production":
        raise RuntimeError(
            "FATAL: CHAIN_ADAPTER=mock is not allowed in production environment! "
            "The mock adapter reports every wallet as holding the demo collection."
        )

    if not settings.OWNERSHIP_SUBSTRING_FALLBACK_ENABLED:
        print("Ownership substring fallback disabled")

    # IMPORTANT: Only auto-create tables in development/local environments
    # In production, use Alembic migrations: alembic upgrade head
    if settings.ENVIRONMENT in ("local", "development", "dev"):
        print("WARNING: Auto-creating database tables (development mode)")
        print("In production, use 'alembic upgrade head' instead")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        print("Database tables created/verified")
    else:
        print(f"{settings.ENVIRONMENT} mode: Skipping auto-create. Use Alembic migrations.")

    yield
    # Shutdown
    print("Shutting down...")
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="NFT ownership verification and time-limited access to gated content",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url=f"{settings.API_V1_PREFIX}/docs",
    redoc_url=f"{settings.API_V1_PREFIX}/redoc",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Standardized error envelope
app.add_exception_handler(APIException, api_exception_handler)

# CORS middleware - only the methods this API serves
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-User-ID", "X-Request-ID"],
    expose_headers=["X-Request-ID", "Retry-After"],
)

# Security headers middleware - adds standard security headers to all responses
app.add_middleware(SecurityHeadersMiddleware)

# Token redaction middleware - no-referrer on signed asset responses
app.add_middleware(TokenRedactionMiddleware)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions.

    Security: Redacts signed URL tokens from error details to prevent
    token leakage via error responses or logs.
    """
    exc = redact_exception_args(exc)
    redacted_path = redact_token_from_path(request.url.path)

    logger.error(
        f"Unhandled exception on {request.method} {redacted_path}: {type(exc).__name__}",
        extra={"event_type": "http.unhandled_exception", "path": redacted_path},
    )

    # Prepare error details (only in debug mode)
    error_details = None
    if settings.DEBUG:
        error_details = redact_token_from_path(str(exc))

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred",
            "details": error_details,
        },
    )


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(db: DBSession):
    """
    Health check endpoint with real connectivity verification.

    Checks:
    - Database: Executes SELECT 1 to verify connection

    Returns 503 Service Unavailable if the database is down. The chain is
    not probed; chain outages surface per request as chain_unavailable.

    SECURITY: In production, error details are hidden.
    """
    from sqlalchemy import text

    is_production = settings.ENVIRONMENT == "production"
    db_status = "disconnected"
    overall_status = "healthy"

    try:
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        db_status = "error" if is_production else f"error: {str(e)[:50]}"
        overall_status = "unhealthy"

    response = HealthResponse(
        status=overall_status,
        version=settings.APP_VERSION,
        database=db_status,
        chain_adapter=settings.CHAIN_ADAPTER,
        timestamp=datetime.now(timezone.utc),
    )

    # Return 503 if unhealthy so load balancers can detect
    if overall_status == "unhealthy":
        return JSONResponse(
            status_code=503,
            content=response.model_dump(mode="json"),
        )

    return response


if settings.EXPOSE_METRICS:
    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus scrape endpoint."""
        return get_metrics()


# Include API router
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": f"{settings.API_V1_PREFIX}/docs",
    }
