"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from kindworld.core.config import settings
from kindworld.core.structured_logging import build_log_context
from kindworld.db.session import engine
from kindworld.services.errors import (
    AlreadyPendingError,
    AlreadyProcessedError,
    DeliveryFailure,
    InvalidInputError,
    NotFoundError,
    PersistenceError,
    UnauthorizedError,
    VerificationServiceError,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,
    )
    logging.info("Sentry initialized for error tracking")


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="KindWorld Verification API",
    description="NGO verification workflow and notification delivery",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


# ============================================================================
# Error mapping
# ============================================================================

# Most specific first; subclasses inherit their parent's status
ERROR_STATUS_CODES: list[tuple[type[VerificationServiceError], int]] = [
    (InvalidInputError, 422),
    (NotFoundError, 404),
    (AlreadyProcessedError, 409),
    (AlreadyPendingError, 409),
    (UnauthorizedError, 403),
    (PersistenceError, 503),
    (DeliveryFailure, 502),
]


def status_code_for(exc: VerificationServiceError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


@app.exception_handler(VerificationServiceError)
async def verification_error_handler(request: Request, exc: VerificationServiceError):
    status_code = status_code_for(exc)
    log = logger.warning if status_code >= 500 else logger.info
    log(
        "%s: %s",
        exc.kind,
        exc.message,
        extra=build_log_context(route=request.url.path, method=request.method),
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.kind, "detail": exc.message},
    )


# ============================================================================
# Routers
# ============================================================================

from kindworld.routers import admin, notifications, verification

app.include_router(verification.router, prefix="/verification-requests", tags=["verification"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])
app.include_router(notifications.router, prefix="/users", tags=["notifications"])


# ============================================================================
# Health Check
# ============================================================================


@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
