import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.dependencies import get_notification_dispatcher
from app.api.deps import engine
from app.api.routers.bookings import router as bookings_router
from app.api.routers.health import router as health_router
from app.api.routers.public import router as public_router
from app.api.routers.worker import router as worker_router
from app.config import get_settings
from app.domain.errors import (
    AlreadyTerminalError,
    AuthenticationRequiredError,
    ConflictError,
    DomainError,
    ForbiddenError,
    InvalidStatusTransitionError,
    NotEditableError,
    ProviderRejectedError,
    RateLimitExceededError,
    ReservationNotFoundError,
    ValidationError,
)
from app.infrastructure.db.engine import create_schema

settings = get_settings()

# Configure structured logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Most specific first; the first match wins
ERROR_STATUS: list[tuple[type[DomainError], int]] = [
    (AuthenticationRequiredError, 401),
    (ForbiddenError, 403),
    (ReservationNotFoundError, 404),
    (AlreadyTerminalError, 409),
    (InvalidStatusTransitionError, 409),
    (NotEditableError, 409),
    (ProviderRejectedError, 409),
    (ConflictError, 409),
    (RateLimitExceededError, 429),
    (ValidationError, 422),
]


def status_for(exc: DomainError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 400


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize DB tables (for dev/demo purposes)
    if not settings.use_in_memory:
        await create_schema(engine)
    yield
    # Cleanup
    await get_notification_dispatcher().drain()
    await engine.dispose()

app = FastAPI(
    title="Flight Bookings API",
    version="0.1.0",
    lifespan=lifespan
)


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    status_code = status_for(exc)
    content = {"detail": exc.message, "code": exc.code}
    headers = None

    if isinstance(exc, ValidationError) and exc.field:
        content["field"] = exc.field
    if isinstance(exc, ProviderRejectedError):
        content["reservation_code"] = exc.reservation_code
        content["reason_code"] = exc.reason_code
    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}

    logger.info(
        "Request rejected",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(status_code=status_code, content=content, headers=headers)


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler to prevent stack trace exposure to clients.
    All unhandled exceptions are logged internally and return a generic error message.
    """
    error_id = str(uuid.uuid4())

    # Log the full error with context for internal debugging
    logger.error(
        "Unhandled exception occurred",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
            "client_host": request.client.host if request.client else None,
        }
    )

    # Return a generic error to the client without exposing internal details
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "message": "An unexpected error occurred. Please contact support with the error_id if the issue persists."
        }
    )


app.include_router(health_router, tags=["Health"])
app.include_router(bookings_router, prefix="/api/v1", tags=["Bookings"])
app.include_router(public_router, prefix="/api/v1", tags=["Public"])
app.include_router(worker_router, prefix="/api/v1", tags=["Worker"])
