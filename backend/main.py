# ruff: noqa: E402
# E402 disabled: load_dotenv() must run before other imports for Sentry DSN

import os
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

import sentry_sdk
from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from core.correlation import (
    CorrelationIdMiddleware,
    generate_correlation_id,
    get_correlation_id,
)
from core.logging_config import configure_logging
from core.sentry_config import init_sentry
from helpers.rate_limiter import limiter
from models.config import settings
from models.exceptions import (
    AuthenticationException,
    ConflictException,
    DomainException,
    MessagingRestrictedException,
    NotFoundException,
    PermissionDeniedException,
    PersistenceException,
    ValidationException,
)
from repositories.database import Base, engine
from routers import messaging_router, moderation_router

# Initialize Sentry BEFORE app creation
init_sentry()

# Configure logging with Loguru
configure_logging(os.getenv("ENVIRONMENT", "development"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    - Optionally create tables when `AUTO_CREATE_DB` is enabled (development).
      Otherwise the schema is managed by `alembic upgrade head`.
    """
    if settings.AUTO_CREATE_DB:
        logger.info(
            "AUTO_CREATE_DB enabled; creating database tables via SQLAlchemy create_all()"
        )
        Base.metadata.create_all(bind=engine)
    else:
        logger.info("AUTO_CREATE_DB disabled; skipping automatic create_all()")

    yield


app = FastAPI(title="Message Safety API", lifespan=lifespan)

# Attach rate limiter to app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all incoming requests with performance monitoring."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request and log timing information."""
        start_time = time.perf_counter()

        client_host = request.client.host if request.client else "unknown"
        logger.info(f"Request: {request.method} {request.url.path} from {client_host}")

        response = await call_next(request)

        duration = time.perf_counter() - start_time

        logger.info(
            f"Response: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )

        # Warn on slow requests (configurable threshold)
        if duration > settings.SLOW_REQUEST_THRESHOLD:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} "
                f"took {duration:.2f}s (threshold: {settings.SLOW_REQUEST_THRESHOLD}s)"
            )

        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        return response


# Middleware runs in reverse order of registration: logging runs inside the
# correlation ID context.
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

# Configure CORS from environment settings
cors_origins = ["*"] if settings.ENVIRONMENT == "development" else settings.CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True if settings.ENVIRONMENT != "development" else False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Status code, log label, and whether Sentry gets the event, per exception
# family. Starlette resolves handlers along the exception's MRO, so the most
# specific registered class wins.
DOMAIN_ERROR_STATUS: dict[type[DomainException], tuple[int, str, bool]] = {
    ValidationException: (status.HTTP_400_BAD_REQUEST, "Validation error", False),
    AuthenticationException: (
        status.HTTP_401_UNAUTHORIZED,
        "Authentication failed",
        True,
    ),
    PermissionDeniedException: (status.HTTP_403_FORBIDDEN, "Permission denied", False),
    MessagingRestrictedException: (
        status.HTTP_403_FORBIDDEN,
        "Messaging restricted",
        False,
    ),
    NotFoundException: (status.HTTP_404_NOT_FOUND, "Not found", False),
    ConflictException: (status.HTTP_409_CONFLICT, "Conflict", False),
    PersistenceException: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Persistence failure",
        True,
    ),
    DomainException: (status.HTTP_400_BAD_REQUEST, "Domain error", False),
}


async def domain_exception_handler(
    request: Request, exc: DomainException
) -> JSONResponse:
    """Render a DomainException as `{detail, correlation_id}` with its status."""
    status_code, label, capture = next(
        DOMAIN_ERROR_STATUS[cls]
        for cls in type(exc).__mro__
        if cls in DOMAIN_ERROR_STATUS
    )

    sentry_sdk.set_tag("correlation_id", exc.correlation_id)
    sentry_sdk.set_tag("exception_type", exc.__class__.__name__)
    if capture:
        sentry_sdk.capture_exception(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "{}: {}",
        label,
        exc.message,
        correlation_id=exc.correlation_id,
        exception_type=exc.__class__.__name__,
        path=str(request.url.path),
    )

    content: dict[str, object] = {
        "detail": exc.message,
        "correlation_id": exc.correlation_id,
    }
    headers = None
    if isinstance(exc, MessagingRestrictedException):
        content["restriction"] = exc.to_payload()
    elif isinstance(exc, AuthenticationException):
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(status_code=status_code, content=content, headers=headers)


for exception_class in DOMAIN_ERROR_STATUS:
    app.add_exception_handler(exception_class, domain_exception_handler)  # type: ignore[arg-type]


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies and query parameters are a 400."""
    correlation_id = get_correlation_id() or generate_correlation_id()

    logger.warning(
        "Request validation failed",
        correlation_id=correlation_id,
        path=str(request.url.path),
        errors=len(exc.errors()),
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": jsonable_encoder(exc.errors()),
            "correlation_id": correlation_id,
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected: generic 500, full traceback to logs and Sentry."""
    correlation_id = get_correlation_id() or generate_correlation_id()

    sentry_sdk.set_tag("correlation_id", correlation_id)
    sentry_sdk.capture_exception(exc)

    # Message text goes in as an argument; loguru formats the template with kwargs
    logger.exception(
        "Unhandled exception: {!r}",
        exc,
        correlation_id=correlation_id,
        path=str(request.url.path),
        method=request.method,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id,
        },
    )


# Include routers
app.include_router(messaging_router.router, prefix="/api")
app.include_router(moderation_router.router, prefix="/api")


@app.get("/")
def root() -> dict:
    """Root endpoint."""
    return {"message": "Message Safety API"}


@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}
