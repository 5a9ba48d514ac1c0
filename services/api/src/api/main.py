"""FastAPI application factory and main entry point."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.blob import ArtifactNotFoundError, ArtifactStoreError, close_artifact_store
from shared.config import get_settings
from shared.db.connection import get_db
from shared.logging import configure_logging, get_logger
from shared.telemetry import configure_telemetry

from .errors import ServiceError
from .middleware import CORRELATION_ID_HEADER, CorrelationIdMiddleware
from .models import ErrorEnvelope
from .providers import close_provider_gateway
from .routes import generate, health, library, uploads, usage

logger = get_logger(__name__)

DB_CONNECT_ATTEMPTS = 5
DB_CONNECT_DELAY_SECONDS = 2


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()

    logger.info(
        "Starting application",
        service=settings.service_name,
        version=settings.service_version,
        environment=settings.environment,
    )
    configure_telemetry(
        service_name=f"{settings.service_name}-api",
        service_version=settings.service_version,
        environment=settings.environment,
    )

    app.state.db_initialized = False
    db = get_db()
    for attempt in range(1, DB_CONNECT_ATTEMPTS + 1):
        try:
            await db.connect()
            await db.create_tables()
            app.state.db_initialized = True
            logger.info("Database connection established and tables created")
            break
        except ValueError as e:
            logger.error("Database not configured", error=str(e))
            break
        except (SQLAlchemyError, OSError) as e:
            if attempt == DB_CONNECT_ATTEMPTS:
                # Requests fail individually; /health/ready reports it
                logger.error(
                    "Database initialization failed",
                    attempts=attempt,
                    error=str(e),
                )
            else:
                logger.warning(
                    "Database initialization attempt failed",
                    attempt=attempt,
                    max_attempts=DB_CONNECT_ATTEMPTS,
                    error=str(e),
                )
                await asyncio.sleep(DB_CONNECT_DELAY_SECONDS)

    yield

    logger.info("Shutting down application")
    await db.close()
    await close_artifact_store()
    await close_provider_gateway()


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    correlation_id = getattr(request.state, "correlation_id", None)
    return JSONResponse(
        status_code=status_code,
        content=ErrorEnvelope.create(message, extra),
        headers={CORRELATION_ID_HEADER: correlation_id} if correlation_id else {},
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render domain errors into the error envelope."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request failed",
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        error=exc.message,
        path=request.url.path,
    )
    return _error_response(request, exc.status_code, exc.message, exc.to_payload())


async def artifact_not_found_handler(
    request: Request,
    exc: ArtifactNotFoundError,
) -> JSONResponse:
    return _error_response(request, 404, "Audio not found")


async def artifact_store_error_handler(
    request: Request,
    exc: ArtifactStoreError,
) -> JSONResponse:
    logger.error("Storage error", error=str(exc), path=request.url.path)
    return _error_response(request, 500, "Storage error")


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle HTTP exceptions."""
    return _error_response(request, exc.status_code, str(exc.detail))


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render request validation errors as a 400 with the first problem."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(loc) for loc in first["loc"] if loc not in ("body", "query", "path"))
        message = f"{field}: {first['msg']}" if field else first["msg"]
    else:
        message = "Invalid request"
    return _error_response(request, 400, message)


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
    )
    return _error_response(request, 500, "Internal server error")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    configure_logging(
        level=settings.logging.level,
        json_format=settings.logging.json_format,
        service_name=settings.service_name,
        service_version=settings.service_version,
    )

    app = FastAPI(
        title="VoiceForge API",
        description="Quota-gated voice and audio generation",
        version=settings.service_version,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        openapi_url="/openapi.json" if settings.api.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_ID_HEADER],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(ArtifactNotFoundError, artifact_not_found_handler)
    app.add_exception_handler(ArtifactStoreError, artifact_store_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(health.router, tags=["Health"])
    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(generate.router)
    app.include_router(uploads.router)
    app.include_router(usage.router)
    # Catch-all /api/{kind} routes go last
    app.include_router(library.router)

    return app


app = create_app()
