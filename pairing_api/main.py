from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pairing_api import __version__
from pairing_api.config import Settings, get_settings
from pairing_api.exceptions import (
    PairingServiceException,
    RateLimitExceededError,
    ServiceUnavailableError,
)
from pairing_api.logger import configure_logging, logger
from pairing_api.middleware.correlation import CorrelationIdMiddleware
from pairing_api.middleware.rate_limit import RateLimitMiddleware
from pairing_api.pairing import PairingService, pairing_router
from pairing_api.sessions.cleanup import SessionCleanupScheduler
from pairing_api.sessions.registry import SessionRegistry
from pairing_api.utils.models import HealthResponse
from pairing_api.whatsapp.client import LinkedDeviceClientFactory, get_client_factory

SERVER_ERROR_MESSAGE = "Server error. Please try again!"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the session registry, pairing service and cleanup job."""
    settings: Settings = app.state.settings
    configure_logging(settings.log_level, json_logs=settings.log_json)

    auth_root = settings.auth_root_path
    auth_root.mkdir(parents=True, exist_ok=True)

    registry = SessionRegistry(auth_root, ttl_seconds=settings.session_ttl_seconds)
    client_factory = app.state.client_factory or get_client_factory()
    service = PairingService(settings, registry, client_factory)
    cleanup = SessionCleanupScheduler(registry, settings.cleanup_interval_seconds)
    cleanup.start()

    app.state.registry = registry
    app.state.pairing_service = service
    app.state.cleanup = cleanup

    logger.info(
        "pairing_site_started",
        version=__version__,
        port=settings.port,
        url=f"http://localhost:{settings.port}",
        auth_root=str(auth_root),
    )

    yield

    cleanup.stop()
    await service.shutdown()
    app.state.pairing_service = None
    logger.info("app_shutdown")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PairingServiceException)
    async def pairing_exception_handler(request: Request, exc: PairingServiceException):
        """Handle all custom pairing service exceptions."""
        logger.warning(
            "pairing_service_exception",
            error_code=exc.code,
            message=exc.message,
            status_code=exc.status_code,
            path=request.url.path,
        )
        response = JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
        )
        # Add retry-after header for rate limit and service unavailable errors
        if isinstance(exc, (RateLimitExceededError, ServiceUnavailableError)) and exc.retry_after:
            response.headers["Retry-After"] = str(exc.retry_after)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle FastAPI request validation errors with user-friendly messages."""
        field_errors = []
        for error in exc.errors():
            loc = error.get("loc", [])
            field = ".".join(str(part) for part in loc if part != "body")
            field_errors.append({"field": field, "message": error.get("msg", "Invalid value")})

        logger.warning(
            "validation_error",
            path=request.url.path,
            errors=field_errors,
        )

        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "Invalid request data",
                "code": "VALIDATION_ERROR",
                "details": {"errors": field_errors},
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle standard HTTP exceptions with consistent format."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=exc.detail,
            path=request.url.path,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": str(exc.detail) if exc.detail else "An error occurred",
                "code": "HTTP_ERROR",
                "details": {"status_code": exc.status_code},
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Handle all unhandled exceptions to prevent information leakage."""
        logger.exception(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )

        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": SERVER_ERROR_MESSAGE,
                "code": "INTERNAL_ERROR",
                "details": {},
            },
        )


def create_app(
    settings: Optional[Settings] = None,
    client_factory: Optional[LinkedDeviceClientFactory] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    ``client_factory`` replaces the neonize-backed protocol client, which is
    how the tests run the full HTTP flow without WhatsApp.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="WhatsApp Pairing API",
        description="""
# WhatsApp Pairing API

Links a WhatsApp account as a companion device and hands back a portable
session string.

1. `POST /request-code` with a phone number returns a pairing code and a
   session id.
2. Enter the code in WhatsApp > Linked devices > Link with phone number.
3. Poll `GET /session-status/{session_id}` until the status is `connected`;
   the session string is returned and also sent to your own WhatsApp.

Sessions are kept in memory and discarded after 10 minutes.
        """,
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "pairing", "description": "Pairing code and session status endpoints"},
            {"name": "health", "description": "Health check endpoints"},
        ],
    )
    app.state.settings = settings
    app.state.client_factory = client_factory
    app.state.pairing_service = None

    register_exception_handlers(app)

    # Middleware order: Last added = First executed on requests
    app.add_middleware(RateLimitMiddleware, settings=settings)
    app.add_middleware(CorrelationIdMiddleware, settings=settings)
    # CORS middleware - MUST be added last so it's executed first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_origins_list != ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID", "X-Session-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )

    app.include_router(pairing_router)

    @app.get("/ping", response_class=PlainTextResponse, tags=["health"])
    async def ping():
        return "pong"

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check(request: Request):
        """Basic health check endpoint."""
        registry = getattr(request.app.state, "registry", None)
        return HealthResponse(
            status="healthy",
            version=__version__,
            sessions=len(registry) if registry is not None else 0,
        )

    @app.get("/health/live", tags=["health"])
    async def liveness_check():
        """
        Kubernetes liveness probe.

        Returns 200 if the service is running.
        """
        return {"status": "alive"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run("pairing_api.main:app", host=_settings.host, port=_settings.port, reload=_settings.debug)
