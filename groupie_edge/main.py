"""
FastAPI Edge Server Application Factory
=======================================

This is the main entry point for the edge server that sits between the
Groupie Tracker browser front-end, the upstream Groupie Trackers API and the
account database.

Architecture:
    Browser → Edge server (this service) → {Groupie Trackers API, MySQL}

Routers:
    - /api/register, /api/login : Account registration and login
    - /api/*-proxy              : Relay to the upstream API
    - /static/*, pages          : Front-end files
    - /health                   : Health check endpoint

Environment Variables (see groupie_edge/config.py for the full list):
    - PORT: Listen port (default: 8080)
    - DISABLE_DB: "1" skips credential store initialization
    - DB_HOST, DB_PORT, DB_USER, DB_PASS, DB_NAME: MySQL connection
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn groupie_edge.main:app --reload --host 0.0.0.0 --port 8080

    Production:
        groupie-edge

    Without a database:
        DISABLE_DB=1 groupie-edge
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.concurrency import run_in_threadpool
import uvicorn

from . import __version__
from .auth import PasswordHasher, auth_router
from .config import Settings, get_settings, validate_configuration
from .errors import EdgeError
from .models import HealthResponse
from .pages import FileResolver, pages_router
from .proxy import UpstreamClient, build_proxy_routes, proxy_router
from .store import CredentialStore

SERVICE_NAME = "groupie-edge"


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Configure logging and report configuration warnings
        - Create the upstream client unless one was injected
        - Connect the credential store unless one was injected or DISABLE_DB
          is set; a failed connection leaves the store unset (degraded mode)

    Shutdown tasks:
        - Close the upstream client and dispose the store pool, but only
          the ones created here
    """
    settings: Settings = app.state.settings

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("groupie_edge.main")

    report = validate_configuration(settings)
    for warning in report["warnings"]:
        logger.warning(warning)

    logger.info(
        "Starting edge server",
        extra={
            "upstream": report["upstream"],
            "database": report["database"],
            "log_level": settings.LOG_LEVEL,
        }
    )

    owned_client: Optional[UpstreamClient] = None
    if app.state.upstream_client is None:
        owned_client = UpstreamClient(timeout=settings.UPSTREAM_TIMEOUT_SECONDS)
        app.state.upstream_client = owned_client
    logger.info(f"API proxy routes registered: {sorted(app.state.proxy_routes)}")

    owned_store: Optional[CredentialStore] = None
    if app.state.credential_store is None:
        if settings.DISABLE_DB:
            logger.info("DB disabled via DISABLE_DB=1")
        else:
            owned_store = await run_in_threadpool(CredentialStore.connect, settings)
            app.state.credential_store = owned_store

    yield

    # Shutdown
    logger.info("Shutting down edge server")

    if owned_client is not None:
        await owned_client.aclose()
        app.state.upstream_client = None

    if owned_store is not None:
        owned_store.close()
        app.state.credential_store = None

    logger.info("Edge server shutdown complete")


# Create FastAPI application
def create_app(
    settings: Optional[Settings] = None,
    upstream_client: Optional[UpstreamClient] = None,
    credential_store: Optional[CredentialStore] = None,
) -> FastAPI:
    """
    Application factory function.

    Collaborators passed in are used as-is and never closed by the app;
    missing ones are created by the lifespan handler.

    Args:
        settings: Settings to use instead of the environment
        upstream_client: Client used by the relay
        credential_store: Store used by the account routes

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Groupie Edge",
        description="Upstream API relay and account API for the Groupie Tracker front-end",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # Shared, read-only (route table) or pool-backed collaborators
    app.state.settings = settings
    app.state.proxy_routes = build_proxy_routes(settings.upstream_base_url_str)
    app.state.upstream_client = upstream_client
    app.state.credential_store = credential_store
    app.state.password_hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
    app.state.file_resolver = FileResolver.from_settings(settings)

    # Account routes first: the proxy catch-all claims every other /api/ path
    app.include_router(auth_router)
    app.include_router(proxy_router)

    # Health check endpoint
    @app.get("/health", tags=["System"], response_model=HealthResponse)
    async def health_check(request: Request) -> HealthResponse:
        """
        Health check endpoint.

        Returns service status and the credential store state.
        """
        if request.app.state.credential_store is not None:
            database = "up"
        elif settings.DISABLE_DB:
            database = "disabled"
        else:
            database = "unavailable"

        return HealthResponse(
            status="ok",
            service=SERVICE_NAME,
            version=__version__,
            database=database,
        )

    # Pages last: their fallback claims every GET path left over
    app.include_router(pages_router)

    @app.exception_handler(EdgeError)
    async def edge_error_handler(request: Request, exc: EdgeError) -> JSONResponse:
        """Render typed request errors as {"error", "message"}."""
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Give routing errors (404, 405) the same shape as EdgeError."""
        message = exc.detail if isinstance(exc.detail, str) else None
        error = (message or "http_error").lower().replace(" ", "_")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": error, "message": message},
            headers=getattr(exc, "headers", None),
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns a standardized error response.
        """
        logger = logging.getLogger("groupie_edge.main")
        logger.error(
            f"Unhandled exception: {type(exc).__name__}",
            extra={
                "path": request.url.path,
                "method": request.method,
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            }
        )

    return app


def run() -> None:
    """
    Console entry point: serve the app on HOST:PORT.

    A bind failure propagates and ends the process.
    """
    settings = get_settings()

    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    run()
