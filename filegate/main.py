"""
Main FastAPI application entry point
"""
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException as FastAPIHTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from filegate.api.routes import config, files, folders, health
from filegate.core.config import Settings, get_settings
from filegate.core.container import GateServices, build_services
from filegate.core.errors import GateError, IOFailure
from filegate.core.logging_config import LoggingConfig
from filegate.core.middleware import LoggingContextMiddleware

# Configure logging first
LoggingConfig.configure()

logger = LoggingConfig.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[GateServices] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """Build the FileGate application.

    Args:
        settings: Process settings; defaults to get_settings()
        services: Prebuilt services; built on startup when omitted
        http_client: Client for identity requests when services are built here

    Returns:
        The configured FastAPI app
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan events for FastAPI app"""
        logger.info(f"Starting {settings.app_name} in {settings.app_env} mode...")
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(settings, http_client=http_client)

        yield

        logger.info(f"Shutting down {settings.app_name}...")
        await app.state.services.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="Sandboxed file writes gated by host identity",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    # Add logging context middleware (before CORS to capture all requests)
    app.add_middleware(LoggingContextMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GateError)
    async def gate_error_handler(request: Request, exc: GateError):
        """Map the failure taxonomy to status codes with short messages"""
        if isinstance(exc, IOFailure):
            logger.error(
                f"I/O failure: {exc.message}",
                extra={"path": request.url.path, "method": request.method}
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler to log all unhandled errors"""
        if isinstance(exc, FastAPIHTTPException):
            raise exc

        logger.error(
            "Unhandled exception",
            exc_info=True,
            extra={
                "error_type": type(exc).__name__,
                "path": request.url.path,
                "method": request.method,
            }
        )
        return JSONResponse(
            status_code=500,
            content={"error": "internal", "detail": "Internal server error"}
        )

    app.include_router(health.router)
    app.include_router(config.router)
    app.include_router(files.router)
    app.include_router(folders.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "filegate.main:app",
        host=_settings.api_host,
        port=_settings.api_port,
        log_config=None,
    )
