"""
FastAPI application entry point.

This module configures the FastAPI application with:
- Logging from settings
- CORS middleware
- Security headers middleware
- Health check endpoints
- API routers
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from formstudio import __version__
from formstudio.clients.basyx_client import BaSyxClient
from formstudio.config import get_settings
from formstudio.dependencies import get_basyx_client
from formstudio.routers import editor, submodels, templates
from formstudio.schemas.ui_schema import HealthResponse

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Only add HSTS in production
        if get_settings().env == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    if settings.cache_dir is not None:
        settings.cache_dir.mkdir(parents=True, exist_ok=True)

    yield

    await get_basyx_client().close()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="IDTA Form Studio",
        description=(
            "Dynamic forms from IDTA submodel templates. "
            "Exports filled forms as AAS V3.0 Submodel instances."
        ),
        version=__version__,
        docs_url="/api/docs" if settings.env != "production" else None,
        redoc_url="/api/redoc" if settings.env != "production" else None,
        openapi_url="/api/openapi.json" if settings.env != "production" else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    # Security headers
    app.add_middleware(SecurityHeadersMiddleware)

    # Include routers
    app.include_router(templates.router)
    app.include_router(editor.router)
    app.include_router(submodels.router)

    # Health check endpoints
    @app.get("/health", tags=["health"], response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Basic health check."""
        return HealthResponse(status="healthy", version=__version__)

    @app.get("/health/liveness", tags=["health"])
    async def liveness_check():
        """Kubernetes liveness probe."""
        return {"status": "alive"}

    @app.get("/health/readiness", tags=["health"])
    async def readiness_check(
        client: Annotated[BaSyxClient, Depends(get_basyx_client)],
    ):
        """
        Kubernetes readiness probe.

        An unreachable AAS Environment is reported under ``basyx`` and
        does not fail the probe.
        """
        if settings.cache_dir is not None and not settings.cache_dir.exists():
            return JSONResponse(
                status_code=503,
                content={"status": "not ready", "reason": "Cache directory unavailable"},
            )
        return {"status": "ready", "basyx": await client.check_health()}

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(f"Unhandled error on {request.url.path}: {exc}")
        if settings.debug:
            return JSONResponse(
                status_code=500,
                content={"detail": str(exc), "type": type(exc).__name__},
            )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "formstudio.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.env == "development",
        workers=1 if settings.env == "development" else settings.workers,
    )
