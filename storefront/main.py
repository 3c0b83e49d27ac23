"""Storefront service main application module.

This module creates the FastAPI application, wires the storefront state
container into its lifespan and configures middleware and routers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.api.health import router as health_router
from storefront.api.middleware import setup_middleware
from storefront.api.routes import router as routes_router
from storefront.api.tabs import router as tabs_router
from storefront.application.storefront import Storefront
from storefront.infrastructure.config import Settings, settings as default_settings
from storefront.infrastructure.logging_config import configure_logging

logger = structlog.get_logger()


def create_app(
    storefront: Storefront | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        storefront: Pre-built state container (built from settings if omitted).
        settings: Settings to use (module settings if omitted).

    Returns:
        The configured application.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Own the storefront for the lifetime of the application."""
        configure_logging(settings)
        state = storefront or Storefront.from_settings(settings)
        app.state.storefront = state

        logger.info(
            "Starting storefront",
            version=settings.api_version,
            backend_url=settings.backend_url,
            debug=settings.debug,
        )
        await state.start()

        yield

        logger.info("Shutting down storefront")
        await state.close()

    app = FastAPI(
        title="Storefront",
        description="Catalog-derived routing, cross-tab cart state and session gating",
        version=settings.api_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Cookies must reach /tabs so the session check can forward them.
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=".*",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_middleware(app)

    app.include_router(health_router, tags=["Health"])
    app.include_router(routes_router)
    app.include_router(tabs_router)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent format."""
        request_id = getattr(request.state, "request_id", None)

        detail = exc.detail
        if isinstance(detail, dict):
            error_code = detail.get("error_code", "ERROR")
            message = detail.get("message", str(detail))
            details = detail.get("details", [])
        else:
            error_code = "ERROR"
            message = str(detail)
            details = []

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error_code": error_code,
                "message": message,
                "details": details,
                "request_id": request_id,
            },
        )

    return app


app = create_app()
