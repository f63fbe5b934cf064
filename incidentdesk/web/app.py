"""FastAPI application factory."""

from __future__ import annotations

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from incidentdesk import __version__
from incidentdesk.config.logging import setup_logging
from incidentdesk.config.settings import Settings, get_settings
from incidentdesk.web.dependencies import Services, build_services, get_services
from incidentdesk.web.errors import register_error_handlers
from incidentdesk.web.middleware import RequestIDMiddleware
from incidentdesk.web.routes.companies import router as companies_router
from incidentdesk.web.routes.public import router as public_router
from incidentdesk.web.routes.reports import router as reports_router
from incidentdesk.web.routes.uploads import router as uploads_router
from incidentdesk.web.routes.users import router as users_router

logger = structlog.get_logger(__name__)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``services`` lets callers (tests, embedding code) supply prebuilt
    backends; otherwise they are built from ``settings``.
    """
    if settings is None:
        settings = services.settings if services else get_settings()
    setup_logging(log_level=settings.log_level, json_output=not settings.debug)

    app = FastAPI(
        title="incidentdesk",
        description="Multi-tenant incident reporting with AI photo analysis",
        version=__version__,
    )
    app.state.services = services or build_services(settings)

    register_error_handlers(app)

    # Middleware (last added runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/api/health")
    async def health_check(svc: Services = Depends(get_services)) -> dict[str, object]:
        from incidentdesk.web.health import check_health

        return await check_health(svc)

    # Public routes (no auth required)
    app.include_router(public_router)

    # Authenticated routes resolve the caller per endpoint (roles differ per route)
    for router in (users_router, companies_router, reports_router, uploads_router):
        app.include_router(router)

    logger.info("app_created", auth_mode=settings.auth_mode, use_aws=settings.use_aws)
    return app
