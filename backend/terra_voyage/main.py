"""FastAPI application factory."""

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.terra_voyage.api.admin import router as admin_router
from backend.terra_voyage.api.affiliate import admin_router as affiliate_admin_router
from backend.terra_voyage.api.affiliate import booking_router
from backend.terra_voyage.api.affiliate import router as affiliate_router
from backend.terra_voyage.api.auth import router as auth_router
from backend.terra_voyage.api.collaboration import router as collaboration_router
from backend.terra_voyage.api.comments import router as comments_router
from backend.terra_voyage.api.export import router as export_router
from backend.terra_voyage.api.health import get_health
from backend.terra_voyage.api.maps import admin_router as maps_admin_router
from backend.terra_voyage.api.maps import router as maps_router
from backend.terra_voyage.api.notifications import router as notifications_router
from backend.terra_voyage.api.onboarding import router as onboarding_router
from backend.terra_voyage.api.pricing import router as pricing_router
from backend.terra_voyage.api.share import router as share_router
from backend.terra_voyage.api.status import router as status_router
from backend.terra_voyage.api.status import system_router
from backend.terra_voyage.api.trips import router as trips_router
from backend.terra_voyage.api.votes import router as votes_router
from backend.terra_voyage.config import get_settings
from backend.terra_voyage.security.middleware import RateLimitMiddleware, SecurityHeadersMiddleware

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    app = FastAPI(
        title="Terra Voyage API",
        description="Collaborative trip planning - Backend API",
        version="0.1.0",
    )

    # Security middleware (before CORS)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.ui_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check endpoint
    @app.get("/healthz")
    async def healthz() -> dict[str, Any]:
        """Health check endpoint."""
        result = await get_health()
        return result.model_dump()

    # Include routers
    app.include_router(auth_router)
    app.include_router(status_router)
    app.include_router(trips_router)
    app.include_router(system_router)
    app.include_router(collaboration_router)
    app.include_router(comments_router)
    app.include_router(votes_router)
    app.include_router(notifications_router)
    app.include_router(pricing_router)
    app.include_router(affiliate_router)
    app.include_router(booking_router)
    app.include_router(affiliate_admin_router)
    app.include_router(maps_router)
    app.include_router(maps_admin_router)
    app.include_router(export_router)
    app.include_router(onboarding_router)
    app.include_router(share_router)
    app.include_router(admin_router)

    logger.info("app_created", extra={"cache_backend": settings.cache_backend})
    return app


# Create app instance for uvicorn
app = create_app()
