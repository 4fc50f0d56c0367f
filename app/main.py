"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.services.ebay import EbayServices

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if getattr(app.state, "ebay", None) is None:
        from app.db.session import async_session_maker
        from app.services.ebay import build_ebay_services

        app.state.ebay = build_ebay_services(async_session_maker, settings)

    # Start background token refresh and catalog checks
    from app.services.ebay import start_scheduler, stop_scheduler

    if settings.SCHEDULER_ENABLED:
        start_scheduler(app.state.ebay)

    yield

    # Shutdown
    stop_scheduler()


def create_app(services: Optional[EbayServices] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Prebuilt eBay services; built at startup when omitted
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        description="eBay account connection and category catalog service",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
    )
    app.state.ebay = services

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.DEBUG else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register API routers
    from app.api.v1.router import api_router

    app.include_router(api_router, prefix="/api/v1")

    return app


# Create the application instance
app = create_app()
