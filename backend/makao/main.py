"""MAKAO Rental Management - FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from makao.core.config import get_settings
from makao.core.database import engine
from makao.core.env_validation import validate_environment
from makao.core.errors import register_exception_handlers
from makao.core.logging_config import configure_logging
from makao.routers import (
    calendar_router,
    dashboard_router,
    leases_router,
    maintenance_router,
    notifications_router,
    payments_router,
    properties_router,
    tenant_router,
    units_router,
    users_router,
    webhooks_router,
)

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Hard-fails (exit 1) if required configuration is missing
    validate_environment()
    configure_logging(settings.log_level)
    logger.info("CORS configured with origins: %s", settings.cors_origins)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Property rental management: properties, units, leases, rent payments, maintenance and tenant notifications.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# In production, wildcard (*) is blocked by env_validation.py
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# API v1 routers
app.include_router(webhooks_router, prefix=settings.api_v1_prefix)
app.include_router(users_router, prefix=settings.api_v1_prefix)
app.include_router(properties_router, prefix=settings.api_v1_prefix)
app.include_router(units_router, prefix=settings.api_v1_prefix)
app.include_router(leases_router, prefix=settings.api_v1_prefix)
app.include_router(payments_router, prefix=settings.api_v1_prefix)
app.include_router(tenant_router, prefix=settings.api_v1_prefix)
app.include_router(maintenance_router, prefix=settings.api_v1_prefix)
app.include_router(notifications_router, prefix=settings.api_v1_prefix)
app.include_router(calendar_router, prefix=settings.api_v1_prefix)
app.include_router(dashboard_router, prefix=settings.api_v1_prefix)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
    }
