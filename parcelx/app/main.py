"""
FastAPI Application Entry Point.

This is the main application file for the ParcelX Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from parcelx.app.core.config import settings
from parcelx.app.api.v1.router import router as api_v1_router
from parcelx.app.db.session import engine, Base
from parcelx.app.core.observability import ObservabilityMiddleware, configure_logging
from parcelx.app.services.stripe_gateway import configure_stripe
from parcelx.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from parcelx.app.models.parcel import Parcel
from parcelx.app.models.payment import Payment
from parcelx.app.models.tracking_entry import TrackingEntry

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Applies Stripe SDK settings on startup.
    2. Creates database tables on startup.
    3. Disposes the connection pool on shutdown.
    """
    configure_stripe()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Parcel delivery backend with verified payment reconciliation",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "ParcelX Server is Running...",
        "docs": "/docs",
        "health": "/health",
    }
