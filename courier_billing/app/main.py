"""
FastAPI Application Entry Point.

Pricing and invoicing service for the courier platform.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from courier_billing.app.core.config import settings
from courier_billing.app.api.v1.router import router as api_v1_router
from courier_billing.app.core.observability import ObservabilityMiddleware
from courier_billing.app.db.session import engine, Base
from courier_billing.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from courier_billing.app.models.pricing_rule import PricingRule  # noqa: F401
from courier_billing.app.models.invoice import Invoice  # noqa: F401
from courier_billing.app.models.invoice_item import InvoiceItem  # noqa: F401
from courier_billing.app.models.audit_log import AuditLog  # noqa: F401

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup and disposes the engine on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Delivery pricing and invoicing",
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
        "message": "Welcome to the Courier Billing API",
        "docs": "/docs",
        "health": "/health",
    }
