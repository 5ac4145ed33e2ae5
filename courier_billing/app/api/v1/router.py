"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from courier_billing.app.api.v1.endpoints import pricing, invoices

router = APIRouter()

router.include_router(pricing.router)
router.include_router(invoices.router)
