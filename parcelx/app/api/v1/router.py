"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from parcelx.app.api.v1.endpoints import parcels, payments

router = APIRouter()

# Parcel CRUD and tracking history
router.include_router(parcels.router)

# Payment confirmation
router.include_router(payments.router)
