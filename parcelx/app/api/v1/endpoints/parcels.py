"""
Parcel Management API Endpoints.

Plain CRUD over parcels plus their tracking history and payment records.
Every ``{parcel_id}`` path parameter accepts either a canonical id or a
legacy string id.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from parcelx.app.core.dependencies import get_ledger_store, get_parcel_store
from parcelx.app.core.exceptions import ParcelNotFoundError
from parcelx.app.db.session import get_db
from parcelx.app.domain.payments.identifiers import new_object_id, resolve_parcel_id
from parcelx.app.domain.payments.stores import LedgerStore, ParcelStore
from parcelx.app.models.parcel import Parcel
from parcelx.app.models.parcel_enums import PaymentStatus
from parcelx.app.models.tracking_entry import TrackingEntry
from parcelx.app.schemas.parcel import (
    ParcelCreate,
    ParcelCreatedEnvelope,
    ParcelDeletedEnvelope,
    ParcelEnvelope,
    ParcelListEnvelope,
    ParcelResponse,
)
from parcelx.app.schemas.payment import PaymentListEnvelope, PaymentResponse
from parcelx.app.schemas.tracking import (
    TrackingCreate,
    TrackingEnvelope,
    TrackingListEnvelope,
    TrackingResponse,
)

logger = logging.getLogger("parcelx.parcels")

router = APIRouter(prefix="/parcels", tags=["Parcels"])


async def _get_parcel_or_404(parcels: ParcelStore, parcel_id: str) -> Parcel:
    parcel = await parcels.find_one(resolve_parcel_id(parcel_id, field="id"))
    if parcel is None:
        raise ParcelNotFoundError(parcel_id)
    return parcel


@router.get("", response_model=ParcelListEnvelope)
async def list_parcels(
    email: Optional[str] = Query(None, description="Only parcels created by this email"),
    parcels: ParcelStore = Depends(get_parcel_store),
):
    """List parcels, newest first."""
    logger.debug("Listing parcels", extra={"email": email})
    found = await parcels.find_many(email=email)
    return ParcelListEnvelope(
        total=len(found),
        data=[ParcelResponse.model_validate(p) for p in found],
    )


@router.post("", response_model=ParcelCreatedEnvelope, status_code=status.HTTP_201_CREATED)
async def create_parcel(
    parcel_data: ParcelCreate,
    parcels: ParcelStore = Depends(get_parcel_store),
):
    """Create a new, unpaid parcel."""
    new_parcel = Parcel(
        id=new_object_id(),
        created_by_email=parcel_data.created_by_email,
        payment_status=PaymentStatus.UNPAID,
        details=parcel_data.shipment_details(),
    )
    new_parcel = await parcels.insert(new_parcel)

    logger.info(
        "Parcel created",
        extra={"parcel_id": new_parcel.id, "created_by_email": new_parcel.created_by_email},
    )
    return ParcelCreatedEnvelope(data=ParcelResponse.model_validate(new_parcel))


@router.get("/{parcel_id}", response_model=ParcelEnvelope)
async def get_parcel(
    parcel_id: str,
    parcels: ParcelStore = Depends(get_parcel_store),
):
    """Fetch one parcel."""
    parcel = await _get_parcel_or_404(parcels, parcel_id)
    return ParcelEnvelope(data=ParcelResponse.model_validate(parcel))


@router.delete("/{parcel_id}", response_model=ParcelDeletedEnvelope)
async def delete_parcel(
    parcel_id: str,
    parcels: ParcelStore = Depends(get_parcel_store),
):
    """Delete a parcel and its tracking history. Payment records are kept."""
    deleted = await parcels.delete_one(resolve_parcel_id(parcel_id, field="id"))
    if not deleted:
        raise ParcelNotFoundError(parcel_id)

    logger.info("Parcel deleted", extra={"parcel_id": parcel_id})
    return ParcelDeletedEnvelope(deleted_count=deleted)


@router.post("/{parcel_id}/tracking", response_model=TrackingEnvelope, status_code=status.HTTP_201_CREATED)
async def add_tracking_entry(
    parcel_id: str,
    entry_data: TrackingCreate,
    parcels: ParcelStore = Depends(get_parcel_store),
    db: AsyncSession = Depends(get_db),
):
    """Append an entry to the parcel's tracking history."""
    parcel = await _get_parcel_or_404(parcels, parcel_id)

    entry = TrackingEntry(
        parcel_id=parcel.id,
        status=entry_data.status,
        location=entry_data.location,
        note=entry_data.note,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)

    return TrackingEnvelope(data=TrackingResponse.model_validate(entry))


@router.get("/{parcel_id}/tracking", response_model=TrackingListEnvelope)
async def list_tracking_entries(
    parcel_id: str,
    parcels: ParcelStore = Depends(get_parcel_store),
    db: AsyncSession = Depends(get_db),
):
    """Tracking history, oldest first."""
    parcel = await _get_parcel_or_404(parcels, parcel_id)

    result = await db.execute(
        select(TrackingEntry)
        .where(TrackingEntry.parcel_id == parcel.id)
        .order_by(TrackingEntry.created_at.asc(), TrackingEntry.id.asc())
    )
    entries = result.scalars().all()

    return TrackingListEnvelope(
        total=len(entries),
        data=[TrackingResponse.model_validate(e) for e in entries],
    )


@router.get("/{parcel_id}/payments", response_model=PaymentListEnvelope)
async def list_parcel_payments(
    parcel_id: str,
    parcels: ParcelStore = Depends(get_parcel_store),
    ledger: LedgerStore = Depends(get_ledger_store),
):
    """Payment ledger entries recorded against this parcel."""
    parcel = await _get_parcel_or_404(parcels, parcel_id)

    payments = await ledger.list_for_parcel(parcel.id)

    return PaymentListEnvelope(
        total=len(payments),
        data=[PaymentResponse.model_validate(p) for p in payments],
    )
