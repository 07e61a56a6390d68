"""
Parcel Pydantic schemas.

Defines request and response models for parcel management. JSON field
names are camelCase to match what the web client sends and expects.
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Any, Dict, Optional, List
from parcelx.app.models.parcel_enums import PaymentStatus


class ParcelCreate(BaseModel):
    """
    Schema for creating a new parcel.

    Only the creator email is required; any other shipment fields
    (title, sender, receiver, weight, addresses...) are kept as sent.
    """
    created_by_email: str = Field(..., min_length=3, max_length=255, description="Email of the submitting user")

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"

    def shipment_details(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class ParcelResponse(BaseModel):
    """Schema for parcel response."""
    id: str
    legacy_id: Optional[str] = None
    created_by_email: str
    payment_status: PaymentStatus
    details: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ParcelEnvelope(BaseModel):
    success: bool = True
    data: ParcelResponse


class ParcelCreatedEnvelope(BaseModel):
    success: bool = True
    message: str = "Parcel added successfully!"
    data: ParcelResponse


class ParcelListEnvelope(BaseModel):
    """Schema for parcel list."""
    success: bool = True
    total: int
    data: List[ParcelResponse]


class ParcelDeletedEnvelope(BaseModel):
    success: bool = True
    message: str = "Parcel deleted!"
    deleted_count: int = Field(1, alias="deletedCount")

    class Config:
        populate_by_name = True
