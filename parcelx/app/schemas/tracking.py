"""
Tracking Pydantic schemas.
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional, List


class TrackingCreate(BaseModel):
    """Schema for appending a tracking entry."""
    status: str = Field(..., min_length=1, max_length=50, description="e.g. Picked Up, In Transit, Delivered")
    location: Optional[str] = Field(None, max_length=255)
    note: Optional[str] = Field(None, max_length=500)


class TrackingResponse(BaseModel):
    id: int
    parcel_id: str
    status: str
    location: Optional[str]
    note: Optional[str]
    created_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class TrackingEnvelope(BaseModel):
    success: bool = True
    data: TrackingResponse


class TrackingListEnvelope(BaseModel):
    success: bool = True
    total: int
    data: List[TrackingResponse]
