"""
Payment Pydantic schemas.

Identifiers in the confirm request are optional at the schema level so
that a missing one is reported as ERR_MISSING_FIELD by the reconciliation
engine rather than as a generic validation error.
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional, List


class PayerPayload(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)


class PaymentConfirmRequest(BaseModel):
    """Client report that a payment intent succeeded for a parcel."""
    parcel_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    amount_in_cents: Optional[int] = Field(None, ge=0, description="Expected amount in minor units")
    currency: Optional[str] = Field(None, min_length=3, max_length=10, description="Expected ISO 4217 code")
    payer: Optional[PayerPayload] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class PaymentResponse(BaseModel):
    """Schema for a payment ledger entry."""
    payment_intent_id: str
    parcel_id: str
    payer_name: Optional[str]
    payer_email: Optional[str]
    status: str
    amount: int
    currency: str
    created_at: datetime
    updated_at: datetime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class PaymentListEnvelope(BaseModel):
    success: bool = True
    total: int
    data: List[PaymentResponse]
