"""
Parcel database model.

A parcel is a shipment submitted by a customer and paid for through the
payment gateway.
"""

from sqlalchemy import Column, String, DateTime, Enum, JSON
from sqlalchemy.sql import func
from parcelx.app.db.session import Base
from parcelx.app.models.parcel_enums import PaymentStatus


class Parcel(Base):
    """
    Parcel model.

    ``id`` is the canonical object identifier (24 hex chars). Records migrated
    from the previous store keep their opaque string id in ``legacy_id`` so
    that old links and client caches still resolve.
    """
    __tablename__ = "parcels"

    id = Column(String(24), primary_key=True, index=True)
    legacy_id = Column(String(100), unique=True, nullable=True, index=True)

    # Ownership
    created_by_email = Column(String(255), nullable=False, index=True)

    # Payment (mutated only by the reconciliation engine)
    payment_status = Column(
        Enum(PaymentStatus, values_callable=lambda e: [m.value for m in e]),
        default=PaymentStatus.UNPAID,
        nullable=False,
        index=True,
    )

    # Arbitrary caller-supplied shipment fields (title, sender, receiver, weight...)
    details = Column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Parcel(id={self.id}, email='{self.created_by_email}', payment_status='{self.payment_status.value}')>"
