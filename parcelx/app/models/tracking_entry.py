"""
Tracking Entry database model.

Append-only shipment tracking history.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from parcelx.app.db.session import Base


class TrackingEntry(Base):
    """Tracking entry model. Entries are never updated."""
    __tablename__ = "tracking_entries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    parcel_id = Column(String(24), ForeignKey('parcels.id', ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(50), nullable=False)
    location = Column(String(255), nullable=True)
    note = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<TrackingEntry(id={self.id}, parcel_id='{self.parcel_id}', status='{self.status}')>"
