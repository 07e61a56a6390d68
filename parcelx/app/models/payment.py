"""
Payment ledger database model.

One row per gateway payment intent.
"""

from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from parcelx.app.db.session import Base


class Payment(Base):
    """
    Payment ledger entry.

    Keyed uniquely by the gateway's payment intent id. Origin fields
    (parcel, payer, created_at) are written once on insert; gateway state
    (status, amount, currency) is refreshed on every confirmation.
    """
    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("payment_intent_id", name="uq_payments_payment_intent_id"),
    )

    # Columns written only when the row is first inserted
    SET_ON_INSERT_FIELDS = ("parcel_id", "payer_name", "payer_email", "created_at")
    # Columns refreshed on every confirmation
    ALWAYS_SET_FIELDS = ("status", "amount", "currency", "updated_at")

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    payment_intent_id = Column(String(255), nullable=False)

    # Origin
    parcel_id = Column(String(100), nullable=False, index=True)
    payer_name = Column(String(255), nullable=True)
    payer_email = Column(String(255), nullable=True)

    # Gateway state
    status = Column(String(50), nullable=False)
    amount = Column(Integer, nullable=False)  # minor units
    currency = Column(String(10), nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Payment(intent='{self.payment_intent_id}', parcel='{self.parcel_id}', status='{self.status}', amount={self.amount})>"
