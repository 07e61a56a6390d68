"""
Service dependencies for FastAPI.

Stores, the payment gateway and the reconciliation engine are built per
request from injected collaborators, so tests can swap any of them through
``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from parcelx.app.core.config import settings
from parcelx.app.db.session import get_db
from parcelx.app.domain.payments.reconciliation import ReconciliationEngine
from parcelx.app.domain.payments.stores import LedgerStore, ParcelStore
from parcelx.app.domain.payments.verifier import PaymentGateway, PaymentVerifier
from parcelx.app.services.stripe_gateway import build_stripe_gateway


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    """One gateway per process so its circuit breaker state is shared."""
    return build_stripe_gateway()


def get_parcel_store(db: AsyncSession = Depends(get_db)) -> ParcelStore:
    return ParcelStore(db)


def get_ledger_store(db: AsyncSession = Depends(get_db)) -> LedgerStore:
    return LedgerStore(db)


def get_payment_verifier(gateway: PaymentGateway = Depends(get_payment_gateway)) -> PaymentVerifier:
    return PaymentVerifier(
        gateway,
        success_status=settings.payment_success_status,
        require_amount_check=settings.require_amount_check,
    )


def get_reconciliation_engine(
    parcels: ParcelStore = Depends(get_parcel_store),
    ledger: LedgerStore = Depends(get_ledger_store),
    verifier: PaymentVerifier = Depends(get_payment_verifier),
) -> ReconciliationEngine:
    return ReconciliationEngine(parcels=parcels, ledger=ledger, verifier=verifier)
