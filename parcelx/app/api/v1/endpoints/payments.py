"""
Payment API Endpoints.

Confirms a client-reported payment against the gateway and records it.
"""

from fastapi import APIRouter, Depends

from parcelx.app.core.dependencies import get_reconciliation_engine
from parcelx.app.domain.payments.reconciliation import PayerInfo, ReconciliationEngine
from parcelx.app.schemas.parcel import ParcelEnvelope, ParcelResponse
from parcelx.app.schemas.payment import PaymentConfirmRequest

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/confirm", response_model=ParcelEnvelope)
async def confirm_payment(
    request: PaymentConfirmRequest,
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
):
    """
    Confirm that a payment intent succeeded and mark the parcel paid.

    The gateway is always consulted; the client's word is never taken.
    Repeating the same request is safe and returns the same parcel state.

    Errors:
    - 400: missing field, amount/currency mismatch, payment not succeeded
    - 404: no parcel matches parcelId
    - 500: gateway or database unavailable (safe to retry)
    """
    payer = None
    if request.payer is not None:
        payer = PayerInfo(name=request.payer.name, email=request.payer.email)

    parcel = await engine.confirm(
        parcel_id=request.parcel_id,
        payment_intent_id=request.payment_intent_id,
        amount_in_cents=request.amount_in_cents,
        currency=request.currency,
        payer=payer,
    )
    return ParcelEnvelope(data=ParcelResponse.model_validate(parcel))
