"""
Payment Reconciliation Service (Domain Logic).

Applies a gateway-verified payment to the parcel and the payment ledger.
The two writes are not wrapped in one transaction; they are ordered so that
a crash between them leaves the parcel already marked paid, and both are
idempotent so that replaying the same confirmation repairs a missing
ledger row.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from parcelx.app.core.exceptions import (
    MissingFieldError,
    ParcelNotFoundError,
    PaymentNotSucceededError,
)
from parcelx.app.domain.payments.identifiers import resolve_parcel_id
from parcelx.app.domain.payments.stores import LedgerStore, ParcelStore, utcnow
from parcelx.app.domain.payments.verifier import PaymentIntentResult, PaymentVerifier
from parcelx.app.models.parcel import Parcel
from parcelx.app.models.parcel_enums import PaymentStatus

logger = logging.getLogger("parcelx.payments")


@dataclass(frozen=True)
class PayerInfo:
    name: Optional[str] = None
    email: Optional[str] = None


class ReconciliationEngine:

    def __init__(self, parcels: ParcelStore, ledger: LedgerStore, verifier: PaymentVerifier):
        self.parcels = parcels
        self.ledger = ledger
        self.verifier = verifier

    async def confirm(
        self,
        parcel_id: Optional[str],
        payment_intent_id: Optional[str],
        amount_in_cents: Optional[int] = None,
        currency: Optional[str] = None,
        payer: Optional[PayerInfo] = None,
    ) -> Parcel:
        """
        Confirm a client-reported payment for a parcel.

        Flow:
        1. Require parcel id and payment intent id
        2. Verify the payment intent with the gateway (no writes before this)
        3. Find the parcel and check the intent was paid for it, then mark
           it Paid (committed on its own)
        4. Fail with ParcelNotFoundError if no parcel matched
        5. Upsert the ledger row keyed by payment intent id
        6. Re-read and return the parcel

        Safe to retry end to end with the same arguments.

        Raises:
            MissingFieldError, GatewayUnreachableError, PaymentNotSucceededError,
            AmountMismatchError, CurrencyMismatchError, ParcelNotFoundError,
            StoreUnavailableError
        """
        # 1. Required fields
        lookup = resolve_parcel_id(parcel_id, field="parcelId")
        if payment_intent_id is None or not str(payment_intent_id).strip():
            raise MissingFieldError("paymentIntentId")
        payment_intent_id = str(payment_intent_id).strip()
        payer = payer or PayerInfo()

        log_context = {"parcel_id": lookup.literal, "payment_intent_id": payment_intent_id}

        # 2. Gateway verification
        intent = await self.verifier.verify(
            payment_intent_id,
            expected_amount=amount_in_cents,
            expected_currency=currency,
        )

        # 3. Parcel first: a paid parcel without a ledger row is the recoverable side
        target = await self.parcels.find_one(lookup)
        if target is None:
            logger.error("Verified payment for unknown parcel", extra=log_context)
            raise ParcelNotFoundError(lookup.literal)
        await self._check_intent_owner(target, payment_intent_id, intent, log_context)
        target_id = target.id

        now = utcnow()
        matched = await self.parcels.update_one(
            lookup,
            payment_status=PaymentStatus.PAID,
            updated_at=now,
        )

        # 4. Never ledger a payment against a parcel we do not have
        if matched == 0:
            # Deleted since it was found
            await self.parcels.rollback()
            logger.error("Verified payment for unknown parcel", extra=log_context)
            raise ParcelNotFoundError(lookup.literal)
        await self.parcels.commit()

        # 5. Ledger upsert; origin fields only land on the first insert
        await self.ledger.upsert_one(
            payment_intent_id,
            set_on_insert={
                "parcel_id": target_id,
                "payer_name": payer.name,
                "payer_email": payer.email,
                "created_at": now,
            },
            always_set={
                "status": intent.status,
                "amount": intent.amount,
                "currency": intent.currency,
                "updated_at": now,
            },
        )
        await self.ledger.commit()

        logger.info(
            "Payment confirmed",
            extra={**log_context, "amount": intent.amount, "currency": intent.currency},
        )

        # 6. Fresh copy of the parcel
        parcel = await self.parcels.find_one(lookup)
        if parcel is None:
            # Deleted between the update and now
            raise ParcelNotFoundError(lookup.literal)
        return parcel

    async def _check_intent_owner(
        self,
        parcel: Parcel,
        payment_intent_id: str,
        intent: PaymentIntentResult,
        log_context: dict,
    ) -> None:
        """
        Reject a payment intent that was paid for another parcel.

        Two sources name the owner: the ``parcelId`` metadata attached when the
        intent was created, and the ledger row of an earlier confirmation.
        """
        claimed = intent.metadata.get("parcelId")
        if claimed and not await self._is_same_parcel(str(claimed), parcel):
            logger.warning(
                "Payment intent metadata names another parcel",
                extra={**log_context, "claimed_parcel_id": claimed},
            )
            raise PaymentNotSucceededError(
                payment_intent_id,
                gateway_status=intent.status,
                message=f"Payment {payment_intent_id} belongs to a different parcel",
            )

        entry = await self.ledger.find_one(payment_intent_id)
        if entry is not None and entry.parcel_id and not await self._is_same_parcel(entry.parcel_id, parcel):
            logger.warning(
                "Payment intent already recorded for another parcel",
                extra={**log_context, "recorded_parcel_id": entry.parcel_id},
            )
            raise PaymentNotSucceededError(
                payment_intent_id,
                gateway_status=intent.status,
                message=f"Payment {payment_intent_id} belongs to a different parcel",
            )

    async def _is_same_parcel(self, raw_id: str, parcel: Parcel) -> bool:
        if raw_id in (parcel.id, parcel.legacy_id):
            return True
        owner = await self.parcels.find_one(resolve_parcel_id(raw_id))
        return owner is not None and owner.id == parcel.id
