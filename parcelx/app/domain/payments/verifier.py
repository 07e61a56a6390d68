"""
Payment Verifier.

Never trusts a client's claim that a payment succeeded: the payment intent
is always re-read from the gateway, and any amount or currency the caller
expects is checked against the gateway's numbers before anything is written.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from parcelx.app.core.exceptions import (
    AmountMismatchError,
    CurrencyMismatchError,
    MissingFieldError,
    PaymentNotSucceededError,
)

logger = logging.getLogger("parcelx.payments")


@dataclass
class PaymentIntentResult:
    """
    Authoritative state of a payment intent as reported by the gateway.

    Attributes:
        id: Payment intent id (pi_xxx)
        status: Gateway status (requires_payment_method, processing, succeeded, ...)
        amount: Amount in minor units
        currency: Lowercase ISO 4217 code
        metadata: Key-value pairs attached when the intent was created
    """
    id: str
    status: str
    amount: int
    currency: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class PaymentGateway(Protocol):
    async def retrieve(self, payment_intent_id: str) -> PaymentIntentResult:
        ...


class PaymentVerifier:
    """Confirms a payment intent against the gateway."""

    def __init__(
        self,
        gateway: PaymentGateway,
        success_status: str = "succeeded",
        require_amount_check: bool = False,
    ):
        self.gateway = gateway
        self.success_status = success_status
        self.require_amount_check = require_amount_check

    async def verify(
        self,
        payment_intent_id: str,
        expected_amount: Optional[int] = None,
        expected_currency: Optional[str] = None,
    ) -> PaymentIntentResult:
        """
        Fetch the payment intent and check it is a success matching the caller's expectations.

        Args:
            payment_intent_id: Gateway payment intent id
            expected_amount: Amount in minor units the caller intended to pay (optional)
            expected_currency: Currency the caller intended to pay in (optional)

        Returns:
            The verified PaymentIntentResult

        Raises:
            GatewayUnreachableError: gateway call failed
            PaymentNotSucceededError: status is not the terminal success value
            AmountMismatchError: verified amount differs from expected_amount
            CurrencyMismatchError: verified currency differs from expected_currency
        """
        log_context = {"payment_intent_id": payment_intent_id}

        if expected_amount is None and expected_currency is None:
            if self.require_amount_check:
                raise MissingFieldError("amountInCents")
            logger.warning("Confirming payment without amount/currency cross-check", extra=log_context)

        intent = await self.gateway.retrieve(payment_intent_id)

        if intent.status != self.success_status:
            logger.info(
                "Payment intent not succeeded",
                extra={**log_context, "gateway_status": intent.status},
            )
            raise PaymentNotSucceededError(payment_intent_id, gateway_status=intent.status)

        if expected_amount is not None and int(expected_amount) != intent.amount:
            logger.warning(
                "Payment amount mismatch",
                extra={**log_context, "expected": expected_amount, "actual": intent.amount},
            )
            raise AmountMismatchError(expected=expected_amount, actual=intent.amount)

        if expected_currency is not None and expected_currency.lower() != intent.currency.lower():
            logger.warning(
                "Payment currency mismatch",
                extra={**log_context, "expected": expected_currency, "actual": intent.currency},
            )
            raise CurrencyMismatchError(expected=expected_currency, actual=intent.currency)

        return intent
