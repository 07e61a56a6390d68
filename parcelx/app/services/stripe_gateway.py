"""
Stripe payment gateway adapter.

All Stripe calls go through this adapter so that timeouts, error
translation and logging are applied consistently. Only read access is
needed: the confirmation flow retrieves a PaymentIntent by id and trusts
nothing else.

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_API_TIMEOUT_SECONDS: per-call timeout (default: 10)
- STRIPE_MAX_NETWORK_RETRIES: retries performed by the SDK on network errors,
  applied process-wide by configure_stripe() at startup
"""

import asyncio
import logging
import time
from typing import Optional

import stripe

from parcelx.app.core.config import settings
from parcelx.app.core.exceptions import GatewayUnreachableError, PaymentNotSucceededError
from parcelx.app.core.reliability import CircuitBreaker, CircuitOpenError
from parcelx.app.domain.payments.verifier import PaymentIntentResult

logger = logging.getLogger("parcelx.payments.stripe")

# Errors that say the gateway is unhealthy rather than that the request was wrong
_TRANSIENT_ERRORS = (
    stripe.APIConnectionError,
    stripe.RateLimitError,
    stripe.APIError,
    asyncio.TimeoutError,
)


class StripeGateway:
    """Read-only PaymentIntent access with timeouts and a circuit breaker."""

    def __init__(
        self,
        api_key: str,
        timeout_seconds: float = 10.0,
        circuit_breaker: CircuitBreaker = None,
    ):
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.gateway_failure_threshold,
            reset_timeout=settings.gateway_reset_timeout,
            is_failure=lambda exc: isinstance(exc, _TRANSIENT_ERRORS),
        )

    async def _retrieve(self, payment_intent_id: str):
        return await asyncio.wait_for(
            stripe.PaymentIntent.retrieve_async(payment_intent_id, api_key=self.api_key),
            timeout=self.timeout_seconds,
        )

    async def retrieve(self, payment_intent_id: str) -> PaymentIntentResult:
        """
        Retrieve a PaymentIntent.

        Raises:
            GatewayUnreachableError: network failure, timeout, Stripe outage,
                rate limiting, bad credentials or an open circuit
            PaymentNotSucceededError: Stripe does not know this payment intent
        """
        log_context = {"operation": "retrieve_payment_intent", "payment_intent_id": payment_intent_id}
        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            intent = await self.circuit_breaker.call(self._retrieve, payment_intent_id)
        except CircuitOpenError:
            logger.error("Stripe circuit open, rejecting call", extra=log_context)
            raise GatewayUnreachableError("Payment gateway temporarily unavailable. Please retry.")
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_stripe_error(e, {**log_context, "duration_ms": duration_ms})
            raise

        logger.debug(
            "Stripe operation completed",
            extra={**log_context, "status": intent.status, "duration_ms": (time.time() - start_time) * 1000},
        )

        return PaymentIntentResult(
            id=intent.id,
            status=intent.status,
            amount=intent.amount,
            currency=intent.currency,
            metadata=dict(intent.metadata or {}),
        )

    def _handle_stripe_error(self, error: Exception, log_context: dict) -> None:
        """Translate an SDK error into a domain exception. Unknown errors propagate."""
        payment_intent_id = log_context["payment_intent_id"]

        if isinstance(error, asyncio.TimeoutError):
            logger.error("Stripe call timed out", extra=log_context)
            raise GatewayUnreachableError(
                "Payment gateway timed out. Please retry.",
                details={"payment_intent_id": payment_intent_id},
            ) from error

        elif isinstance(error, stripe.InvalidRequestError):
            # Unknown payment intent or malformed id
            logger.warning(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise PaymentNotSucceededError(
                payment_intent_id,
                message=f"Payment {payment_intent_id} could not be verified",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical("Stripe authentication failed - check API key", extra=log_context)
            raise GatewayUnreachableError("Payment gateway authentication failed") from error

        elif isinstance(error, stripe.StripeError):
            # Connection, rate limit and server errors
            logger.error(
                f"Stripe error: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise GatewayUnreachableError(
                "Could not reach payment gateway. Please retry.",
                details={"payment_intent_id": payment_intent_id},
            ) from error


def build_stripe_gateway() -> StripeGateway:
    return StripeGateway(
        api_key=settings.stripe_secret_key,
        timeout_seconds=settings.stripe_api_timeout_seconds,
    )


def configure_stripe(max_network_retries: Optional[int] = None) -> None:
    """Apply process-wide SDK settings. Called once at application startup."""
    if max_network_retries is None:
        max_network_retries = settings.stripe_max_network_retries
    stripe.max_network_retries = max_network_retries
