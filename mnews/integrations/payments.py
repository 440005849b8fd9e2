# =============================================================================
# Payment Intents (Stripe)
# =============================================================================
#
# Setup:
#   1. Copy the secret key from the Stripe dashboard
#   2. Set env var: STRIPE_SECRET_KEY=sk_...
#
# The web client confirms the card payment with the returned client
# secret, then records the purchase through POST /api/payments.
#
# =============================================================================

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
import logging
from typing import Any

from pydantic import BaseModel, Field
import stripe

from mnews.config import Settings
from mnews.core.errors import InvalidArgument, UpstreamFailure

logger = logging.getLogger(__name__)


class PaymentIntent(BaseModel):
    """A payment intent as the provider reports it."""

    id: str
    client_secret: str = ""
    status: str = ""
    amount: int = 0  # cents
    currency: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_stripe(cls, intent: Any) -> PaymentIntent:
        return cls(
            id=intent.id,
            client_secret=intent.client_secret or "",
            status=intent.status or "",
            amount=intent.amount or 0,
            currency=intent.currency or "",
            metadata=dict(intent.metadata or {}),
        )


class PaymentProvider(ABC):
    """Creates and looks up payment intents with an external provider."""

    @abstractmethod
    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        idempotency_key: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> PaymentIntent:
        """
        Create an intent for ``amount_cents`` in ``currency``.

        The same idempotency key always yields the same intent, so a
        client retry never starts a second charge.
        """
        pass

    @abstractmethod
    async def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        """
        Look up an intent with its current status, charged amount and
        metadata.

        Raises:
            InvalidArgument: The provider does not know the intent
        """
        pass


class StripePaymentProvider(PaymentProvider):
    """Stripe PaymentIntents API."""

    def __init__(self, api_key: str):
        self.api_key = api_key

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        idempotency_key: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> PaymentIntent:
        if not self.configured:
            raise UpstreamFailure("Payments are not configured")

        params: dict[str, Any] = {
            "amount": amount_cents,
            "currency": currency,
            "payment_method_types": ["card"],
            "metadata": metadata or {},
            "api_key": self.api_key,
        }
        if idempotency_key:
            params["idempotency_key"] = idempotency_key

        try:
            # The SDK call blocks; keep it off the event loop
            intent = await asyncio.to_thread(stripe.PaymentIntent.create, **params)
        except stripe.StripeError as e:
            logger.error("Stripe payment intent failed: %s", e)
            raise UpstreamFailure(f"Payment provider error: {e.user_message or e}") from e

        return PaymentIntent.from_stripe(intent)

    async def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        if not self.configured:
            raise UpstreamFailure("Payments are not configured")

        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.retrieve,
                intent_id,
                api_key=self.api_key,
            )
        except stripe.InvalidRequestError as e:
            raise InvalidArgument(f"Unknown payment intent: {intent_id}") from e
        except stripe.StripeError as e:
            logger.error("Stripe payment intent lookup failed: %s", e)
            raise UpstreamFailure(f"Payment provider error: {e.user_message or e}") from e

        return PaymentIntent.from_stripe(intent)


def create_payment_provider(settings: Settings) -> PaymentProvider:
    """Provider for the configured secret key."""
    if not settings.stripe_secret_key:
        logger.info("STRIPE_SECRET_KEY not set - payment intents disabled")
    return StripePaymentProvider(settings.stripe_secret_key)
