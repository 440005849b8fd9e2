# =============================================================================
# Payment Routes
# =============================================================================
#
# Endpoints:
#   POST   /api/create-payment-intent  - Start a card payment (authenticated)
#   POST   /api/payments               - Record a completed payment, grant premium
#   GET    /api/payments               - All payments, paginated (admin)
#   GET    /api/payments/{email}       - A user's payment or null (self or admin)
#   DELETE /api/payments/{email}       - Remove payment and premium (admin)
#
# Purchase flow: create-payment-intent -> client confirms the card with
# the returned secret -> POST /api/payments with the intent id. Premium is
# only granted for an intent the provider reports as succeeded and that
# was created for the caller. Each user has at most one payment; buying
# again replaces it and restarts the subscription window.
#
# =============================================================================

import logging

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel, Field

from mnews.api.deps import deleted, get_app_settings, get_payment_provider, get_storage
from mnews.auth import (
    AuthContext,
    owner_from_path,
    require_admin,
    require_auth,
    require_owner_or_admin,
)
from mnews.config import Settings
from mnews.core.errors import Conflict, Forbidden, InvalidArgument
from mnews.core.models import Payment, User, premium_expires_at
from mnews.core.utils import utc_now
from mnews.integrations.payments import PaymentProvider
from mnews.services.query import build_page_query, run_listing
from mnews.storage import Collections, DocumentStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["payments"])


class PaymentIntentRequest(BaseModel):
    price: float = Field(gt=0, le=100_000)
    duration: int | None = Field(default=None, gt=0, description="Subscription length in minutes")


class RecordPaymentRequest(BaseModel):
    payment_intent_id: str = Field(min_length=1, alias="paymentIntentId")
    duration: int | None = Field(default=None, gt=0, description="Subscription length in minutes")


SUCCEEDED = "succeeded"


# =============================================================================
# Purchase
# =============================================================================


@router.post("/create-payment-intent")
async def create_payment_intent(
    data: PaymentIntentRequest,
    ctx: AuthContext = Depends(require_auth()),
    payments: PaymentProvider = Depends(get_payment_provider),
    settings: Settings = Depends(get_app_settings),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
):
    """
    Create a payment intent for ``price`` (in major currency units).

    Send an ``Idempotency-Key`` header so a retried request reuses the
    same intent instead of starting a second charge. A ``duration`` sent
    here is bound to the intent and wins over the one sent when recording.
    """
    metadata = {"email": ctx.email}
    if data.duration is not None:
        metadata["duration"] = str(data.duration)

    intent = await payments.create_payment_intent(
        amount_cents=round(data.price * 100),
        currency=settings.payment_currency,
        idempotency_key=idempotency_key,
        metadata=metadata,
    )
    return {"clientSecret": intent.client_secret, "paymentIntentId": intent.id}


@router.post("/payments")
async def record_payment(
    data: RecordPaymentRequest,
    ctx: AuthContext = Depends(require_auth()),
    storage: DocumentStorage = Depends(get_storage),
    payments: PaymentProvider = Depends(get_payment_provider),
):
    """
    Record the caller's confirmed payment and make them premium for
    ``duration`` minutes from now. Replaces any earlier payment.

    The amount is the one the provider charged, never one sent by the
    client.
    """
    email = ctx.email

    intent = await payments.retrieve_payment_intent(data.payment_intent_id)
    if (intent.metadata.get("email") or "").lower() != email:
        logger.warning("%s tried to record payment intent %s of another user", email, intent.id)
        raise Forbidden("Payment was not made by this user")
    if intent.status != SUCCEEDED:
        raise InvalidArgument(f"Payment has not succeeded (status: {intent.status})")

    duration = int(intent.metadata["duration"]) if intent.metadata.get("duration") else data.duration
    if not duration:
        raise InvalidArgument("'duration' is required")

    if await storage.find_one(Collections.PAYMENTS, {"paymentIntentId": intent.id}):
        raise Conflict("Payment already recorded")

    now = utc_now()
    payment = Payment(
        email=email,
        amount=intent.amount / 100,
        start_time=now,
        duration=duration,
        payment_intent_id=intent.id,
        created_at=now,
        updated_at=now,
    ).to_document()
    # A repurchase keeps the stored _id; a first purchase gets this one
    payment_id = payment.pop("_id")
    await storage.update_one(
        Collections.PAYMENTS,
        {"email": email},
        set_fields=payment,
        upsert=True,
        insert_id=payment_id,
    )

    premium = {
        "isPremium": True,
        "premiumTaken": now,
        "premiumDuration": duration,
        "updatedAt": now,
    }
    result = await storage.update_one(Collections.USERS, {"email": email}, set_fields=premium)
    if result.matched_count == 0:
        # Paid before the sign-in record was written
        user = User(email=email, is_premium=True, premium_taken=now, premium_duration=duration)
        await storage.insert_one(Collections.USERS, user.to_document())

    logger.info("Recorded payment %s for %s (%s minutes)", intent.id, email, duration)

    stored = await storage.find_one(Collections.PAYMENTS, {"email": email})
    return {
        "payment": stored,
        "isPremium": True,
        "premiumExpiresAt": premium_expires_at(premium),
    }


# =============================================================================
# Lookup & removal
# =============================================================================


@router.get("/payments")
async def list_payments(
    request: Request,
    ctx: AuthContext = Depends(require_admin()),
    storage: DocumentStorage = Depends(get_storage),
):
    """All payments, newest first."""
    return await run_listing(storage, Collections.PAYMENTS, build_page_query(request.query_params))


@router.get("/payments/{email}")
async def get_payment(
    email: str,
    ctx: AuthContext = Depends(require_owner_or_admin(owner_from_path("email"))),
    storage: DocumentStorage = Depends(get_storage),
):
    """The user's current payment, or null if they never paid."""
    return await storage.find_one(Collections.PAYMENTS, {"email": email.lower()})


@router.delete("/payments/{email}")
async def delete_payment(
    email: str,
    ctx: AuthContext = Depends(require_admin()),
    storage: DocumentStorage = Depends(get_storage),
):
    """Remove a user's payment and their premium access with it."""
    email = email.lower()
    done = await storage.delete_one(Collections.PAYMENTS, {"email": email})
    await storage.update_one(
        Collections.USERS,
        {"email": email},
        set_fields={
            "isPremium": False,
            "premiumTaken": None,
            "premiumDuration": None,
            "updatedAt": utc_now(),
        },
    )
    logger.info("%s removed payment of %s", ctx.email, email)
    return deleted(done)
