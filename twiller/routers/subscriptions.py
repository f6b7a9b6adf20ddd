"""
Subscription purchase endpoints.

Starting a purchase is gated by the admission window; the payment-success
callback is not.
"""

import logging

from fastapi import APIRouter

from twiller.config import EMAIL_SENDER_BILLING, PAYMENT_CURRENCY, PLAN_PRICES
from twiller.dependencies import CurrentUser, ServicesDep
from twiller.errors import AdmissionDeniedError, DeliveryError, InvalidRequestError, NotFoundError
from twiller.models import (
    CreateSubscriptionRequest,
    CreateSubscriptionResponse,
    PaymentSuccessRequest,
    PaymentSuccessResponse,
)
from twiller.services.email import build_invoice_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["subscriptions"])


def _plan_price(plan: str) -> int:
    price = PLAN_PRICES.get(plan)
    if price is None:
        raise InvalidRequestError("Invalid plan", details={"plan": plan})
    return price


@router.post(
    "/create-subscription",
    response_model=CreateSubscriptionResponse,
    operation_id="createSubscription",
    summary="Create a payment order for a plan",
)
async def create_subscription(
    body: CreateSubscriptionRequest,
    current_user: CurrentUser,
    services: ServicesDep,
) -> CreateSubscriptionResponse:
    now = services.clock()
    if not services.gate.is_open(now):
        logger.info("Purchase by %s refused outside the payment window", current_user.email)
        raise AdmissionDeniedError(services.gate.describe())

    price = _plan_price(body.plan)
    order = await services.payments.create_order(
        amount=price * 100,
        currency=PAYMENT_CURRENCY,
        receipt=f"receipt_{int(now.timestamp() * 1000)}",
    )
    return CreateSubscriptionResponse(order_id=order.order_id, amount=order.amount)


@router.post(
    "/payment-success",
    response_model=PaymentSuccessResponse,
    operation_id="paymentSuccess",
    summary="Record a completed payment and email the invoice",
)
async def payment_success(body: PaymentSuccessRequest, services: ServicesDep) -> PaymentSuccessResponse:
    price = _plan_price(body.plan)
    if await services.db.get_user(body.email) is None:
        raise NotFoundError("User not found", details={"email": body.email})

    now = services.clock()
    logger.info("Updating subscription for %s to %s", body.email, body.plan)
    await services.db.update_user(
        body.email,
        {"subscription": body.plan, "subscribed_at": now, "payment_id": body.payment_id},
    )

    subject, text = build_invoice_email(body.plan, price, body.payment_id, now)
    try:
        await services.email.send(body.email, subject, text, sender=EMAIL_SENDER_BILLING)
    except DeliveryError:
        # The subscription is already recorded; the invoice can be resent.
        logger.warning("Invoice email to %s failed", body.email)

    return PaymentSuccessResponse(success=True)
