"""
Payment gateway adapter — creates Razorpay orders.

Only order creation lives here; capturing the payment happens in the
client, which then calls /payment-success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from twiller.errors import PaymentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentOrder:
    order_id: str
    amount: int  # minor units (paise)


class PaymentGateway(Protocol):
    async def create_order(self, amount: int, currency: str, receipt: str) -> PaymentOrder:
        """Create an order for *amount* minor units or raise PaymentError."""
        ...


class RazorpayGateway:
    """Async HTTP client for the Razorpay Orders API."""

    def __init__(self, *, api_url: str, key_id: str, key_secret: str, timeout: float = 30.0) -> None:
        self._client = httpx.AsyncClient(
            base_url=api_url,
            auth=(key_id, key_secret),
            timeout=timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def create_order(self, amount: int, currency: str, receipt: str) -> PaymentOrder:
        payload = {"amount": amount, "currency": currency, "receipt": receipt}
        try:
            resp = await self._client.post("/orders", json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.exception("Razorpay order creation failed (receipt=%s)", receipt)
            raise PaymentError("Failed to create payment order.") from exc

        data = resp.json()
        logger.info("Created order %s for %d %s", data["id"], data["amount"], currency)
        return PaymentOrder(order_id=data["id"], amount=int(data["amount"]))
