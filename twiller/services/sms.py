"""
SMS service — sends passcodes through the Twilio Messages REST API.

Without credentials the message is logged instead of sent, the same way
the email transport falls back to the console.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from twiller.errors import DeliveryError

logger = logging.getLogger(__name__)


class SmsTransport(Protocol):
    """Anything that can deliver a text message to a phone number."""

    async def send(self, to_number: str, body: str, *, sender: str | None = None) -> None:
        """Deliver the message or raise DeliveryError."""
        ...


class TwilioSmsTransport:
    """Async HTTP client for the Twilio Messages endpoint."""

    def __init__(
        self,
        *,
        api_url: str,
        account_sid: str,
        auth_token: str,
        from_number: str,
        enabled: bool = True,
        timeout: float = 15.0,
    ) -> None:
        self._url = f"{api_url.rstrip('/')}/Accounts/{account_sid}/Messages.json"
        self._from_number = from_number
        self._enabled = enabled
        self._client = httpx.AsyncClient(auth=(account_sid, auth_token), timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def send(self, to_number: str, body: str, *, sender: str | None = None) -> None:
        if not self._enabled:
            logger.info("📱 [DEV] Would send SMS to %s: %s", to_number, body)
            return

        payload = {"From": sender or self._from_number, "To": to_number, "Body": body}
        try:
            resp = await self._client.post(self._url, data=payload)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.exception("Failed to send SMS to %s", to_number)
            raise DeliveryError("Failed to send SMS.", details={"channel": "sms"}) from exc

        logger.info("SMS sent to %s (sid=%s)", to_number, resp.json().get("sid"))


def build_language_otp_sms(code: str, language: str, ttl_minutes: int) -> str:
    return (
        f"Twiller: your code to switch language to '{language}' is {code}. "
        f"It expires in {ttl_minutes} minutes."
    )
