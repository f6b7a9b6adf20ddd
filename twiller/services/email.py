"""
Email service — sends passcodes and invoices via SMTP.

In development (no SMTP configured), emails are printed to the console
so you can see what *would* be sent without configuring a mail server.
"""

from __future__ import annotations

import logging
from datetime import datetime
from email.mime.text import MIMEText
from typing import Protocol

from twiller.errors import DeliveryError

logger = logging.getLogger(__name__)


class EmailTransport(Protocol):
    """Anything that can deliver a plain-text email."""

    async def send(
        self,
        to_email: str,
        subject: str,
        body: str,
        *,
        sender: str | None = None,
    ) -> None:
        """Deliver the message or raise DeliveryError."""
        ...


class SmtpEmailTransport:
    """SMTP transport with a console fallback for local development."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        from_email: str,
        use_tls: bool = True,
        enabled: bool = True,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._from_email = from_email
        self._use_tls = use_tls
        self._enabled = enabled

    async def send(
        self,
        to_email: str,
        subject: str,
        body: str,
        *,
        sender: str | None = None,
    ) -> None:
        # ── Console fallback (dev mode) ───────────────────────────────
        if not self._enabled:
            logger.info(
                "📧 [DEV] Would send email to %s:\n  Subject: %s\n  %s",
                to_email, subject, body,
            )
            return

        # ── Real SMTP send ────────────────────────────────────────────
        import aiosmtplib

        msg = MIMEText(body, "plain")
        msg["Subject"] = subject
        msg["From"] = sender or self._from_email
        msg["To"] = to_email

        try:
            await aiosmtplib.send(
                msg,
                hostname=self._host,
                port=self._port,
                username=self._username,
                password=self._password,
                start_tls=self._use_tls,
            )
            logger.info("Email sent to %s (%s)", to_email, subject)
        except Exception as exc:
            logger.exception("Failed to send email to %s", to_email)
            raise DeliveryError(
                "Failed to send email.", details={"channel": "email"}
            ) from exc


# ── Message builders ──────────────────────────────────────────────────────


def build_audio_otp_email(code: str, ttl_minutes: int) -> tuple[str, str]:
    return (
        "Your OTP for Audio Upload",
        f"Your OTP is: {code} (Valid for {ttl_minutes} minutes)",
    )


def build_language_otp_email(code: str, language: str, ttl_minutes: int) -> tuple[str, str]:
    return (
        "Confirm your language change",
        f"Your OTP to switch your language to '{language}' is: {code} "
        f"(Valid for {ttl_minutes} minutes)",
    )


def build_invoice_email(
    plan: str,
    amount: int,
    payment_id: str,
    paid_at: datetime,
) -> tuple[str, str]:
    """Subject and plain-text body of a subscription invoice."""
    subject = f"Twiller Subscription: {plan.upper()} Plan"
    body = (
        f"Thanks for subscribing to {plan.upper()} Plan!\n\n"
        f"Amount: ₹{amount}\n"
        f"Payment ID: {payment_id}\n"
        f"Date: {paid_at.strftime('%d/%m/%Y, %H:%M:%S')}"
    )
    return subject, body
