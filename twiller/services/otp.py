"""
OTP lifecycle — issue, deliver and verify one-time passcodes.

Each (email, purpose) pair has at most one live passcode.  Requesting a new
one replaces the old record, so a code the user has not submitted yet stops
working.  Channel selection:

  • audio-upload                → email
  • language-change to "fr"     → email
  • language-change to anything → SMS to the phone on file

If delivery fails the fresh record is deleted again.  The replaced record
is not restored, so a failed re-request leaves nothing to verify until the
next successful request.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Literal

from twiller.clock import Clock
from twiller.db import Database
from twiller.errors import InvalidRequestError, MissingPhoneError, NotFoundError
from twiller.models import User, VerificationPurpose, VerificationRecord
from twiller.services.email import (
    EmailTransport,
    build_audio_otp_email,
    build_language_otp_email,
)
from twiller.services.sms import SmsTransport, build_language_otp_sms
from twiller.services.verification_store import VerificationStore

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "es", "hi", "pt", "zh", "fr")

# Language whose confirmation code goes out by email rather than SMS.
EMAIL_CONFIRMED_LANGUAGE = "fr"


def generate_code() -> str:
    """Uniform draw over 100000..999999."""
    return str(100_000 + secrets.randbelow(900_000))


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    INVALID = "invalid"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class DeliveryOutcome:
    channel: Literal["email", "sms"]
    destination: str


@dataclass(frozen=True)
class VerificationResult:
    status: VerificationStatus
    payload: dict | None = None

    @property
    def ok(self) -> bool:
        return self.status is VerificationStatus.VERIFIED


class OtpManager:
    def __init__(
        self,
        store: VerificationStore,
        db: Database,
        email: EmailTransport,
        sms: SmsTransport,
        clock: Clock,
        *,
        ttl_seconds: int = 300,
        email_sender: str | None = None,
    ) -> None:
        self._store = store
        self._db = db
        self._email = email
        self._sms = sms
        self._clock = clock
        self._ttl = timedelta(seconds=ttl_seconds)
        self._email_sender = email_sender

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    # ── Request ───────────────────────────────────────────────────────

    async def request(
        self,
        subject: str,
        purpose: VerificationPurpose,
        *,
        language: str | None = None,
    ) -> DeliveryOutcome:
        """
        Issue a fresh code for (subject, purpose) and deliver it.

        The caller must already have proven that it owns *subject*.
        """
        payload: dict = {}
        user = None
        if purpose is VerificationPurpose.LANGUAGE_CHANGE:
            if language not in SUPPORTED_LANGUAGES:
                raise InvalidRequestError(
                    "Unsupported language.",
                    details={"language": language, "supported": list(SUPPORTED_LANGUAGES)},
                )
            user = await self._db.get_user(subject)
            if user is None:
                raise NotFoundError("User not found.", details={"email": subject})
            payload = {"language": language}

        code = generate_code()
        await self._store.put(
            VerificationRecord(
                email=subject,
                purpose=purpose,
                code=code,
                created_at=self._clock(),
                payload=payload,
            )
        )

        try:
            outcome = await self._deliver(subject, purpose, code, language, user)
        except Exception:
            await self._store.discard(subject, purpose)
            logger.warning("OTP delivery for %s (%s) failed; record discarded", subject, purpose.value)
            raise

        logger.info(
            "OTP for %s (%s) sent via %s", subject, purpose.value, outcome.channel
        )
        return outcome

    async def _deliver(
        self,
        subject: str,
        purpose: VerificationPurpose,
        code: str,
        language: str | None,
        user: User | None,
    ) -> DeliveryOutcome:
        ttl_minutes = self.ttl_seconds // 60

        if purpose is VerificationPurpose.AUDIO_UPLOAD:
            title, body = build_audio_otp_email(code, ttl_minutes)
            await self._email.send(subject, title, body, sender=self._email_sender)
            return DeliveryOutcome(channel="email", destination=subject)

        if language == EMAIL_CONFIRMED_LANGUAGE:
            title, body = build_language_otp_email(code, language, ttl_minutes)
            await self._email.send(subject, title, body, sender=self._email_sender)
            return DeliveryOutcome(channel="email", destination=subject)

        if user is None or not user.phone:
            raise MissingPhoneError(
                "No phone number on file for SMS verification.",
                details={"email": subject},
            )
        await self._sms.send(user.phone, build_language_otp_sms(code, language, ttl_minutes))
        return DeliveryOutcome(channel="sms", destination=user.phone)

    # ── Verify ────────────────────────────────────────────────────────

    async def verify(
        self,
        subject: str,
        purpose: VerificationPurpose,
        presented: str,
    ) -> VerificationResult:
        """
        Check *presented* against the live record.

        Wrong and expired codes leave the record in place.  A correct code
        consumes it; for a language change the requested language is
        written to the user first.
        """
        record = await self._store.get(subject, purpose)
        if record is None:
            return VerificationResult(VerificationStatus.NOT_FOUND)

        if presented != record.code:
            return VerificationResult(VerificationStatus.INVALID)

        if self._clock() - record.created_at > self._ttl:
            return VerificationResult(VerificationStatus.EXPIRED)

        if purpose is VerificationPurpose.LANGUAGE_CHANGE:
            await self._db.update_user(subject, {"language": record.payload["language"]})

        await self._store.discard(subject, purpose)
        logger.info("OTP for %s (%s) verified", subject, purpose.value)
        return VerificationResult(VerificationStatus.VERIFIED, payload=record.payload)
