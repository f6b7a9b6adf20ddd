"""
Service wiring and FastAPI dependencies.

Every collaborator (store, transports, identity authority, gateway) is
constructed once in ``build_services`` and handed to the components that
need it.  The application keeps the resulting ``Services`` on
``app.state``; tests build their own ``Services`` with fakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Annotated, Any, Awaitable, Callable

from fastapi import Depends, Header, Request

from twiller import config
from twiller.clock import Clock, utcnow
from twiller.db import Database
from twiller.errors import UnauthenticatedError
from twiller.services.admission import AdmissionGate
from twiller.services.email import EmailTransport, SmtpEmailTransport
from twiller.services.identity import (
    FirebaseIdentityAuthority,
    IdentityAuthority,
    LocalIdentityAuthority,
)
from twiller.services.otp import OtpManager
from twiller.services.payments import PaymentGateway, RazorpayGateway
from twiller.services.quota import QuotaEngine
from twiller.services.recovery import RecoveryController
from twiller.services.sms import SmsTransport, TwilioSmsTransport
from twiller.services.verification_store import VerificationStore, VerificationSweeper

logger = logging.getLogger(__name__)


@dataclass
class Services:
    db: Database
    clock: Clock
    email: EmailTransport
    sms: SmsTransport
    identity: IdentityAuthority
    payments: PaymentGateway
    gate: AdmissionGate
    store: VerificationStore
    sweeper: VerificationSweeper
    otp: OtpManager
    quota: QuotaEngine
    recovery: RecoveryController
    # Awaitables run on shutdown (HTTP client pools etc.)
    closers: list[Callable[[], Awaitable[Any]]] = field(default_factory=list)


def assemble_services(
    *,
    db: Database,
    email: EmailTransport,
    sms: SmsTransport,
    identity: IdentityAuthority,
    payments: PaymentGateway,
    gate: AdmissionGate,
    clock: Clock = utcnow,
    ttl_seconds: int = 300,
    sweep_interval: float = 60.0,
    reset_cooldown: timedelta = timedelta(hours=24),
    email_sender: str | None = None,
) -> Services:
    """Build the components on top of already-constructed collaborators."""
    store = VerificationStore(db)
    return Services(
        db=db,
        clock=clock,
        email=email,
        sms=sms,
        identity=identity,
        payments=payments,
        gate=gate,
        store=store,
        sweeper=VerificationSweeper(
            store, clock, ttl_seconds=ttl_seconds, interval=sweep_interval
        ),
        otp=OtpManager(
            store, db, email, sms, clock,
            ttl_seconds=ttl_seconds,
            email_sender=email_sender,
        ),
        quota=QuotaEngine(db, clock),
        recovery=RecoveryController(db, identity, clock, cooldown=reset_cooldown),
    )


def build_services() -> Services:
    """Construct the production collaborators from twiller.config."""
    identity: IdentityAuthority
    closers: list[Callable[[], Awaitable[Any]]] = []

    if config.IDENTITY_PROVIDER == "firebase":
        firebase = FirebaseIdentityAuthority(
            project_id=config.FIREBASE_PROJECT_ID,
            api_key=config.FIREBASE_API_KEY,
            admin_token=config.FIREBASE_ADMIN_TOKEN,
        )
        closers.append(firebase.close)
        identity = firebase
    else:
        identity = LocalIdentityAuthority(config.JWT_SECRET, config.JWT_ALGORITHM)
    logger.info("Identity provider: %s", config.IDENTITY_PROVIDER)

    sms = TwilioSmsTransport(
        api_url=config.SMS_API_URL,
        account_sid=config.SMS_ACCOUNT_SID,
        auth_token=config.SMS_AUTH_TOKEN,
        from_number=config.SMS_FROM_NUMBER,
        enabled=config.sms_enabled(),
    )
    payments = RazorpayGateway(
        api_url=config.RAZORPAY_API_URL,
        key_id=config.RAZORPAY_KEY_ID,
        key_secret=config.RAZORPAY_KEY_SECRET,
    )
    closers.extend([sms.close, payments.close])

    services = assemble_services(
        db=Database(config.DB_PATH),
        email=SmtpEmailTransport(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USERNAME,
            password=config.SMTP_PASSWORD,
            from_email=config.SMTP_FROM_EMAIL,
            use_tls=config.SMTP_USE_TLS,
            enabled=config.smtp_enabled(),
        ),
        sms=sms,
        identity=identity,
        payments=payments,
        gate=AdmissionGate(
            enforced=config.PAYMENT_WINDOW_ENFORCED,
            timezone=config.PAYMENT_WINDOW_TIMEZONE,
            open_hour=config.PAYMENT_WINDOW_HOUR,
        ),
        ttl_seconds=config.OTP_TTL_SECONDS,
        sweep_interval=config.OTP_SWEEP_INTERVAL,
        reset_cooldown=timedelta(hours=config.RESET_COOLDOWN_HOURS),
        email_sender=config.EMAIL_SENDER_VOICE,
    )
    services.closers.extend(closers)
    return services


# ── Request-scoped accessors ──────────────────────────────────────────────


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


# ── Authentication ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AuthenticatedUser:
    email: str
    claims: dict[str, Any]


async def get_current_user(
    services: ServicesDep,
    authorization: Annotated[str | None, Header()] = None,
) -> AuthenticatedUser:
    """Verify the ``Authorization: Bearer <token>`` header with the identity authority."""
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthenticatedError("Missing or invalid token")

    token = authorization.split("Bearer ", 1)[1].strip()
    claims = await services.identity.verify_token(token)
    return AuthenticatedUser(email=claims["email"], claims=claims)


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
