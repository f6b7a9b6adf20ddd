"""
Password recovery with a once-per-day cooldown.

Two strategies:

  • "email"    – ask the identity authority to send a reset link.
  • "generate" – set a fresh random password at the identity authority and
                 hand it back to the caller once.  It is never stored.

The cooldown stamp is written only after the identity authority call
succeeds, so a failed attempt can be retried immediately.
"""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from twiller.clock import Clock
from twiller.db import Database
from twiller.errors import ConflictError, InvalidRequestError, NotFoundError
from twiller.models import normalize_email
from twiller.services.identity import IdentityAuthority

logger = logging.getLogger(__name__)

PASSWORD_ALPHABET = string.ascii_letters + string.digits
PASSWORD_LENGTH = 10

METHOD_EMAIL = "email"
METHOD_GENERATE = "generate"


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


@dataclass(frozen=True)
class ResetOutcome:
    method: str
    email: str
    message: str
    password: Optional[str] = None


class RecoveryController:
    def __init__(
        self,
        db: Database,
        identity: IdentityAuthority,
        clock: Clock,
        *,
        cooldown: timedelta = timedelta(hours=24),
    ) -> None:
        self._db = db
        self._identity = identity
        self._clock = clock
        self._cooldown = cooldown

    async def request_reset(self, identifier: str, method: str) -> ResetOutcome:
        user = await self._db.find_user_by_identifier(normalize_email(identifier))
        if user is None:
            raise NotFoundError("User not found.")

        now = self._clock()
        last = user.last_password_reset
        if last is not None and now - last < self._cooldown:
            raise ConflictError(
                "You can reset only once per day.",
                details={"retry_after_seconds": int((last + self._cooldown - now).total_seconds())},
                status_code=429,
            )

        if method == METHOD_EMAIL:
            await self._identity.generate_reset_link(user.email)
            await self._db.update_user(user.email, {"last_password_reset": now})
            logger.info("Password reset link issued for %s", user.email)
            return ResetOutcome(
                method=method,
                email=user.email,
                message=f"Reset link sent to {user.email}",
            )

        if method == METHOD_GENERATE:
            password = generate_password()
            account_id = await self._identity.get_account_by_email(user.email)
            await self._identity.update_account_credential(account_id, password)
            await self._db.update_user(user.email, {"last_password_reset": now})
            logger.info("Generated a new password for %s", user.email)
            return ResetOutcome(
                method=method,
                email=user.email,
                message=f"New password: {password}",
                password=password,
            )

        raise InvalidRequestError("Invalid method.", details={"method": method})
