"""
Identity authority adapters.

The identity authority turns a bearer credential into a verified email
claim and owns account passwords.  Two implementations:

  • LocalIdentityAuthority    – HS256 tokens signed with JWT_SECRET; reset
                                 links and password changes are only logged.
                                 For development and tests.
  • FirebaseIdentityAuthority – Firebase ID tokens (RS256, Google JWKS) and
                                 the Identity Toolkit REST API.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

import httpx
import jwt

from twiller.errors import IdentityError, UnauthenticatedError
from twiller.models import normalize_email

logger = logging.getLogger(__name__)

_GOOGLE_JWKS_URL = (
    "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
)
_IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"


class IdentityAuthority(Protocol):
    """Protocol every identity backend must satisfy."""

    async def verify_token(self, token: str) -> dict[str, Any]:
        """Return the token's claims (always including ``email``) or raise UnauthenticatedError."""
        ...

    async def generate_reset_link(self, email: str) -> str:
        """Issue a password-reset link for *email*."""
        ...

    async def get_account_by_email(self, email: str) -> str:
        """Return the authority's account id for *email*."""
        ...

    async def update_account_credential(self, account_id: str, password: str) -> None:
        """Replace the account's password."""
        ...


def _require_email(claims: dict[str, Any]) -> dict[str, Any]:
    email = claims.get("email") or claims.get("sub")
    if not email:
        raise UnauthenticatedError("Invalid token payload.")
    # Same form as the request bodies and the users table
    claims["email"] = normalize_email(email)
    return claims


# ── Local (development) ───────────────────────────────────────────────────


class LocalIdentityAuthority:
    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    def issue_token(self, email: str, *, expires_in: timedelta = timedelta(days=7)) -> str:
        """Create a signed token for *email* (handy for local clients and tests)."""
        now = datetime.now(timezone.utc)
        payload = {"sub": email, "email": email, "iat": now, "exp": now + expires_in}
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    async def verify_token(self, token: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise UnauthenticatedError("Session expired. Please log in again.") from None
        except jwt.PyJWTError:
            raise UnauthenticatedError("Invalid token.") from None
        return _require_email(claims)

    async def generate_reset_link(self, email: str) -> str:
        link = f"http://localhost/reset-password?email={email}"
        logger.info("🔑 [DEV] Password reset link for %s: %s", email, link)
        return link

    async def get_account_by_email(self, email: str) -> str:
        return email

    async def update_account_credential(self, account_id: str, password: str) -> None:
        logger.info("🔑 [DEV] Password updated for account %s", account_id)


# ── Firebase ──────────────────────────────────────────────────────────────


class FirebaseIdentityAuthority:
    """Verifies Firebase ID tokens and manages accounts over REST."""

    def __init__(
        self,
        *,
        project_id: str,
        api_key: str,
        admin_token: str,
        timeout: float = 15.0,
    ) -> None:
        self._project_id = project_id
        self._api_key = api_key
        self._jwks = jwt.PyJWKClient(_GOOGLE_JWKS_URL)
        self._client = httpx.AsyncClient(base_url=_IDENTITY_TOOLKIT_URL, timeout=timeout)
        self._admin_headers = {"Authorization": f"Bearer {admin_token}"}

    async def close(self) -> None:
        await self._client.aclose()

    async def verify_token(self, token: str) -> dict[str, Any]:
        try:
            # PyJWKClient fetches keys synchronously
            signing_key = await asyncio.to_thread(self._jwks.get_signing_key_from_jwt, token)
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self._project_id,
                issuer=f"https://securetoken.google.com/{self._project_id}",
            )
        except jwt.ExpiredSignatureError:
            raise UnauthenticatedError("Session expired. Please log in again.") from None
        except jwt.PyJWTError as exc:
            logger.info("Rejected identity token: %s", exc)
            raise UnauthenticatedError("Unauthorized") from None
        return _require_email(claims)

    async def _post(self, path: str, payload: dict[str, Any], *, admin: bool) -> dict[str, Any]:
        try:
            if admin:
                resp = await self._client.post(path, json=payload, headers=self._admin_headers)
            else:
                resp = await self._client.post(path, json=payload, params={"key": self._api_key})
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.exception("Identity Toolkit call %s failed", path)
            raise IdentityError("Identity authority request failed.") from exc
        return resp.json()

    async def generate_reset_link(self, email: str) -> str:
        data = await self._post(
            "/accounts:sendOobCode",
            {"requestType": "PASSWORD_RESET", "email": email, "returnOobLink": False},
            admin=False,
        )
        return data.get("oobLink", "")

    async def get_account_by_email(self, email: str) -> str:
        data = await self._post(
            f"/projects/{self._project_id}/accounts:lookup",
            {"email": [email]},
            admin=True,
        )
        users = data.get("users") or []
        if not users:
            raise IdentityError(f"No identity account for {email}.")
        return users[0]["localId"]

    async def update_account_credential(self, account_id: str, password: str) -> None:
        await self._post(
            f"/projects/{self._project_id}/accounts:update",
            {"localId": account_id, "password": password},
            admin=True,
        )
