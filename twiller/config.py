"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "twiller.db"))

# ── Identity authority ────────────────────────────────────────────────────

# "local" verifies HS256 tokens signed with JWT_SECRET (development),
# "firebase" verifies Firebase ID tokens and calls the Identity Toolkit API.
IDENTITY_PROVIDER: str = os.getenv("IDENTITY_PROVIDER", "local").lower()

JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-me-in-production")
JWT_ALGORITHM: str = "HS256"

FIREBASE_PROJECT_ID: str = os.getenv("FIREBASE_PROJECT_ID", "")
FIREBASE_API_KEY: str = os.getenv("FIREBASE_API_KEY", "")
# OAuth2 access token of a service account, needed for admin account calls.
FIREBASE_ADMIN_TOKEN: str = os.getenv("FIREBASE_ADMIN_TOKEN", "")

# ── SMTP ──────────────────────────────────────────────────────────────────

SMTP_HOST: str = os.getenv("SMTP_HOST", "")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
SMTP_FROM_EMAIL: str = os.getenv("SMTP_FROM_EMAIL", "noreply@twiller.local")
SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

# Set to "false" to force console-only mode even when SMTP credentials are present.
_SMTP_ENABLED_OVERRIDE: str = os.getenv("SMTP_ENABLED", "auto")


def smtp_enabled() -> bool:
    """True when SMTP should actually send emails.

    Controlled by SMTP_ENABLED env var:
      • "auto" (default) — send if credentials are configured
      • "true"  — always send (will fail if credentials are missing)
      • "false" — never send, print to console instead
    """
    if _SMTP_ENABLED_OVERRIDE.lower() == "false":
        return False
    if _SMTP_ENABLED_OVERRIDE.lower() == "true":
        return True
    return bool(SMTP_HOST and SMTP_USERNAME and SMTP_PASSWORD)


# ── SMS ───────────────────────────────────────────────────────────────────

SMS_API_URL: str = os.getenv("SMS_API_URL", "https://api.twilio.com/2010-04-01")
SMS_ACCOUNT_SID: str = os.getenv("SMS_ACCOUNT_SID", "")
SMS_AUTH_TOKEN: str = os.getenv("SMS_AUTH_TOKEN", "")
SMS_FROM_NUMBER: str = os.getenv("SMS_FROM_NUMBER", "")

_SMS_ENABLED_OVERRIDE: str = os.getenv("SMS_ENABLED", "auto")


def sms_enabled() -> bool:
    """Same contract as smtp_enabled(), driven by SMS_ENABLED."""
    if _SMS_ENABLED_OVERRIDE.lower() == "false":
        return False
    if _SMS_ENABLED_OVERRIDE.lower() == "true":
        return True
    return bool(SMS_ACCOUNT_SID and SMS_AUTH_TOKEN and SMS_FROM_NUMBER)


# ── Payments ──────────────────────────────────────────────────────────────

RAZORPAY_API_URL: str = os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1")
RAZORPAY_KEY_ID: str = os.getenv("RAZORPAY_KEY_ID", "")
RAZORPAY_KEY_SECRET: str = os.getenv("RAZORPAY_KEY_SECRET", "")

# Plan prices in whole rupees.
PLAN_PRICES: dict[str, int] = {"bronze": 100, "silver": 300, "gold": 1000}
PAYMENT_CURRENCY: str = "INR"

# Purchases may only be started inside this local hour.  Disable to keep
# the purchase flow open around the clock.
PAYMENT_WINDOW_ENFORCED: bool = os.getenv("PAYMENT_WINDOW_ENFORCED", "true").lower() == "true"
PAYMENT_WINDOW_TIMEZONE: str = os.getenv("PAYMENT_WINDOW_TIMEZONE", "Asia/Kolkata")
PAYMENT_WINDOW_HOUR: int = int(os.getenv("PAYMENT_WINDOW_HOUR", "10"))

# ── OTP ───────────────────────────────────────────────────────────────────

OTP_TTL_SECONDS: int = int(os.getenv("OTP_TTL_SECONDS", "300"))

# How often expired verification records are evicted (seconds).
OTP_SWEEP_INTERVAL: float = float(os.getenv("OTP_SWEEP_INTERVAL", "60"))

EMAIL_SENDER_VOICE: str = os.getenv("EMAIL_SENDER_VOICE", f'"Twiller Voice" <{SMTP_FROM_EMAIL}>')
EMAIL_SENDER_ACCOUNT: str = os.getenv("EMAIL_SENDER_ACCOUNT", f'"Twiller" <{SMTP_FROM_EMAIL}>')
EMAIL_SENDER_BILLING: str = os.getenv(
    "EMAIL_SENDER_BILLING", f'"Twiller Subscriptions" <{SMTP_FROM_EMAIL}>'
)

# ── Account recovery ──────────────────────────────────────────────────────

RESET_COOLDOWN_HOURS: int = int(os.getenv("RESET_COOLDOWN_HOURS", "24"))

# ── Rate limits ───────────────────────────────────────────────────────────

# slowapi rate strings, per client IP.
RATE_LIMIT_MESSAGING: str = os.getenv("RATE_LIMIT_MESSAGING", "5/minute")
RATE_LIMIT_VERIFY: str = os.getenv("RATE_LIMIT_VERIFY", "10/minute")
RATE_LIMIT_READ: str = os.getenv("RATE_LIMIT_READ", "60/minute")
