"""
Per-IP request limits (slowapi).

  • STRICT – endpoints that make us send a message or touch credentials:
             OTP sends and /forgot-password.
  • AUTH   – passcode checks, where guessing is the threat.
  • SEARCH – the post search, a full-table LIKE scan.

Rates come from twiller.config so deployments can tighten them.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from twiller import config

STRICT = config.RATE_LIMIT_MESSAGING
AUTH = config.RATE_LIMIT_VERIFY
SEARCH = config.RATE_LIMIT_READ

limiter = Limiter(key_func=get_remote_address)
