"""
Posting quotas per subscription tier.

Usage is the number of posts created in the trailing 30 days, measured
from the moment of evaluation (not calendar months).

Post creation checks the quota and inserts the post as two separate
store calls.  Two concurrent requests from one user can both pass the
check, so a user may end up one or more posts over the allowance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

from twiller.clock import Clock
from twiller.db import Database
from twiller.models import UNLIMITED, QuotaSummary, User

logger = logging.getLogger(__name__)

# None means unbounded
TIER_LIMITS: dict[str, Optional[int]] = {
    "free": 1,
    "bronze": 3,
    "silver": 5,
    "gold": None,
}

WINDOW = timedelta(days=30)


def tier_limit(plan: str | None) -> Optional[int]:
    """Posting allowance for *plan*; unknown plans get the free allowance."""
    return TIER_LIMITS.get(plan or "free", TIER_LIMITS["free"])


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    plan: str
    limit: Optional[int]
    used: int


class QuotaEngine:
    def __init__(self, db: Database, clock: Clock) -> None:
        self._db = db
        self._clock = clock

    async def _used(self, user: User) -> int:
        return await self._db.count_posts_since(user.email, self._clock() - WINDOW)

    async def evaluate(self, user: User, proposed: int = 1) -> QuotaDecision:
        """Would *proposed* more posts keep *user* within the allowance?"""
        plan = user.subscription or "free"
        limit = tier_limit(plan)
        used = await self._used(user)

        allowed = limit is None or used + proposed <= limit
        if not allowed:
            logger.info("Quota exceeded for %s (plan=%s used=%d limit=%d)", user.email, plan, used, limit)
        return QuotaDecision(allowed=allowed, plan=plan, limit=limit, used=used)

    async def remaining(self, user: User) -> QuotaSummary:
        plan = user.subscription or "free"
        limit = tier_limit(plan)
        used = await self._used(user)

        left: Union[int, str]
        if limit is None:
            left = UNLIMITED
        else:
            left = max(0, limit - used)

        return QuotaSummary(
            plan=plan,
            limit=UNLIMITED if limit is None else limit,
            used=used,
            left=left,
            tweets_left=left,
        )
