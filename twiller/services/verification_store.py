"""
Verification record store and its TTL sweeper.

The store keeps exactly one pending record per (email, purpose).  Writing a
new record replaces the old one, which invalidates any code the user has
not submitted yet.

The sweeper runs as a background asyncio task and evicts records older than
the TTL.  Eviction is cleanup only: OtpManager checks the age itself at
verification time, so a record the sweeper has not reached yet is still
refused once it is too old.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from twiller.clock import Clock
from twiller.db import Database
from twiller.models import VerificationPurpose, VerificationRecord

logger = logging.getLogger(__name__)


class VerificationStore:
    """Thin replace-or-create facade over the verification_records table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def put(self, record: VerificationRecord) -> None:
        await self._db.upsert_verification(record)

    async def get(self, email: str, purpose: VerificationPurpose) -> VerificationRecord | None:
        return await self._db.get_verification(email, purpose)

    async def discard(self, email: str, purpose: VerificationPurpose) -> bool:
        return await self._db.delete_verification(email, purpose)

    async def evict_expired(self, now: datetime, ttl_seconds: int) -> int:
        return await self._db.delete_verifications_older_than(
            now - timedelta(seconds=ttl_seconds)
        )


class VerificationSweeper:
    """Periodically evicts verification records past their TTL."""

    def __init__(
        self,
        store: VerificationStore,
        clock: Clock,
        *,
        ttl_seconds: int,
        interval: float,
    ) -> None:
        self._store = store
        self._clock = clock
        self._ttl_seconds = ttl_seconds
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    # ── Lifecycle ──────────────────────────────────────────────────────

    async def start(self) -> None:
        self._task = asyncio.create_task(self._loop(), name="verification-sweeper")
        logger.info(
            "Verification sweeper started — ttl=%ds interval=%.0fs",
            self._ttl_seconds, self._interval,
        )

    async def stop(self) -> None:
        """Cancel the background loop."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Verification sweeper stopped")

    # ── Background loop ───────────────────────────────────────────────

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Verification sweep failed — will retry")

    async def sweep(self) -> int:
        """One eviction pass; returns how many records were removed."""
        removed = await self._store.evict_expired(self._clock(), self._ttl_seconds)
        if removed:
            logger.info("Evicted %d expired verification record(s)", removed)
        return removed
