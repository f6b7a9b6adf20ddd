"""
SQLite document store using aiosqlite.

Holds the three collections the service works with: users, posts and
pending verification records.  Tables are created automatically on
first connect.  Storage errors are not caught here; they propagate to
the request that triggered them.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

import aiosqlite

from twiller.models import Post, User, VerificationPurpose, VerificationRecord

logger = logging.getLogger(__name__)

# Columns a caller may $set on a user document.
USER_FIELDS = frozenset({
    "username", "name", "phone", "profile_photo", "bio", "location", "website",
    "subscription", "language", "last_password_reset", "subscribed_at", "payment_id",
})


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    email               TEXT PRIMARY KEY,
    username            TEXT UNIQUE,
    name                TEXT,
    phone               TEXT,
    profile_photo       TEXT,
    bio                 TEXT,
    location            TEXT,
    website             TEXT,
    subscription        TEXT NOT NULL DEFAULT 'free',
    language            TEXT NOT NULL DEFAULT 'en',
    last_password_reset TEXT,
    subscribed_at       TEXT,
    payment_id          TEXT,
    created_at          TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_users_phone ON users(phone);

CREATE TABLE IF NOT EXISTS posts (
    id              TEXT PRIMARY KEY,
    email           TEXT NOT NULL,
    post            TEXT NOT NULL DEFAULT '',
    photo           TEXT,
    audio           TEXT,
    username        TEXT,
    name            TEXT,
    profile_photo   TEXT,
    created_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_posts_author ON posts(email, created_at);
CREATE INDEX IF NOT EXISTS idx_posts_created ON posts(created_at);

CREATE TABLE IF NOT EXISTS verification_records (
    email       TEXT NOT NULL,
    purpose     TEXT NOT NULL,
    code        TEXT NOT NULL,
    payload     TEXT NOT NULL DEFAULT '{}',  -- JSON object
    created_at  TEXT NOT NULL,
    PRIMARY KEY (email, purpose)
);

CREATE INDEX IF NOT EXISTS idx_verifications_created ON verification_records(created_at);
"""


# ── Helpers ───────────────────────────────────────────────────────────────


def _iso(dt: datetime | None) -> str | None:
    """UTC ISO-8601 with fixed precision so text order matches time order."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _dt(raw: str | None) -> datetime | None:
    if raw is None:
        return None
    return datetime.fromisoformat(raw)


def _row_to_user(row: aiosqlite.Row) -> User:
    return User(
        email=row["email"],
        username=row["username"],
        name=row["name"],
        phone=row["phone"],
        profile_photo=row["profile_photo"],
        bio=row["bio"],
        location=row["location"],
        website=row["website"],
        subscription=row["subscription"],
        language=row["language"],
        last_password_reset=_dt(row["last_password_reset"]),
        subscribed_at=_dt(row["subscribed_at"]),
        payment_id=row["payment_id"],
        created_at=_dt(row["created_at"]),
    )


def _row_to_post(row: aiosqlite.Row) -> Post:
    return Post(
        id=row["id"],
        email=row["email"],
        post=row["post"],
        photo=row["photo"],
        audio=row["audio"],
        username=row["username"],
        name=row["name"],
        profile_photo=row["profile_photo"],
        created_at=_dt(row["created_at"]),
    )


def _row_to_verification(row: aiosqlite.Row) -> VerificationRecord:
    return VerificationRecord(
        email=row["email"],
        purpose=VerificationPurpose(row["purpose"]),
        code=row["code"],
        payload=json.loads(row["payload"]),
        created_at=_dt(row["created_at"]),
    )


def _to_column(value: Any) -> Any:
    return _iso(value) if isinstance(value, datetime) else value


class Database:
    """Owns the aiosqlite connection; one instance per application."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the database and create tables if they don't exist."""
        db_path = Path(self._path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(str(db_path))
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.executescript(_SCHEMA)
        await self._conn.commit()
        logger.info("Database initialized at %s", db_path)

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("Database connection closed")

    @property
    def conn(self) -> aiosqlite.Connection:
        assert self._conn is not None, "Database not initialized — call connect() first"
        return self._conn

    # ══════════════════════════════════════════════════════════════════════
    #                         USERS
    # ══════════════════════════════════════════════════════════════════════

    async def create_user(
        self,
        email: str,
        *,
        created_at: datetime,
        username: str | None = None,
        name: str | None = None,
        phone: str | None = None,
        profile_photo: str | None = None,
    ) -> User:
        """Insert a new user.  Raises aiosqlite.IntegrityError on duplicates."""
        await self.conn.execute(
            """
            INSERT INTO users (email, username, name, phone, profile_photo, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (email, username, name, phone, profile_photo, _iso(created_at)),
        )
        await self.conn.commit()
        return await self.get_user(email)  # type: ignore[return-value]

    async def get_user(self, email: str) -> User | None:
        async with self.conn.execute(
            "SELECT * FROM users WHERE email = ?", (email,)
        ) as cur:
            row = await cur.fetchone()
        return _row_to_user(row) if row else None

    async def get_user_by_username(self, username: str) -> User | None:
        async with self.conn.execute(
            "SELECT * FROM users WHERE username = ?", (username,)
        ) as cur:
            row = await cur.fetchone()
        return _row_to_user(row) if row else None

    async def find_user_by_identifier(self, identifier: str) -> User | None:
        """Exact match of *identifier* against email or phone."""
        async with self.conn.execute(
            "SELECT * FROM users WHERE email = ? OR phone = ? LIMIT 1",
            (identifier, identifier),
        ) as cur:
            row = await cur.fetchone()
        return _row_to_user(row) if row else None

    async def list_users(self) -> list[User]:
        async with self.conn.execute("SELECT * FROM users ORDER BY created_at") as cur:
            rows = await cur.fetchall()
        return [_row_to_user(r) for r in rows]

    async def update_user(
        self,
        email: str,
        fields: dict[str, Any],
        *,
        upsert: bool = False,
        created_at: datetime | None = None,
    ) -> User | None:
        """
        Set *fields* on the user document.

        With ``upsert=True`` a missing user is created first, mirroring a
        document store's ``updateOne(..., {upsert: true})``.
        """
        unknown = set(fields) - USER_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)}")

        if upsert and await self.get_user(email) is None:
            await self.conn.execute(
                "INSERT INTO users (email, created_at) VALUES (?, ?)",
                (email, _iso(created_at or datetime.now(timezone.utc))),
            )

        if fields:
            assignments = ", ".join(f"{name} = ?" for name in fields)
            params = [_to_column(v) for v in fields.values()]
            await self.conn.execute(
                f"UPDATE users SET {assignments} WHERE email = ?",
                (*params, email),
            )
        await self.conn.commit()
        return await self.get_user(email)

    # ══════════════════════════════════════════════════════════════════════
    #                         POSTS
    # ══════════════════════════════════════════════════════════════════════

    async def insert_post(
        self,
        email: str,
        *,
        created_at: datetime,
        post: str = "",
        photo: str | None = None,
        audio: str | None = None,
        username: str | None = None,
        name: str | None = None,
        profile_photo: str | None = None,
    ) -> Post:
        post_id = str(uuid4())
        await self.conn.execute(
            """
            INSERT INTO posts
                (id, email, post, photo, audio, username, name, profile_photo, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                post_id, email, post, photo, audio,
                username, name, profile_photo, _iso(created_at),
            ),
        )
        await self.conn.commit()
        return Post(
            id=post_id,
            email=email,
            post=post,
            photo=photo,
            audio=audio,
            username=username,
            name=name,
            profile_photo=profile_photo,
            created_at=created_at,
        )

    async def list_posts(self) -> list[Post]:
        """All posts, newest first."""
        async with self.conn.execute(
            "SELECT * FROM posts ORDER BY created_at DESC"
        ) as cur:
            rows = await cur.fetchall()
        return [_row_to_post(r) for r in rows]

    async def list_posts_by_author(self, email: str) -> list[Post]:
        async with self.conn.execute(
            "SELECT * FROM posts WHERE email = ? ORDER BY created_at DESC", (email,)
        ) as cur:
            rows = await cur.fetchall()
        return [_row_to_post(r) for r in rows]

    async def search_posts(self, query: str, limit: int = 3) -> list[Post]:
        """
        Posts whose body contains *query*, oldest first.

        Matching is a literal substring test, case-insensitive for ASCII
        (SQLite LIKE); ``%`` and ``_`` in *query* match only themselves.
        """
        escaped = (
            query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        )
        async with self.conn.execute(
            "SELECT * FROM posts WHERE post LIKE ? ESCAPE '\\' "
            "ORDER BY created_at LIMIT ?",
            (f"%{escaped}%", limit),
        ) as cur:
            rows = await cur.fetchall()
        return [_row_to_post(r) for r in rows]

    async def count_posts_since(self, email: str, since: datetime) -> int:
        """Number of posts by *email* created at or after *since*."""
        async with self.conn.execute(
            "SELECT COUNT(*) FROM posts WHERE email = ? AND created_at >= ?",
            (email, _iso(since)),
        ) as cur:
            row = await cur.fetchone()
        return int(row[0])

    # ══════════════════════════════════════════════════════════════════════
    #                     VERIFICATION RECORDS
    # ══════════════════════════════════════════════════════════════════════

    async def upsert_verification(self, record: VerificationRecord) -> None:
        """Replace-or-create the single record for (email, purpose)."""
        await self.conn.execute(
            """
            INSERT INTO verification_records (email, purpose, code, payload, created_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (email, purpose) DO UPDATE SET
                code = excluded.code,
                payload = excluded.payload,
                created_at = excluded.created_at
            """,
            (
                record.email,
                record.purpose.value,
                record.code,
                json.dumps(record.payload),
                _iso(record.created_at),
            ),
        )
        await self.conn.commit()

    async def get_verification(
        self, email: str, purpose: VerificationPurpose
    ) -> VerificationRecord | None:
        async with self.conn.execute(
            "SELECT * FROM verification_records WHERE email = ? AND purpose = ?",
            (email, purpose.value),
        ) as cur:
            row = await cur.fetchone()
        return _row_to_verification(row) if row else None

    async def delete_verification(self, email: str, purpose: VerificationPurpose) -> bool:
        """Delete a record. Returns True if a row was actually deleted."""
        cur = await self.conn.execute(
            "DELETE FROM verification_records WHERE email = ? AND purpose = ?",
            (email, purpose.value),
        )
        await self.conn.commit()
        return cur.rowcount > 0

    async def delete_verifications_older_than(self, cutoff: datetime) -> int:
        """Evict records created before *cutoff*; returns the number removed."""
        cur = await self.conn.execute(
            "DELETE FROM verification_records WHERE created_at < ?",
            (_iso(cutoff),),
        )
        await self.conn.commit()
        return cur.rowcount
