"""
Business logic for users.

Registration hashes the password, promotes the first account of a
fresh installation to ``admin`` and records the referral when the
user signed up with somebody's referral code.
"""

import logging
import sqlite3
from typing import Optional

from microjob_api.app.core.db import to_timestamp, transaction, utcnow
from microjob_api.app.core.errors import ConflictError
from microjob_api.app.core.security import hash_password, verify_password
from microjob_api.app.schemas.user import UserCreate, UserRead
from microjob_api.app.services.referral_service import ReferralService


class UserService:
    """Service for registering and authenticating users."""

    @classmethod
    async def create_user(cls, conn: sqlite3.Connection, data: UserCreate) -> UserRead:
        """Create a user.

        Raises ``ConflictError`` if the e‑mail is taken and
        ``ValueError`` for an unknown referral code.
        """
        logger = logging.getLogger(__name__)
        email = data.email.strip().lower()
        if conn.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone():
            raise ConflictError("A user with this email already exists")

        referrer_id = None
        if data.referral_code:
            referrer_id = await ReferralService.find_referrer(conn, data.referral_code)
            if referrer_id is None:
                raise ValueError("Invalid referral code")

        row = conn.execute("SELECT COUNT(*) AS count FROM users").fetchone()
        user_type = "admin" if row["count"] == 0 else data.user_type
        now = to_timestamp(utcnow())
        try:
            with transaction(conn) as cursor:
                cursor.execute(
                    """
                    INSERT INTO users (email, first_name, last_name, password, user_type, location, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        email,
                        data.first_name,
                        data.last_name,
                        hash_password(data.password),
                        user_type,
                        data.location,
                        now,
                        now,
                    ),
                )
                user_id = cursor.lastrowid
                if referrer_id is not None:
                    await ReferralService.record_referral(conn, referrer_id, user_id)
        except sqlite3.IntegrityError as exc:
            raise ConflictError("A user with this email already exists") from exc
        logger.info("Registered %s user %s", user_type, user_id)
        return UserRead(
            id=user_id,
            email=email,
            first_name=data.first_name,
            last_name=data.last_name,
            user_type=user_type,
            location=data.location,
            disabled=False,
        )

    @classmethod
    async def authenticate(cls, conn: sqlite3.Connection, email: str, password: str) -> Optional[UserRead]:
        """Return the user if the credentials match an enabled account."""
        row = conn.execute(
            "SELECT id, email, first_name, last_name, password, user_type, location, disabled "
            "FROM users WHERE email = ?",
            (email.strip().lower(),),
        ).fetchone()
        if not row or row["disabled"]:
            return None
        if not verify_password(password, row["password"]):
            return None
        return UserRead(
            id=row["id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            user_type=row["user_type"],
            location=row["location"],
            disabled=False,
        )
