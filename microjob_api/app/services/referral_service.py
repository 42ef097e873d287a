"""
Business logic for the referral programme.

Each user owns at most one referral code.  ``get_overview`` gathers
the caller's code, their referred users and simple counts;
``record_referral`` links a freshly registered user to the owner of
the code they signed up with.
"""

import logging
import secrets
import sqlite3
import string
from typing import Optional

from microjob_api.app.core.db import parse_timestamp, to_timestamp, utcnow
from microjob_api.app.schemas.referral import (
    ReferralOverview,
    ReferralStatistics,
    ReferredUser,
)


CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8


class ReferralService:
    """Service for referral codes and referred users."""

    @classmethod
    async def get_code(cls, conn: sqlite3.Connection, user_id: int) -> Optional[str]:
        row = conn.execute("SELECT code FROM referral_codes WHERE user_id = ?", (user_id,)).fetchone()
        return row["code"] if row else None

    @classmethod
    async def generate_code(cls, conn: sqlite3.Connection, user_id: int) -> str:
        """Return the user's referral code, creating one if needed."""
        existing = await cls.get_code(conn, user_id)
        if existing:
            return existing
        while True:
            code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
            try:
                conn.execute(
                    "INSERT INTO referral_codes (user_id, code, created_at) VALUES (?, ?, ?)",
                    (user_id, code, to_timestamp(utcnow())),
                )
                conn.commit()
            except sqlite3.IntegrityError:
                conn.rollback()
                # Either the code collided or a concurrent request created
                # a code for this user first.
                existing = await cls.get_code(conn, user_id)
                if existing:
                    return existing
                continue
            logging.getLogger(__name__).info("Generated referral code for user %s", user_id)
            return code

    @classmethod
    async def find_referrer(cls, conn: sqlite3.Connection, code: str) -> Optional[int]:
        """Return the id of the user owning ``code`` (case insensitive)."""
        row = conn.execute(
            "SELECT user_id FROM referral_codes WHERE code = ?",
            (code.strip().upper(),),
        ).fetchone()
        return row["user_id"] if row else None

    @classmethod
    async def record_referral(cls, conn: sqlite3.Connection, referrer_id: int, referred_id: int) -> None:
        """Insert a ``pending`` referral.  Does not commit."""
        conn.execute(
            "INSERT INTO referrals (referrer_id, referred_id, status, created_at) VALUES (?, ?, 'pending', ?)",
            (referrer_id, referred_id, to_timestamp(utcnow())),
        )

    @classmethod
    async def get_overview(cls, conn: sqlite3.Connection, user_id: int) -> ReferralOverview:
        rows = conn.execute(
            """
            SELECT r.id, r.status, r.created_at,
                   u.id AS referred_user_id, u.first_name, u.last_name, u.email,
                   u.location, u.created_at AS joined_at
            FROM referrals r
            JOIN users u ON u.id = r.referred_id
            WHERE r.referrer_id = ?
            ORDER BY r.created_at DESC, r.id DESC
            """,
            (user_id,),
        ).fetchall()

        referrals = []
        for row in rows:
            full_name = " ".join(part for part in (row["first_name"], row["last_name"]) if part)
            referrals.append(
                ReferredUser(
                    id=row["id"],
                    user_id=row["referred_user_id"],
                    full_name=full_name or row["email"],
                    email=row["email"],
                    country=row["location"] or "Not specified",
                    joining_date=parse_timestamp(row["joined_at"]),
                    status=row["status"],
                    type="VIP" if row["status"] == "completed" else "Regular",
                )
            )

        completed = sum(1 for r in referrals if r.status == "completed")
        pending = sum(1 for r in referrals if r.status == "pending")
        return ReferralOverview(
            referral_code=await cls.get_code(conn, user_id),
            statistics=ReferralStatistics(
                total=len(referrals),
                completed=completed,
                pending=pending,
                # Completed referrals are the VIP ones.
                vip=completed,
            ),
            referrals=referrals,
        )
