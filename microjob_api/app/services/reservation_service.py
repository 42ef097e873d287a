"""
Business logic for time‑boxed job reservations.

A worker may reserve an open job for a limited time (configured in
``reservation_settings``).  While reserved, other workers cannot
claim it.  The reservation is recorded twice: on the job itself
(``microjobs.is_reserved``/``reserved_by``/``reserved_until``) and as
a row of ``job_reservations``.  Every write that touches both sides
runs inside one transaction so the two never disagree.

Reservations lapse lazily, when somebody looks at the job after its
deadline (``check_status``), and eagerly, through the periodic sweep
(``expire_overdue``) triggered by the cron endpoint.
"""

import logging
import sqlite3
from datetime import datetime, timedelta
from typing import List, Optional

from microjob_api.app.core.db import as_utc, parse_timestamp, to_timestamp, transaction, utcnow
from microjob_api.app.core.errors import ConflictError, NotFoundError
from microjob_api.app.schemas.reservation import (
    NotReserved,
    Reserved,
    ReservationRead,
    ReservationStatus,
    Unavailable,
    UserReservationRead,
)
from microjob_api.app.services.reservation_settings_service import ReservationSettingsService


logger = logging.getLogger(__name__)


def format_time_left(milliseconds: int) -> str:
    """Render a remaining duration as ``"1h 2m 3s"``, ``"2m 3s"`` or ``"3s"``.

    Non‑positive durations render as ``"Expired"``.
    """
    if milliseconds <= 0:
        return "Expired"
    hours, remainder = divmod(milliseconds, 60 * 60 * 1000)
    minutes, remainder = divmod(remainder, 60 * 1000)
    seconds = remainder // 1000
    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def _milliseconds_between(start: datetime, end: datetime) -> int:
    return int((end - start) / timedelta(milliseconds=1))


class ReservationService:
    """Service for reserving jobs and expiring reservations."""

    @classmethod
    async def check_status(
        cls, conn: sqlite3.Connection, job_id: int, now: Optional[datetime] = None
    ) -> ReservationStatus:
        """Report whether a job is currently reserved.

        An unknown job, an unreserved job or a job without deadline is
        ``NotReserved``.  A job whose deadline has passed is expired on
        the spot (exactly one call to ``expire_reservation``) and
        reported as ``NotReserved(expired=True)``.  Otherwise the
        result is ``Reserved`` with the remaining time.

        Database failures are reported as ``Unavailable`` rather than
        raised, leaving the caller to decide whether to fail open.
        """
        try:
            return await cls._read_status(conn, job_id, as_utc(now or utcnow()))
        except sqlite3.Error as exc:
            logger.error("Could not check reservation status of job %s: %s", job_id, exc, exc_info=True)
            return Unavailable()

    @classmethod
    async def _read_status(cls, conn: sqlite3.Connection, job_id: int, now: datetime) -> ReservationStatus:
        row = conn.execute(
            "SELECT is_reserved, reserved_by, reserved_until FROM microjobs WHERE id = ?",
            (job_id,),
        ).fetchone()
        if not row or not row["is_reserved"] or not row["reserved_until"]:
            return NotReserved()

        reserved_until = parse_timestamp(row["reserved_until"])
        time_left_ms = _milliseconds_between(now, reserved_until)
        if time_left_ms <= 0:
            await cls.expire_reservation(conn, job_id, now=now)
            return NotReserved(expired=True)

        return Reserved(
            time_left_ms=time_left_ms,
            time_left_display=format_time_left(time_left_ms),
            reserved_by=row["reserved_by"],
            reserved_until=reserved_until,
        )

    @classmethod
    async def expire_reservation(
        cls, conn: sqlite3.Connection, job_id: int, now: Optional[datetime] = None
    ) -> bool:
        """Release a job and mark its active reservation ``expired``.

        Both updates are committed together or not at all; on a
        database error the transaction is rolled back and the error is
        raised.  Calling this on a job that is not reserved changes
        nothing and returns ``False``.
        """
        now_ts = to_timestamp(now or utcnow())
        with transaction(conn) as cursor:
            cursor.execute(
                """
                UPDATE microjobs
                SET is_reserved = 0, reserved_by = NULL, reserved_until = NULL, updated_at = ?
                WHERE id = ? AND (is_reserved = 1 OR reserved_by IS NOT NULL OR reserved_until IS NOT NULL)
                """,
                (now_ts, job_id),
            )
            job_released = cursor.rowcount > 0
            cursor.execute(
                "UPDATE job_reservations SET status = 'expired', updated_at = ? "
                "WHERE job_id = ? AND status = 'active'",
                (now_ts, job_id),
            )
            reservations_expired = cursor.rowcount
        changed = job_released or reservations_expired > 0
        if changed:
            logger.info("Reservation on job %s expired", job_id)
        return changed

    @classmethod
    async def reserve_job(
        cls,
        conn: sqlite3.Connection,
        job_id: int,
        user_id: int,
        now: Optional[datetime] = None,
    ) -> ReservationRead:
        """Reserve a job for ``user_id``.

        The reservation lasts ``default_reservation_hours``.  Raises
        ``ValueError`` when reservations are disabled, the job is not
        open or belongs to the caller, ``NotFoundError`` for an unknown
        job and ``ConflictError`` when the job is already reserved or
        the caller already holds ``max_concurrent_reservations``
        unexpired reservations.
        """
        now = as_utc(now or utcnow())
        settings = await ReservationSettingsService.get_settings(conn)
        if not settings.is_enabled:
            raise ValueError("Job reservations are currently disabled")

        job = conn.execute(
            "SELECT id, user_id, status, is_reserved, reserved_by FROM microjobs WHERE id = ?",
            (job_id,),
        ).fetchone()
        if not job:
            raise NotFoundError(f"Job {job_id} not found")
        if job["user_id"] == user_id:
            raise ValueError("You cannot reserve your own job")
        if job["status"] != "open":
            raise ValueError("Job is not open for reservations")

        # Lapses an overdue reservation before deciding.
        status = await cls._read_status(conn, job_id, now)
        if isinstance(status, Reserved):
            if status.reserved_by == user_id:
                raise ConflictError("You have already reserved this job")
            raise ConflictError("Job is already reserved")
        if not status.expired and (job["is_reserved"] or job["reserved_by"] is not None):
            # Flagged without a deadline: nobody holds it, so clear the flag.
            await cls.expire_reservation(conn, job_id, now=now)

        now_ts = to_timestamp(now)
        active_row = conn.execute(
            "SELECT COUNT(*) AS count FROM job_reservations "
            "WHERE user_id = ? AND status = 'active' AND expires_at > ?",
            (user_id, now_ts),
        ).fetchone()
        if active_row["count"] >= settings.max_concurrent_reservations:
            raise ConflictError(
                f"You can hold at most {settings.max_concurrent_reservations} active reservations"
            )

        expires_at = now + timedelta(hours=settings.default_reservation_hours)
        expires_ts = to_timestamp(expires_at)
        with transaction(conn) as cursor:
            cursor.execute(
                """
                UPDATE microjobs
                SET is_reserved = 1, reserved_by = ?, reserved_until = ?, updated_at = ?
                WHERE id = ? AND is_reserved = 0
                """,
                (user_id, expires_ts, now_ts, job_id),
            )
            if cursor.rowcount != 1:
                # Another request reserved the job since we looked.
                raise ConflictError("Job is already reserved")
            # The job was free, so any row still marked active is stale.
            cursor.execute(
                "UPDATE job_reservations SET status = 'expired', updated_at = ? "
                "WHERE job_id = ? AND status = 'active'",
                (now_ts, job_id),
            )
            cursor.execute(
                """
                INSERT INTO job_reservations (job_id, user_id, status, reserved_at, expires_at, created_at, updated_at)
                VALUES (?, ?, 'active', ?, ?, ?, ?)
                """,
                (job_id, user_id, now_ts, expires_ts, now_ts, now_ts),
            )
            reservation_id = cursor.lastrowid
        logger.info("User %s reserved job %s until %s", user_id, job_id, expires_ts)
        return ReservationRead(
            id=reservation_id,
            job_id=job_id,
            user_id=user_id,
            status="active",
            reserved_at=now,
            expires_at=expires_at,
        )

    @classmethod
    async def cancel_reservation(
        cls, conn: sqlite3.Connection, job_id: int, user_id: int, now: Optional[datetime] = None
    ) -> None:
        """Release a job reserved by ``user_id`` before its deadline.

        Raises ``NotFoundError`` if the caller holds no active
        reservation on the job.
        """
        now_ts = to_timestamp(now or utcnow())
        with transaction(conn) as cursor:
            cursor.execute(
                "UPDATE job_reservations SET status = 'cancelled', updated_at = ? "
                "WHERE job_id = ? AND user_id = ? AND status = 'active'",
                (now_ts, job_id, user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("No active reservation found for this job")
            cursor.execute(
                """
                UPDATE microjobs
                SET is_reserved = 0, reserved_by = NULL, reserved_until = NULL, updated_at = ?
                WHERE id = ? AND reserved_by = ?
                """,
                (now_ts, job_id, user_id),
            )
        logger.info("User %s cancelled reservation on job %s", user_id, job_id)

    @classmethod
    async def list_user_reservations(
        cls, conn: sqlite3.Connection, user_id: int, now: Optional[datetime] = None
    ) -> List[UserReservationRead]:
        """Return the user's active reservations, newest first."""
        now = as_utc(now or utcnow())
        rows = conn.execute(
            """
            SELECT r.id, r.job_id, r.user_id, r.status, r.reserved_at, r.expires_at,
                   j.title AS job_title, j.budget_max, c.name AS category_name
            FROM job_reservations r
            JOIN microjobs j ON j.id = r.job_id
            LEFT JOIN categories c ON c.id = j.category_id
            WHERE r.user_id = ? AND r.status = 'active'
            ORDER BY r.reserved_at DESC, r.id DESC
            """,
            (user_id,),
        ).fetchall()
        reservations: List[UserReservationRead] = []
        for row in rows:
            expires_at = parse_timestamp(row["expires_at"])
            time_left_ms = max(_milliseconds_between(now, expires_at), 0)
            reservations.append(
                UserReservationRead(
                    id=row["id"],
                    job_id=row["job_id"],
                    user_id=row["user_id"],
                    status=row["status"],
                    reserved_at=parse_timestamp(row["reserved_at"]),
                    expires_at=expires_at,
                    job_title=row["job_title"],
                    budget_max=row["budget_max"],
                    category_name=row["category_name"],
                    time_left_ms=time_left_ms,
                    time_left_display=format_time_left(time_left_ms),
                )
            )
        return reservations

    @classmethod
    async def expire_overdue(cls, conn: sqlite3.Connection, now: Optional[datetime] = None) -> int:
        """Expire every reservation whose deadline has passed.

        Jobs past their deadline, or flagged reserved without one, are
        released one transaction per job, then reservation rows still
        ``active`` past ``expires_at`` are closed as well.  Returns the
        number of reservations expired.
        """
        now = as_utc(now or utcnow())
        now_ts = to_timestamp(now)
        rows = conn.execute(
            "SELECT id FROM microjobs WHERE is_reserved = 1 AND (reserved_until IS NULL OR reserved_until <= ?)",
            (now_ts,),
        ).fetchall()
        expired = 0
        for row in rows:
            if await cls.expire_reservation(conn, row["id"], now=now):
                expired += 1

        with transaction(conn) as cursor:
            cursor.execute(
                "UPDATE job_reservations SET status = 'expired', updated_at = ? "
                "WHERE status = 'active' AND expires_at <= ?",
                (now_ts, now_ts),
            )
            dangling = cursor.rowcount
        if dangling:
            logger.warning("Closed %s dangling active reservation(s)", dangling)
        expired += dangling
        logger.info("Reservation sweep expired %s reservation(s)", expired)
        return expired
