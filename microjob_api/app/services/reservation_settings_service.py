"""
Service layer for the reservation settings singleton.

The ``reservation_settings`` table holds at most one row, keyed by
``SETTINGS_ID``.  Reading falls back to the built‑in defaults
(disabled, 1 hour, 5 concurrent reservations) when the row has not
been created yet.  Database errors are not masked: they propagate to
the caller on both the read and the write path.
"""

import logging
import sqlite3

from microjob_api.app.core.db import parse_timestamp, to_timestamp, transaction, utcnow
from microjob_api.app.schemas.reservation import ReservationSettings, ReservationSettingsUpdate


SETTINGS_ID = "default"

logger = logging.getLogger(__name__)


class ReservationSettingsService:
    """Service for reading and updating reservation settings."""

    @classmethod
    async def get_settings(cls, conn: sqlite3.Connection) -> ReservationSettings:
        """Return the stored settings or the defaults when none exist."""
        row = conn.execute(
            "SELECT id, is_enabled, default_reservation_hours, max_concurrent_reservations, "
            "created_at, updated_at FROM reservation_settings WHERE id = ?",
            (SETTINGS_ID,),
        ).fetchone()
        if not row:
            logger.debug("No reservation settings stored, using defaults")
            return ReservationSettings()
        return cls._row_to_settings(row)

    @classmethod
    async def update_settings(
        cls, conn: sqlite3.Connection, update: ReservationSettingsUpdate
    ) -> ReservationSettings:
        """Upsert the singleton row.

        Fields left as ``None`` in ``update`` keep their current (or
        default) value.
        """
        current = await cls.get_settings(conn)
        merged = current.model_copy(update=update.model_dump(exclude_none=True))
        now = to_timestamp(utcnow())
        with transaction(conn) as cursor:
            cursor.execute(
                """
                INSERT INTO reservation_settings
                    (id, is_enabled, default_reservation_hours, max_concurrent_reservations, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    is_enabled = excluded.is_enabled,
                    default_reservation_hours = excluded.default_reservation_hours,
                    max_concurrent_reservations = excluded.max_concurrent_reservations,
                    updated_at = excluded.updated_at
                """,
                (
                    SETTINGS_ID,
                    int(merged.is_enabled),
                    merged.default_reservation_hours,
                    merged.max_concurrent_reservations,
                    now,
                    now,
                ),
            )
        logger.info(
            "Reservation settings updated: enabled=%s hours=%s max_concurrent=%s",
            merged.is_enabled,
            merged.default_reservation_hours,
            merged.max_concurrent_reservations,
        )
        return await cls.get_settings(conn)

    @staticmethod
    def _row_to_settings(row: sqlite3.Row) -> ReservationSettings:
        return ReservationSettings(
            id=row["id"],
            is_enabled=bool(row["is_enabled"]),
            default_reservation_hours=row["default_reservation_hours"],
            max_concurrent_reservations=row["max_concurrent_reservations"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )
