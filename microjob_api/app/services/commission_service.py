"""
Service layer for admin commission (fee) settings.

One row per ``fee_type`` in ``admin_fee_settings``.  Updates are
upserts so an administrator can configure a new fee type directly.
"""

import logging
import sqlite3
from typing import List

from microjob_api.app.core.db import parse_timestamp, to_timestamp, utcnow
from microjob_api.app.schemas.commission import FeeSettingsRead, FeeSettingsValues


class CommissionService:
    """Service for listing and updating fee settings."""

    @classmethod
    async def list_fee_settings(cls, conn: sqlite3.Connection) -> List[FeeSettingsRead]:
        rows = conn.execute(
            "SELECT fee_type, fee_percentage, fee_fixed, minimum_fee, maximum_fee, is_active, updated_at "
            "FROM admin_fee_settings ORDER BY fee_type"
        ).fetchall()
        return [cls._row_to_fee_settings(row) for row in rows]

    @classmethod
    async def upsert_fee_settings(
        cls, conn: sqlite3.Connection, fee_type: str, values: FeeSettingsValues
    ) -> FeeSettingsRead:
        """Insert or replace the settings of ``fee_type``."""
        logger = logging.getLogger(__name__)
        conn.execute(
            """
            INSERT INTO admin_fee_settings
                (fee_type, fee_percentage, fee_fixed, minimum_fee, maximum_fee, is_active, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(fee_type) DO UPDATE SET
                fee_percentage = excluded.fee_percentage,
                fee_fixed = excluded.fee_fixed,
                minimum_fee = excluded.minimum_fee,
                maximum_fee = excluded.maximum_fee,
                is_active = excluded.is_active,
                updated_at = excluded.updated_at
            """,
            (
                fee_type,
                values.fee_percentage,
                values.fee_fixed,
                values.minimum_fee,
                values.maximum_fee,
                int(values.is_active),
                to_timestamp(utcnow()),
            ),
        )
        conn.commit()
        logger.info("Fee settings for %s updated", fee_type)
        row = conn.execute(
            "SELECT fee_type, fee_percentage, fee_fixed, minimum_fee, maximum_fee, is_active, updated_at "
            "FROM admin_fee_settings WHERE fee_type = ?",
            (fee_type,),
        ).fetchone()
        return cls._row_to_fee_settings(row)

    @staticmethod
    def _row_to_fee_settings(row: sqlite3.Row) -> FeeSettingsRead:
        return FeeSettingsRead(
            fee_type=row["fee_type"],
            fee_percentage=row["fee_percentage"],
            fee_fixed=row["fee_fixed"],
            minimum_fee=row["minimum_fee"],
            maximum_fee=row["maximum_fee"],
            is_active=bool(row["is_active"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )
