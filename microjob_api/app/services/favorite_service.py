"""
Business logic for job favorites.

Users bookmark jobs they are interested in.  Adding the same job twice
is a conflict; removing a job that is not bookmarked is not an error.
"""

import logging
import sqlite3
from typing import List

from microjob_api.app.core.db import parse_timestamp, to_timestamp, utcnow
from microjob_api.app.core.errors import ConflictError, NotFoundError
from microjob_api.app.schemas.favorite import FavoriteRead


class FavoriteService:
    """Service for managing a user's favorite jobs."""

    @classmethod
    async def list_favorites(cls, conn: sqlite3.Connection, user_id: int) -> List[FavoriteRead]:
        """Return the user's favorites with a job summary, newest first."""
        rows = conn.execute(
            """
            SELECT f.id, f.user_id, f.job_id, f.created_at,
                   j.title AS job_title, j.budget_min, j.budget_max, c.name AS category_name
            FROM user_favorites f
            JOIN microjobs j ON j.id = f.job_id
            LEFT JOIN categories c ON c.id = j.category_id
            WHERE f.user_id = ?
            ORDER BY f.created_at DESC, f.id DESC
            """,
            (user_id,),
        ).fetchall()
        return [cls._row_to_favorite(row) for row in rows]

    @classmethod
    async def add_favorite(cls, conn: sqlite3.Connection, user_id: int, job_id: int) -> FavoriteRead:
        """Bookmark a job.

        Raises ``NotFoundError`` if the job does not exist and
        ``ConflictError`` if it is already a favorite.  The
        ``UNIQUE(user_id, job_id)`` constraint guarantees that a
        concurrent duplicate cannot slip through either.
        """
        logger = logging.getLogger(__name__)
        job = conn.execute("SELECT id FROM microjobs WHERE id = ?", (job_id,)).fetchone()
        if not job:
            raise NotFoundError(f"Job {job_id} not found")
        existing = conn.execute(
            "SELECT id FROM user_favorites WHERE user_id = ? AND job_id = ?",
            (user_id, job_id),
        ).fetchone()
        if existing:
            raise ConflictError("Job is already in favorites")
        try:
            cursor = conn.execute(
                "INSERT INTO user_favorites (user_id, job_id, created_at) VALUES (?, ?, ?)",
                (user_id, job_id, to_timestamp(utcnow())),
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise ConflictError("Job is already in favorites") from exc
        logger.info("User %s added job %s to favorites", user_id, job_id)
        row = conn.execute(
            """
            SELECT f.id, f.user_id, f.job_id, f.created_at,
                   j.title AS job_title, j.budget_min, j.budget_max, c.name AS category_name
            FROM user_favorites f
            JOIN microjobs j ON j.id = f.job_id
            LEFT JOIN categories c ON c.id = j.category_id
            WHERE f.id = ?
            """,
            (cursor.lastrowid,),
        ).fetchone()
        return cls._row_to_favorite(row)

    @classmethod
    async def remove_favorite(cls, conn: sqlite3.Connection, user_id: int, job_id: int) -> bool:
        """Remove a bookmark.  Returns whether a row was deleted."""
        cursor = conn.execute(
            "DELETE FROM user_favorites WHERE user_id = ? AND job_id = ?",
            (user_id, job_id),
        )
        conn.commit()
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_favorite(row: sqlite3.Row) -> FavoriteRead:
        return FavoriteRead(
            id=row["id"],
            user_id=row["user_id"],
            job_id=row["job_id"],
            created_at=parse_timestamp(row["created_at"]),
            job_title=row["job_title"],
            budget_min=row["budget_min"],
            budget_max=row["budget_max"],
            category_name=row["category_name"],
        )
