"""
Business logic for microjobs.

Posting jobs happens elsewhere; this service lists and reads jobs and
lets an owner change how many workers a job needs.
"""

import logging
import sqlite3
from typing import List, Optional

from microjob_api.app.core.db import parse_timestamp, to_timestamp, utcnow
from microjob_api.app.core.errors import NotFoundError, PermissionDeniedError
from microjob_api.app.schemas.job import JobRead


_JOB_COLUMNS = (
    "j.id, j.title, j.description, j.budget_min, j.budget_max, j.location, j.is_remote, "
    "j.workers_needed, j.category_id, c.name AS category_name, j.user_id, j.status, "
    "j.is_reserved, j.reserved_by, j.reserved_until, j.created_at, j.updated_at"
)


class JobService:
    """Service for reading jobs and adjusting their worker count."""

    @classmethod
    async def list_jobs(
        cls,
        conn: sqlite3.Connection,
        category_id: Optional[int] = None,
        is_remote: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[JobRead]:
        """List jobs, newest first, optionally filtered by category and remote flag."""
        query = f"SELECT {_JOB_COLUMNS} FROM microjobs j LEFT JOIN categories c ON c.id = j.category_id"
        conditions: list = []
        params: list = []
        if category_id is not None:
            conditions.append("j.category_id = ?")
            params.append(category_id)
        if is_remote is not None:
            conditions.append("j.is_remote = ?")
            params.append(int(is_remote))
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY j.created_at DESC, j.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        rows = conn.execute(query, tuple(params)).fetchall()
        return [cls._row_to_job(row) for row in rows]

    @classmethod
    async def get_job(cls, conn: sqlite3.Connection, job_id: int) -> JobRead:
        row = conn.execute(
            f"SELECT {_JOB_COLUMNS} FROM microjobs j LEFT JOIN categories c ON c.id = j.category_id WHERE j.id = ?",
            (job_id,),
        ).fetchone()
        if not row:
            raise NotFoundError(f"Job {job_id} not found")
        return cls._row_to_job(row)

    @classmethod
    async def update_worker_count(
        cls, conn: sqlite3.Connection, job_id: int, new_worker_count: int, user_id: int
    ) -> JobRead:
        """Change the number of workers a job needs.

        Only the job's owner may do this.  The count must be positive.
        """
        if new_worker_count < 1:
            raise ValueError("Worker count must be at least 1")
        job = await cls.get_job(conn, job_id)
        if job.user_id != user_id:
            raise PermissionDeniedError("Only the job owner can change the worker count")
        conn.execute(
            "UPDATE microjobs SET workers_needed = ?, updated_at = ? WHERE id = ?",
            (new_worker_count, to_timestamp(utcnow()), job_id),
        )
        conn.commit()
        logging.getLogger(__name__).info(
            "Job %s worker count changed from %s to %s", job_id, job.workers_needed, new_worker_count
        )
        return await cls.get_job(conn, job_id)

    @staticmethod
    def _row_to_job(row: sqlite3.Row) -> JobRead:
        return JobRead(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            budget_min=row["budget_min"],
            budget_max=row["budget_max"],
            location=row["location"],
            is_remote=bool(row["is_remote"]),
            workers_needed=row["workers_needed"],
            category_id=row["category_id"],
            category_name=row["category_name"],
            user_id=row["user_id"],
            status=row["status"],
            is_reserved=bool(row["is_reserved"]),
            reserved_by=row["reserved_by"],
            reserved_until=parse_timestamp(row["reserved_until"]),
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )
