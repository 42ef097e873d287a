"""
Favorites endpoints.

List, add and remove the caller's favorite jobs.  The job is passed
in the JSON body as ``{"job_id": ...}`` for both POST and DELETE.
"""

import sqlite3
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from microjob_api.app.core.db import get_db
from microjob_api.app.core.errors import ConflictError, NotFoundError
from microjob_api.app.core.security import get_current_user
from microjob_api.app.schemas.favorite import FavoriteRead, FavoriteRemoved
from microjob_api.app.schemas.reservation import JobReference
from microjob_api.app.services.favorite_service import FavoriteService


router = APIRouter()


def _require_job_id(body: Optional[JobReference]) -> int:
    if body is None or not body.job_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")
    return body.job_id


@router.get("", response_model=List[FavoriteRead])
async def list_favorites(
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> List[FavoriteRead]:
    return await FavoriteService.list_favorites(conn, current_user["user_id"])


@router.post("", response_model=FavoriteRead, status_code=status.HTTP_201_CREATED)
async def add_favorite(
    body: Optional[JobReference] = None,
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> FavoriteRead:
    """Add a job to the caller's favorites.

    404 if the job does not exist, 409 if it is already a favorite.
    """
    job_id = _require_job_id(body)
    try:
        return await FavoriteService.add_favorite(conn, current_user["user_id"], job_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.delete("", response_model=FavoriteRemoved)
async def remove_favorite(
    body: Optional[JobReference] = None,
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> FavoriteRemoved:
    """Remove a job from the caller's favorites.

    Succeeds whether or not the job was a favorite; ``removed`` tells
    which.
    """
    job_id = _require_job_id(body)
    removed = await FavoriteService.remove_favorite(conn, current_user["user_id"], job_id)
    return FavoriteRemoved(removed=removed)
