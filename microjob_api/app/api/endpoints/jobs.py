"""
Job endpoints.

Listing and reading jobs, changing a job's worker count, reserving a
job and checking a job's reservation status.
"""

import sqlite3
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from fastapi.responses import JSONResponse

from microjob_api.app.core.db import get_db
from microjob_api.app.core.errors import ConflictError, NotFoundError, PermissionDeniedError
from microjob_api.app.core.security import get_current_user
from microjob_api.app.schemas.job import JobRead, WorkerCountUpdate
from microjob_api.app.schemas.reservation import (
    JobReference,
    ReservationRead,
    ReservationStatus,
    Unavailable,
)
from microjob_api.app.services.job_service import JobService
from microjob_api.app.services.reservation_service import ReservationService


router = APIRouter()


def reservation_status_response(result: ReservationStatus) -> Any:
    """Return ``result`` as is, or a 503 response when it is ``Unavailable``."""
    if isinstance(result, Unavailable):
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=result.model_dump())
    return result


@router.get("", response_model=List[JobRead])
async def list_jobs(
    category_id: Optional[int] = None,
    is_remote: Optional[bool] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> List[JobRead]:
    return await JobService.list_jobs(conn, category_id=category_id, is_remote=is_remote, limit=limit, offset=offset)


@router.put("", response_model=Dict[str, Any])
async def update_job_workers(
    body: WorkerCountUpdate,
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> Dict[str, Any]:
    """Change how many workers a job needs (job owner only)."""
    if not body.job_id or not body.new_worker_count:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")
    try:
        job = await JobService.update_worker_count(conn, body.job_id, body.new_worker_count, current_user["user_id"])
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"success": True, "message": "Worker count updated", "job": job.model_dump(mode="json")}


@router.post("/reserve", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def reserve_job(
    body: JobReference,
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> ReservationRead:
    """Reserve a job for the caller.

    400 when reservations are disabled or the job cannot be reserved by
    the caller, 404 for an unknown job, 409 when the job is taken or the
    caller is at their reservation limit.
    """
    if not body.job_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")
    try:
        return await ReservationService.reserve_job(conn, body.job_id, current_user["user_id"])
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/{job_id}", response_model=JobRead)
async def get_job(
    job_id: int = Path(..., description="ID of the job"),
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> JobRead:
    try:
        return await JobService.get_job(conn, job_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/{job_id}/reservation", response_model=ReservationStatus)
async def get_job_reservation_status(
    job_id: int = Path(..., description="ID of the job"),
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    """Report the reservation status of a job.

    An overdue reservation is expired as a side effect.  When the
    status cannot be determined the response is 503.
    """
    result = await ReservationService.check_status(conn, job_id)
    return reservation_status_response(result)
