"""
Reservation endpoints.

Cancel one's own reservation, re‑check a job's reservation (expiring
it when overdue), sweep overdue reservations and list the caller's
active reservations.  Reserving a job lives under ``/jobs/reserve``.
"""

import sqlite3
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from microjob_api.app.api.endpoints.jobs import reservation_status_response
from microjob_api.app.core.db import get_db
from microjob_api.app.core.errors import NotFoundError
from microjob_api.app.core.security import get_current_user
from microjob_api.app.schemas.reservation import JobReference, ReservationStatus, UserReservationRead
from microjob_api.app.services.reservation_service import ReservationService


router = APIRouter()


@router.post("/cancel", response_model=Dict[str, bool])
async def cancel_reservation(
    body: JobReference,
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> Dict[str, bool]:
    if not body.job_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")
    try:
        await ReservationService.cancel_reservation(conn, body.job_id, current_user["user_id"])
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"success": True}


@router.post("/check-expiry", response_model=ReservationStatus)
async def check_reservation_expiry(
    body: JobReference,
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
):
    if not body.job_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")
    result = await ReservationService.check_status(conn, body.job_id)
    return reservation_status_response(result)


@router.api_route("/cleanup", methods=["GET", "POST"], response_model=Dict[str, int])
async def cleanup_reservations(
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> Dict[str, int]:
    """Expire every overdue reservation now instead of waiting for the cron run."""
    expired = await ReservationService.expire_overdue(conn)
    return {"expired": expired}


@router.get("/user", response_model=List[UserReservationRead])
async def list_user_reservations(
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> List[UserReservationRead]:
    return await ReservationService.list_user_reservations(conn, current_user["user_id"])
