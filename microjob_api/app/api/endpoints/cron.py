"""
Scheduler endpoints.

The external scheduler calls ``/cron/expire-reservations`` periodically
with ``Authorization: Bearer <CRON_SECRET>``.  No user token is
involved.
"""

import hmac
import logging
import sqlite3
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials

from microjob_api.app.core.config import settings
from microjob_api.app.core.db import get_db
from microjob_api.app.core.security import security
from microjob_api.app.services.reservation_service import ReservationService


router = APIRouter()


def verify_cron_secret(credentials: HTTPAuthorizationCredentials = Depends(security)) -> None:
    """Reject the request unless it carries the configured cron secret."""
    if not settings.cron_secret:
        logging.getLogger(__name__).warning("Cron request rejected: CRON_SECRET is not configured")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    if credentials is None or not hmac.compare_digest(
        credentials.credentials.encode("utf-8"), settings.cron_secret.encode("utf-8")
    ):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.api_route(
    "/expire-reservations",
    methods=["GET", "POST"],
    response_model=Dict[str, int],
    dependencies=[Depends(verify_cron_secret)],
)
async def expire_reservations(conn: sqlite3.Connection = Depends(get_db)) -> Dict[str, int]:
    expired = await ReservationService.expire_overdue(conn)
    return {"expired": expired}
