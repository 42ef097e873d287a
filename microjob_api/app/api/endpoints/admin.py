"""
Administration endpoints.

Commission (fee) settings and reservation settings.  Every route
requires an ``admin`` user; other callers get 401.
"""

import sqlite3

from fastapi import APIRouter, Depends, HTTPException, status

from microjob_api.app.core.db import get_db
from microjob_api.app.core.security import require_user_types
from microjob_api.app.schemas.commission import FeeSettingsList, FeeSettingsUpdate, FeeSettingsUpdated
from microjob_api.app.schemas.reservation import ReservationSettings, ReservationSettingsUpdate
from microjob_api.app.services.commission_service import CommissionService
from microjob_api.app.services.reservation_settings_service import ReservationSettingsService


router = APIRouter()

require_admin = require_user_types("admin")


@router.get("/commission", response_model=FeeSettingsList)
async def get_commission_settings(
    current_user: dict = Depends(require_admin),
    conn: sqlite3.Connection = Depends(get_db),
) -> FeeSettingsList:
    return FeeSettingsList(fee_settings=await CommissionService.list_fee_settings(conn))


@router.put("/commission", response_model=FeeSettingsUpdated)
async def update_commission_settings(
    body: FeeSettingsUpdate,
    current_user: dict = Depends(require_admin),
    conn: sqlite3.Connection = Depends(get_db),
) -> FeeSettingsUpdated:
    """Create or replace the settings of one fee type.

    The body must contain ``fee_type`` and ``settings``; otherwise 400.
    """
    if not body.fee_type or body.settings is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")
    data = await CommissionService.upsert_fee_settings(conn, body.fee_type, body.settings)
    return FeeSettingsUpdated(data=data)


@router.get("/reservation-settings", response_model=ReservationSettings)
async def get_reservation_settings(
    current_user: dict = Depends(require_admin),
    conn: sqlite3.Connection = Depends(get_db),
) -> ReservationSettings:
    return await ReservationSettingsService.get_settings(conn)


@router.post("/reservation-settings", response_model=ReservationSettings)
async def update_reservation_settings(
    body: ReservationSettingsUpdate,
    current_user: dict = Depends(require_admin),
    conn: sqlite3.Connection = Depends(get_db),
) -> ReservationSettings:
    return await ReservationSettingsService.update_settings(conn, body)
