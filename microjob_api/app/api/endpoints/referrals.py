"""
Referral endpoints.
"""

import sqlite3

from fastapi import APIRouter, Depends

from microjob_api.app.core.db import get_db
from microjob_api.app.core.security import get_current_user
from microjob_api.app.schemas.referral import ReferralCodeRead, ReferralOverview
from microjob_api.app.services.referral_service import ReferralService


router = APIRouter()


@router.get("", response_model=ReferralOverview)
async def get_referrals(
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> ReferralOverview:
    """Return the caller's referral code, counts and referred users."""
    return await ReferralService.get_overview(conn, current_user["user_id"])


@router.post("/generate-code", response_model=ReferralCodeRead)
async def generate_referral_code(
    current_user: dict = Depends(get_current_user),
    conn: sqlite3.Connection = Depends(get_db),
) -> ReferralCodeRead:
    code = await ReferralService.generate_code(conn, current_user["user_id"])
    return ReferralCodeRead(referral_code=code)
