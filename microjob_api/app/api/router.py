"""
Top‑level API router.

This router aggregates domain‑specific routers under a unified
prefix.  When new domains are introduced, include their routers here.
"""

from fastapi import APIRouter

from .endpoints import (
    admin,
    auth,
    cron,
    favorites,
    jobs,
    referrals,
    reservations,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
router.include_router(reservations.router, prefix="/reservations", tags=["reservations"])
router.include_router(favorites.router, prefix="/favorites", tags=["favorites"])
router.include_router(referrals.router, prefix="/referrals", tags=["referrals"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
# Called by the scheduler, authenticated with CRON_SECRET instead of a user token.
router.include_router(cron.router, prefix="/cron", tags=["cron"])
