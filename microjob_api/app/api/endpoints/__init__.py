"""
Endpoint subpackage.

Each module in this package defines an APIRouter for a specific
domain (jobs, favorites, referrals, reservations, admin, cron).
"""
