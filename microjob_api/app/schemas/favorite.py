"""
Pydantic models for job favorites.

A favorite links a user to a job they bookmarked.  Each (user, job)
pair exists at most once.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class FavoriteRead(BaseModel):
    id: int
    user_id: int
    job_id: int
    created_at: Optional[datetime] = None
    job_title: Optional[str] = None
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    category_name: Optional[str] = None


class FavoriteRemoved(BaseModel):
    success: bool = True
    # False when there was nothing to remove.
    removed: bool
