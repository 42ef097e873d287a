"""
Pydantic models for microjobs.

Jobs are posted by employers and picked up by workers.  Besides the
descriptive fields, every job carries its reservation state
(``is_reserved``, ``reserved_by``, ``reserved_until``), which is
maintained by the reservation service.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class JobRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    budget_min: Optional[float] = None
    budget_max: Optional[float] = None
    location: Optional[str] = None
    is_remote: bool = False
    workers_needed: int = 1
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    user_id: int
    status: str = "open"
    is_reserved: bool = False
    reserved_by: Optional[int] = None
    reserved_until: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class WorkerCountUpdate(BaseModel):
    """Body of ``PUT /api/jobs``.

    Both fields are optional here; the endpoint answers a missing one
    with HTTP 400.
    """

    job_id: Optional[int] = None
    new_worker_count: Optional[int] = Field(default=None, description="New number of workers needed")
