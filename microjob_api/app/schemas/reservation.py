"""
Pydantic models for job reservations.

A reservation is a time‑boxed claim by a user on a job.  The status
of a job's reservation is reported as one of three explicit results:

* ``NotReserved`` – nobody holds the job (``expired`` tells whether an
  overdue reservation was just cleaned up);
* ``Reserved`` – somebody holds it, with the remaining time;
* ``Unavailable`` – the status could not be determined because the
  database failed.  Callers decide how to treat it.
"""

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field


class NotReserved(BaseModel):
    state: Literal["not_reserved"] = "not_reserved"
    is_reserved: Literal[False] = False
    expired: bool = False


class Reserved(BaseModel):
    state: Literal["reserved"] = "reserved"
    is_reserved: Literal[True] = True
    time_left_ms: int = Field(..., gt=0, description="Milliseconds until the reservation lapses")
    time_left_display: str = Field(..., examples=["1h 12m 5s"])
    reserved_by: Optional[int] = None
    reserved_until: datetime


class Unavailable(BaseModel):
    state: Literal["unavailable"] = "unavailable"
    is_reserved: Optional[bool] = None
    reason: str = "Reservation status is temporarily unavailable"


ReservationStatus = Union[NotReserved, Reserved, Unavailable]


class ReservationSettings(BaseModel):
    """Singleton reservation configuration.

    ``id`` is always ``"default"``.  When no row has been stored yet,
    the service returns an instance built from the field defaults.
    """

    id: str = "default"
    is_enabled: bool = False
    default_reservation_hours: int = 1
    max_concurrent_reservations: int = 5
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReservationSettingsUpdate(BaseModel):
    """Partial update of the reservation settings.

    Omitted fields keep their current value.
    """

    is_enabled: Optional[bool] = None
    default_reservation_hours: Optional[int] = Field(default=None, ge=1, le=24 * 30)
    max_concurrent_reservations: Optional[int] = Field(default=None, ge=1)


class ReservationRead(BaseModel):
    id: int
    job_id: int
    user_id: int
    status: Literal["active", "expired", "cancelled"]
    reserved_at: datetime
    expires_at: datetime


class UserReservationRead(ReservationRead):
    """Active reservation with a summary of the reserved job."""

    job_title: str
    budget_max: Optional[float] = None
    category_name: Optional[str] = None
    time_left_ms: int = 0
    time_left_display: str = "Expired"


class JobReference(BaseModel):
    """Request body naming a job.

    ``job_id`` is optional at the schema level so that a missing value
    is answered with HTTP 400 by the endpoint rather than a 422
    validation error.
    """

    job_id: Optional[int] = None
