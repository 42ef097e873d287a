"""
Pydantic models for the referral programme.

Every user can own one referral code.  New users who register with a
code are recorded as referrals of the code's owner, first as
``pending`` and later ``completed``.  Completed referrals are shown
as ``VIP``.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel


class ReferralStatistics(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    vip: int = 0


class ReferredUser(BaseModel):
    id: int
    user_id: int
    full_name: str
    email: str
    country: str = "Not specified"
    joining_date: Optional[datetime] = None
    status: str
    type: Literal["VIP", "Regular"]


class ReferralOverview(BaseModel):
    referral_code: Optional[str] = None
    statistics: ReferralStatistics
    referrals: List[ReferredUser]


class ReferralCodeRead(BaseModel):
    referral_code: str
