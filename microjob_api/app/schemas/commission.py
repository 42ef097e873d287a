"""
Pydantic models for admin commission (fee) settings.

Fees are configured per ``fee_type`` (e.g. ``job_posting``,
``withdrawal``, ``chat_transfer``) as a percentage plus a fixed part,
clamped between a minimum and an optional maximum.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class FeeSettingsValues(BaseModel):
    fee_percentage: float = Field(0, ge=0, le=100)
    fee_fixed: float = Field(0, ge=0)
    minimum_fee: float = Field(0, ge=0)
    maximum_fee: Optional[float] = Field(default=None, ge=0)
    is_active: bool = False


class FeeSettingsUpdate(BaseModel):
    """Body of ``PUT /api/admin/commission``.

    Both fields are optional at the schema level; the endpoint answers a
    missing one with HTTP 400.
    """

    fee_type: Optional[str] = None
    settings: Optional[FeeSettingsValues] = None


class FeeSettingsRead(FeeSettingsValues):
    fee_type: str
    updated_at: Optional[datetime] = None


class FeeSettingsList(BaseModel):
    fee_settings: List[FeeSettingsRead]


class FeeSettingsUpdated(BaseModel):
    success: bool = True
    data: FeeSettingsRead
