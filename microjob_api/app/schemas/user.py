"""
Pydantic models for user registration and login.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    """Schema for registering a user.

    ``user_type`` is either ``worker`` or ``employer``; the very first
    account of a fresh installation is promoted to ``admin`` by the
    service.  ``referral_code`` links the new account to the user who
    invited them.
    """

    email: str = Field(..., min_length=3, examples=["user@example.com"])
    password: str = Field(..., min_length=6, examples=["strongpassword"])
    first_name: Optional[str] = Field(None, examples=["Ada"])
    last_name: Optional[str] = Field(None, examples=["Lovelace"])
    user_type: Literal["worker", "employer"] = "worker"
    location: Optional[str] = Field(None, examples=["Lagos, Nigeria"])
    referral_code: Optional[str] = None


class UserLogin(BaseModel):
    email: str
    password: str


class UserRead(BaseModel):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    user_type: str
    location: Optional[str] = None
    disabled: bool = False

    model_config = {
        "from_attributes": True,
    }


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
