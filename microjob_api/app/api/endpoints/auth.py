"""
Authentication endpoints.

Registration and login.  The returned bearer token is what every
other route expects in the ``Authorization`` header.
"""

import sqlite3

from fastapi import APIRouter, Depends, HTTPException, status

from microjob_api.app.core.db import get_db
from microjob_api.app.core.errors import ConflictError
from microjob_api.app.core.security import create_access_token
from microjob_api.app.schemas.user import Token, UserCreate, UserLogin, UserRead
from microjob_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register_user(user: UserCreate, conn: sqlite3.Connection = Depends(get_db)) -> UserRead:
    """Register a new worker or employer.

    Returns 409 if the e‑mail is already registered and 400 for an
    unknown referral code.
    """
    try:
        return await UserService.create_user(conn, user)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/login", response_model=Token)
async def login_user(credentials: UserLogin, conn: sqlite3.Connection = Depends(get_db)) -> Token:
    db_user = await UserService.authenticate(conn, credentials.email, credentials.password)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return Token(access_token=create_access_token({"sub": db_user.email}))
