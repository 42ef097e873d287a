"""
Authentication for the marketplace API.

Access tokens are compact HS256 JWTs signed with ``SECRET_KEY``; the
``sub`` claim holds the user's email and ``exp`` its expiry.  Stored
passwords are ``<salt>$<digest>`` pairs produced by PBKDF2-HMAC-SHA256.

Protected routes depend on ``get_current_user``, which resolves the
bearer token to an enabled row of ``users``, or on
``require_user_types`` to restrict a route to given user types.
"""

import base64
import hashlib
import hmac
import json
import os
import sqlite3
import time
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .db import get_db


PBKDF2_ITERATIONS = 100_000
JWT_ALGORITHM = "HS256"


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """Create a signed JWT token with the given payload.

    The payload is extended with an ``exp`` field (UNIX timestamp).
    Clients send the token as ``Authorization: Bearer <token>``.

    Parameters
    ----------
    data : dict
        Claims to embed in the token (e.g. {"sub": "user@example.com"}).
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.
    """
    to_encode = data.copy()
    exp_seconds = expires_delta or settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": JWT_ALGORITHM, "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify and decode a JWT token.

    Returns the payload if the header names HS256, the signature
    matches and the token has not expired, otherwise ``None``.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    expected_sig = _sign(signing_input, settings.secret_key)
    try:
        actual_sig = _b64_url_decode(signature_b64)
        if not hmac.compare_digest(expected_sig, actual_sig):
            return None
        header = json.loads(_b64_url_decode(header_b64).decode("utf-8"))
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(header, dict) or header.get("alg") != JWT_ALGORITHM:
        return None
    if not isinstance(data, dict):
        return None
    if data.get("exp") is None or int(data["exp"]) < int(time.time()):
        return None
    return data


security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    conn: sqlite3.Connection = Depends(get_db),
) -> Dict[str, Any]:
    """Dependency that resolves the calling user.

    Raises HTTP 401 when the ``Authorization`` header is missing, the
    token is invalid or expired, or the user it names no longer exists
    or is disabled.  On success returns the token payload extended
    with ``user_id`` and ``user_type``.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")
    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")
    user_row = conn.execute(
        "SELECT id, user_type, disabled FROM users WHERE email = ?",
        (payload.get("sub"),),
    ).fetchone()
    if not user_row:
        raise _unauthorized("User no longer exists")
    if user_row["disabled"]:
        raise _unauthorized("User account disabled")
    payload["user_id"] = user_row["id"]
    payload["user_type"] = user_row["user_type"]
    return payload


def require_user_types(*user_types: str) -> Callable[..., Dict[str, Any]]:
    """Dependency factory restricting a route to the given user types.

    Use as ``Depends(require_user_types("admin"))``.  Callers of any
    other type are rejected with HTTP 401, the same answer an
    anonymous caller gets, so the route does not reveal that it exists
    behind a role check.
    """

    def _user_type_dependency(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if current_user.get("user_type") not in user_types:
            raise _unauthorized("Unauthorized")
        return current_user

    return _user_type_dependency


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2‑HMAC with SHA‑256.

    Returns ``"<salt hex>$<hash hex>"``.
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a stored salt+hash string."""
    if not hashed_password or "$" not in hashed_password:
        return False
    salt_hex, hash_hex = hashed_password.split("$", 1)
    try:
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)
