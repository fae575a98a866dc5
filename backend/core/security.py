# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Central security module.  Password hashing, access tokens and the
authentication dependency live here.  No other module should touch raw
crypto directly.

Responsibilities
----------------
1. Password hashing / verification          (passlib pbkdf2_sha256)
2. JWT creation / decoding                  (PyJWT / HS256)
3. FastAPI authentication dependency        (get_current_user)
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt as _jwt        # PyJWT
from passlib.hash import pbkdf2_sha256 as _pbkdf2  # pure Python, no binary deps
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from core.config import settings
from core.errors import AuthenticationError
from database import get_db

# ---------------------------------------------------------------------------
# 1.  pbkdf2_sha256 – password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """
    Hash a plaintext password with PBKDF2-SHA256.  The salt is embedded in
    the returned passlib hash string.
    """
    return _pbkdf2.using(rounds=settings.password_hash_rounds).hash(plain)


def verify_password(plain: str, stored_hash: str) -> bool:
    """Constant-time verification against a hash from :func:`hash_password`."""
    return _pbkdf2.verify(plain, stored_hash)


# ---------------------------------------------------------------------------
# 2.  JWT – access tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a JWT with HS256.

    *data* should contain at minimum: sub, user_id, role.  ``exp`` and a
    random ``jti`` are added automatically; the jti is what logout
    blacklists.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode["exp"] = expire
    to_encode["jti"] = secrets.token_hex(16)
    return _jwt.encode(to_encode, settings.secret_key, algorithm="HS256")


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT.  Raises AuthenticationError on any failure
    (expired, bad signature, malformed, missing claims).
    """
    try:
        payload = _jwt.decode(
            token,
            settings.secret_key,
            algorithms=["HS256"],
            options={"require": ["exp", "jti"]},
        )
    except _jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except _jwt.InvalidTokenError:
        raise AuthenticationError("Invalid or expired token")
    if not isinstance(payload.get("user_id"), int):
        raise AuthenticationError("Invalid or expired token")
    return payload


# ---------------------------------------------------------------------------
# 3.  FastAPI authentication dependency
# ---------------------------------------------------------------------------

# The tokenUrl here is only used by the auto-generated OpenAPI docs;
# the actual login endpoint is POST /api/auth/login (JSON body).
# auto_error=False so a missing header goes through our error envelope.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
):
    """
    Dependency: verify the bearer token (signature, expiry, blacklist) and
    load the User row.  Returns the User ORM instance.

    The role on the returned row is the stored one, so an admin role change
    takes effect on the very next request.
    """
    if not token:
        raise AuthenticationError("Access token is required")

    payload = decode_access_token(token)

    # Lazy import to avoid circular dependency at module load time
    from models import TokenBlacklist, User  # noqa: E402

    revoked = db.query(TokenBlacklist.id).filter(TokenBlacklist.jti == payload["jti"]).first()
    if revoked:
        raise AuthenticationError("Token has been invalidated")

    user = db.query(User).filter(User.id == payload["user_id"]).first()
    if not user:
        raise AuthenticationError("User not found")
    return user


def get_current_token(token: Optional[str] = Depends(oauth2_scheme)) -> dict:
    """Dependency: the decoded claims of the bearer token (used by logout)."""
    if not token:
        raise AuthenticationError("Access token is required")
    return decode_access_token(token)


# -- IP Address extraction ----------------------------------------------------


def get_client_ip(request: Request) -> str:
    """
    Extract the client IP address from the request.
    Checks X-Forwarded-For first (for proxies), then falls back to the
    direct peer address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs, take the first (original client)
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"
