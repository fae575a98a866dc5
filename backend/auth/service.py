# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Identity & credential store.

Registration, credential verification, token issuance and token
invalidation.  Routers call these functions; nothing here knows about HTTP.
"""

import re
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.clock import utcnow
from core.config import settings
from core.errors import AuthenticationError, ConflictError, ValidationError
from core.logger import logger
from core.security import create_access_token, hash_password, verify_password
from database import atomic
from models import AuditAction, AuditLog, Role, TokenBlacklist, User

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Generic message used for both "no such email" and "wrong password"
_LOGIN_FAIL = "Invalid email or password"


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def issue_token(user: User) -> str:
    return create_access_token(
        {"sub": str(user.id), "user_id": user.id, "role": user.role.value}
    )


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def register(
    db: Session,
    name: Optional[str],
    email: Optional[str],
    password: Optional[str],
    phone: Optional[str] = None,
) -> User:
    """
    Create a guest account.  The role is always ``guest``; only an admin
    can promote it afterwards.
    """
    name = (name or "").strip()
    email = normalize_email(email)
    if not name or not email or not password:
        raise ValidationError("Name, email, and password are required")
    if not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email format")
    if len(password) < settings.min_password_length:
        raise ValidationError(
            f"Password must be at least {settings.min_password_length} characters long"
        )

    if find_by_email(db, email):
        raise ConflictError("User with this email already exists")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        phone=(phone or "").strip() or None,
        role=Role.guest,
    )
    try:
        with atomic(db):
            db.add(user)
    except IntegrityError:
        # Lost a race against a concurrent registration with the same email
        raise ConflictError("User with this email already exists")
    db.refresh(user)

    logger.info("user registered | user_id=%d", user.id)
    return user


def authenticate(db: Session, email: Optional[str], password: Optional[str], request_ip: Optional[str] = None) -> User:
    """
    Verify credentials.  The same error is raised whether the email is
    unknown or the password is wrong.
    """
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = find_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError(_LOGIN_FAIL)

    with atomic(db):
        user.updated_at = utcnow()
        db.add(AuditLog(
            target_user_id=user.id,
            action=AuditAction.user_login.value,
            request_ip=request_ip,
        ))
    db.refresh(user)
    return user


def logout(db: Session, user: User, claims: dict) -> None:
    """Blacklist the token identified by *claims*.  Repeated calls are harmless."""
    jti = claims["jti"]
    if db.query(TokenBlacklist.id).filter(TokenBlacklist.jti == jti).first():
        return
    try:
        with atomic(db):
            db.add(TokenBlacklist(jti=jti, user_id=user.id))
    except IntegrityError:
        # Already blacklisted by a concurrent logout of the same token
        return
    logger.info("user logged out | user_id=%d", user.id)
