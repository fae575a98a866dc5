# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Auth endpoints – register, login, logout, current-user info.

Security notes
--------------
* Register always creates a ``guest``.  A role in the payload is ignored;
  only an admin can change roles.
* Login returns the *same* error message whether the email doesn't exist or
  the password is wrong.  This prevents user-enumeration attacks.
* Logout blacklists the presented token; it is rejected by every later
  request even though its signature and expiry are still valid.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from auth import service
from auth.schemas import (
    LoginRequest,
    ProfileData,
    ProfileResponse,
    RegisterRequest,
    SessionData,
    SessionResponse,
)
from core.access import Operation, require
from core.schemas import MessageResponse, UserProfile
from core.security import get_client_ip, get_current_token
from database import get_db
from models.user import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _session(user: User, message: str) -> SessionResponse:
    return SessionResponse(
        message=message,
        data=SessionData(user=UserProfile.model_validate(user), token=service.issue_token(user)),
    )


# ---------------------------------------------------------------------------
# POST /api/auth/register
# ---------------------------------------------------------------------------


@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Create a guest account and sign it in."""
    user = service.register(db, body.name, body.email, body.password, body.phone)
    return _session(user, "User registered successfully")


# ---------------------------------------------------------------------------
# POST /api/auth/login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=SessionResponse)
def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Authenticate and return a signed JWT plus the user's profile."""
    user = service.authenticate(db, body.email, body.password, request_ip=get_client_ip(request))
    return _session(user, "Login successful")


# ---------------------------------------------------------------------------
# POST /api/auth/logout
# ---------------------------------------------------------------------------


@router.post("/logout", response_model=MessageResponse)
def logout(
    current_user: User = Depends(require(Operation.LOGOUT)),
    claims: dict = Depends(get_current_token),
    db: Session = Depends(get_db),
):
    service.logout(db, current_user, claims)
    return MessageResponse(message="Logout successful")


# ---------------------------------------------------------------------------
# GET /api/auth/me
# ---------------------------------------------------------------------------


@router.get("/me", response_model=ProfileResponse)
def me(current_user: User = Depends(require(Operation.VIEW_PROFILE))):
    """Return the authenticated user's public profile (no secrets)."""
    return ProfileResponse(data=ProfileData(user=UserProfile.model_validate(current_user)))
