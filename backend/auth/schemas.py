# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the auth endpoints."""

from typing import Optional

from pydantic import BaseModel

from core.schemas import Envelope, UserProfile


# -- Requests --------------------------------------------------------------


class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


# -- Responses -------------------------------------------------------------


class SessionData(BaseModel):
    user: UserProfile
    token: str
    token_type: str = "bearer"


class SessionResponse(Envelope):
    data: SessionData


class ProfileData(BaseModel):
    user: UserProfile


class ProfileResponse(Envelope):
    data: ProfileData
