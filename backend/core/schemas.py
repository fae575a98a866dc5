# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic models shared by several routers."""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel

from core.clock import as_utc
from models.user import Role

# Timestamps come back from MySQL/SQLite without tzinfo; they are UTC.
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class Envelope(BaseModel):
    """Base of every success response.  Subclasses add a typed ``data``."""

    success: bool = True
    message: Optional[str] = None


class MessageResponse(Envelope):
    pass


class UserProfile(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: Role
    created_at: UtcDatetime

    model_config = {"from_attributes": True}


class UserBrief(BaseModel):
    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}


class GuestBrief(UserBrief):
    phone: Optional[str] = None
