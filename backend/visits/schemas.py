# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the visit endpoints."""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel

from core.schemas import Envelope, GuestBrief, UserBrief, UtcDatetime
from models.visit_request import VisitStatus


# -- Requests --------------------------------------------------------------


class CreateVisitRequest(BaseModel):
    host_email: Optional[str] = None
    purpose: Optional[str] = None
    description: Optional[str] = None
    # Kept as text so a malformed date surfaces as our own validation error
    visit_date: Optional[str] = None


class HostRejectRequest(BaseModel):
    rejection_reason: Optional[str] = None


# -- Responses -------------------------------------------------------------


class VisitRow(BaseModel):
    id: int
    purpose: str
    description: Optional[str] = None
    visit_date: date
    status: VisitStatus
    rejection_reason: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime
    guest: GuestBrief
    host: UserBrief

    model_config = {"from_attributes": True}


class VisitData(BaseModel):
    visit: VisitRow


class VisitResponse(Envelope):
    data: VisitData


class VisitListData(BaseModel):
    visits: List[VisitRow]
    count: int


class VisitListResponse(Envelope):
    data: VisitListData
