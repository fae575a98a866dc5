# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the pass (entry permit) endpoints."""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel

from core.schemas import Envelope, GuestBrief, UserBrief, UtcDatetime
from passes.ledger import PassStatus
from visits.schemas import VisitRow


# -- Requests --------------------------------------------------------------


class SecurityRejectRequest(BaseModel):
    reason: Optional[str] = None


class PassCodeRequest(BaseModel):
    code: Optional[str] = None


# -- Responses -------------------------------------------------------------


class PassRow(BaseModel):
    id: int
    code: str
    valid_from: UtcDatetime
    valid_until: UtcDatetime
    is_used: bool
    created_at: UtcDatetime

    model_config = {"from_attributes": True}


class IssuedPassRow(PassRow):
    validity_hours: int


class ApprovalData(BaseModel):
    visit: VisitRow
    entry_pass: IssuedPassRow


class ApprovalResponse(Envelope):
    data: ApprovalData


class RejectionData(BaseModel):
    visit: VisitRow


class RejectionResponse(Envelope):
    data: RejectionData


class PendingListData(BaseModel):
    visits: List[VisitRow]
    count: int


class PendingListResponse(Envelope):
    data: PendingListData


class TrafficRow(BaseModel):
    id: int
    checked_in_at: UtcDatetime
    checked_out_at: Optional[UtcDatetime] = None

    model_config = {"from_attributes": True}


class RedemptionData(BaseModel):
    traffic: TrafficRow
    entry_pass: PassRow
    guest: GuestBrief
    host: UserBrief
    purpose: str
    visit_date: date


class RedemptionResponse(Envelope):
    data: RedemptionData


class LookupPassRow(PassRow):
    status: PassStatus


class LookupVisit(BaseModel):
    id: int
    purpose: str
    visit_date: date


class LookupData(BaseModel):
    entry_pass: LookupPassRow
    traffic: Optional[TrafficRow] = None
    visit: LookupVisit
    guest: GuestBrief
    host: UserBrief
    issued_by: UserBrief


class LookupResponse(Envelope):
    data: LookupData
