# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the admin endpoints."""

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel

from core.schemas import Envelope, GuestBrief, UserBrief, UtcDatetime
from models.user import Role
from passes.schemas import PassRow
from visits.schemas import VisitRow


# -- Requests --------------------------------------------------------------


class ChangeRoleRequest(BaseModel):
    role: Optional[str] = None  # one of guest / host / security / admin


# -- Users -----------------------------------------------------------------


class UserRow(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: Role
    created_at: UtcDatetime
    updated_at: UtcDatetime

    model_config = {"from_attributes": True}


class UserListData(BaseModel):
    users: List[UserRow]
    count: int


class UserListResponse(Envelope):
    data: UserListData


class UserData(BaseModel):
    user: UserRow


class UserResponse(Envelope):
    data: UserData


# -- Reports ---------------------------------------------------------------


class AuditPassRow(PassRow):
    issuer: UserBrief


class AuditVisitRow(VisitRow):
    entry_pass: Optional[AuditPassRow] = None


class FullReport(BaseModel):
    users: List[UserRow]
    user_count: int
    visits: List[AuditVisitRow]
    visit_count: int
    generated_at: UtcDatetime


class FullReportResponse(Envelope):
    data: FullReport


class PresentRow(BaseModel):
    traffic_log_id: int
    checked_in_at: UtcDatetime
    pass_code: str
    valid_until: UtcDatetime
    purpose: str
    visit_date: date
    guest: GuestBrief
    host: UserBrief


class PresentReport(BaseModel):
    present: List[PresentRow]
    count: int
    generated_at: UtcDatetime


class PresentReportResponse(Envelope):
    data: PresentReport


class Stats(BaseModel):
    users_by_role: Dict[str, int]
    visits_by_status: Dict[str, int]
    today_visits: int
    today_check_ins: int
    week_check_ins: int
    present_count: int


class StatsResponse(Envelope):
    data: Stats


# -- Audit log -------------------------------------------------------------


class AuditLogRow(BaseModel):
    id: int
    admin_email: Optional[str] = None       # resolved from admin_id
    target_email: Optional[str] = None      # resolved from target_user_id
    action: str
    detail: Optional[str] = None
    request_ip: Optional[str] = None
    created_at: UtcDatetime


class AuditLogListData(BaseModel):
    logs: List[AuditLogRow]


class AuditLogListResponse(Envelope):
    data: AuditLogListData
