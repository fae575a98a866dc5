# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Admin endpoints – user roles, reports and the audit trail.

Every endpoint in this router is guarded by an admin-only operation.  A
request that carries a valid JWT but belongs to another role receives 403
before any business logic runs.
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from admin import reports, service
from admin.schemas import (
    AuditLogListData,
    AuditLogListResponse,
    ChangeRoleRequest,
    FullReportResponse,
    PresentReportResponse,
    StatsResponse,
    UserData,
    UserListData,
    UserListResponse,
    UserResponse,
    UserRow,
)
from core.access import Operation, require
from core.security import get_client_ip
from database import get_db
from models.user import User

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# GET /api/admin/users  – list all users
# ---------------------------------------------------------------------------


@router.get("/users", response_model=UserListResponse)
def list_users(
    admin: User = Depends(require(Operation.LIST_USERS)),
    db: Session = Depends(get_db),
):
    """Return every user row (no password data – handled by the schema)."""
    rows = [UserRow.model_validate(u) for u in service.list_users(db)]
    return UserListResponse(data=UserListData(users=rows, count=len(rows)))


# ---------------------------------------------------------------------------
# PATCH /api/admin/users/{id}/role  – change a user's role
# ---------------------------------------------------------------------------


@router.patch("/users/{user_id}/role", response_model=UserResponse)
def change_role(
    user_id: int,
    body: ChangeRoleRequest,
    request: Request,
    admin: User = Depends(require(Operation.CHANGE_ROLE)),
    db: Session = Depends(get_db),
):
    user = service.change_role(db, admin, user_id, body.role, request_ip=get_client_ip(request))
    return UserResponse(
        message="User role updated successfully",
        data=UserData(user=UserRow.model_validate(user)),
    )


# ---------------------------------------------------------------------------
# GET /api/admin/reports/log  – every request with its permit
# ---------------------------------------------------------------------------


@router.get("/reports/log", response_model=FullReportResponse)
def full_report(
    admin: User = Depends(require(Operation.FULL_REPORT)),
    db: Session = Depends(get_db),
):
    return FullReportResponse(data=reports.full_report(db))


# ---------------------------------------------------------------------------
# GET /api/admin/reports/log/export  – the same report as an Excel download
# ---------------------------------------------------------------------------


@router.get("/reports/log/export")
def export_full_report(
    admin: User = Depends(require(Operation.FULL_REPORT)),
    db: Session = Depends(get_db),
):
    buf = reports.export_workbook(reports.full_report(db))
    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": 'attachment; filename="visit-report.xlsx"'},
    )


# ---------------------------------------------------------------------------
# GET /api/admin/reports/present  – who is on site right now
# ---------------------------------------------------------------------------


@router.get("/reports/present", response_model=PresentReportResponse)
def present_report(
    admin: User = Depends(require(Operation.PRESENT_REPORT)),
    db: Session = Depends(get_db),
):
    return PresentReportResponse(data=reports.present_now(db))


# ---------------------------------------------------------------------------
# GET /api/admin/stats  – aggregate counts
# ---------------------------------------------------------------------------


@router.get("/stats", response_model=StatsResponse)
def stats(
    admin: User = Depends(require(Operation.STATS)),
    db: Session = Depends(get_db),
):
    return StatsResponse(data=reports.stats(db))


# ---------------------------------------------------------------------------
# GET /api/admin/audit-logs  – logins and role changes, newest first
# ---------------------------------------------------------------------------


@router.get("/audit-logs", response_model=AuditLogListResponse)
def list_audit_logs(
    limit: int = Query(200, ge=1, le=1000),
    admin: User = Depends(require(Operation.AUDIT_LOGS)),
    db: Session = Depends(get_db),
):
    return AuditLogListResponse(data=AuditLogListData(logs=service.list_audit_logs(db, limit)))
