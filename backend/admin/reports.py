# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Reporting aggregator – read-only projections for the admin dashboard.

Each report runs inside :func:`database.read_snapshot` and is fully
materialised into response models before the snapshot closes, so counts and
lists never mix rows from before and after a concurrent write.
"""

import io
from datetime import datetime
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from admin.schemas import (
    AuditVisitRow,
    FullReport,
    PresentReport,
    PresentRow,
    Stats,
    UserRow,
)
from core.clock import as_utc, days_ago, start_of_day, utcnow
from core.schemas import GuestBrief, UserBrief
from database import read_snapshot
from models import Pass, Role, TrafficLog, User, VisitRequest, VisitStatus

_WEEK_DAYS = 7


def full_report(db: Session, now: Optional[datetime] = None) -> FullReport:
    """Every user, and every visit request joined with its permit if any."""
    with read_snapshot(db):
        users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
        visits = (
            db.query(VisitRequest)
            .options(
                joinedload(VisitRequest.guest),
                joinedload(VisitRequest.host),
                joinedload(VisitRequest.entry_pass).joinedload(Pass.issuer),
            )
            .order_by(VisitRequest.created_at.desc(), VisitRequest.id.desc())
            .all()
        )
        user_rows = [UserRow.model_validate(u) for u in users]
        visit_rows = [AuditVisitRow.model_validate(v) for v in visits]

    return FullReport(
        users=user_rows,
        user_count=len(user_rows),
        visits=visit_rows,
        visit_count=len(visit_rows),
        generated_at=now or utcnow(),
    )


def present_now(db: Session, now: Optional[datetime] = None) -> PresentReport:
    """Everyone checked in and not yet checked out, latest arrivals first."""
    with read_snapshot(db):
        logs = (
            db.query(TrafficLog)
            .options(
                joinedload(TrafficLog.entry_pass)
                .joinedload(Pass.visit_request)
                .joinedload(VisitRequest.guest),
                joinedload(TrafficLog.entry_pass)
                .joinedload(Pass.visit_request)
                .joinedload(VisitRequest.host),
            )
            .filter(TrafficLog.checked_out_at.is_(None))
            .order_by(TrafficLog.checked_in_at.desc(), TrafficLog.id.desc())
            .all()
        )
        rows = []
        for log in logs:
            entry_pass = log.entry_pass
            visit = entry_pass.visit_request
            rows.append(PresentRow(
                traffic_log_id=log.id,
                checked_in_at=log.checked_in_at,
                pass_code=entry_pass.code,
                valid_until=entry_pass.valid_until,
                purpose=visit.purpose,
                visit_date=visit.visit_date,
                guest=GuestBrief.model_validate(visit.guest),
                host=UserBrief.model_validate(visit.host),
            ))

    return PresentReport(present=rows, count=len(rows), generated_at=now or utcnow())


def stats(db: Session, now: Optional[datetime] = None) -> Stats:
    """Aggregate counts.  Every role and status is listed, zero included."""
    now = as_utc(now) if now else utcnow()
    today = start_of_day(now)
    week_start = days_ago(now, _WEEK_DAYS)

    with read_snapshot(db):
        by_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
        by_status = dict(
            db.query(VisitRequest.status, func.count(VisitRequest.id))
            .group_by(VisitRequest.status)
            .all()
        )
        today_visits = (
            db.query(func.count(VisitRequest.id))
            .filter(VisitRequest.created_at >= today)
            .scalar()
        )
        today_check_ins = (
            db.query(func.count(TrafficLog.id))
            .filter(TrafficLog.checked_in_at >= today)
            .scalar()
        )
        week_check_ins = (
            db.query(func.count(TrafficLog.id))
            .filter(TrafficLog.checked_in_at >= week_start)
            .scalar()
        )
        present_count = (
            db.query(func.count(TrafficLog.id))
            .filter(TrafficLog.checked_out_at.is_(None))
            .scalar()
        )

    return Stats(
        users_by_role={r.value: by_role.get(r, 0) for r in Role},
        visits_by_status={s.value: by_status.get(s, 0) for s in VisitStatus},
        today_visits=today_visits or 0,
        today_check_ins=today_check_ins or 0,
        week_check_ins=week_check_ins or 0,
        present_count=present_count or 0,
    )


# ---------------------------------------------------------------------------
# Excel export of the full report
# ---------------------------------------------------------------------------

_HEADER_FONT = Font(name="Calibri", size=11, bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill(start_color="2F6F4E", end_color="2F6F4E", fill_type="solid")
_HEADER_ALIGN = Alignment(horizontal="center", vertical="center")
_THIN_BORDER = Border(
    left=Side(style="thin", color="CCCCCC"),
    right=Side(style="thin", color="CCCCCC"),
    top=Side(style="thin", color="CCCCCC"),
    bottom=Side(style="thin", color="CCCCCC"),
)

EXPORT_HEADERS = [
    "ID", "Requested", "Guest", "Guest Email", "Host", "Purpose", "Visit Date",
    "Status", "Rejection Reason", "Pass Code", "Valid From", "Valid Until",
    "Used", "Issued By",
]
_COL_WIDTHS = [8, 20, 24, 28, 24, 30, 12, 22, 30, 12, 20, 20, 8, 24]


def _fmt(value: Optional[datetime]) -> str:
    return as_utc(value).strftime("%Y-%m-%d %H:%M:%S") if value else ""


def export_workbook(report: FullReport) -> io.BytesIO:
    """Render the visit section of *report* as an .xlsx workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Visits"

    ws.append(EXPORT_HEADERS)
    for cell in ws[1]:
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = _HEADER_ALIGN
        cell.border = _THIN_BORDER

    for visit in report.visits:
        p = visit.entry_pass
        ws.append([
            visit.id,
            _fmt(visit.created_at),
            visit.guest.name,
            visit.guest.email,
            visit.host.name,
            visit.purpose,
            visit.visit_date.isoformat(),
            visit.status.value,
            visit.rejection_reason or "",
            p.code if p else "",
            _fmt(p.valid_from) if p else "",
            _fmt(p.valid_until) if p else "",
            ("yes" if p.is_used else "no") if p else "",
            p.issuer.name if p else "",
        ])
        row_idx = ws.max_row
        for col_idx in range(1, len(EXPORT_HEADERS) + 1):
            ws.cell(row=row_idx, column=col_idx).border = _THIN_BORDER

    for col_idx, width in enumerate(_COL_WIDTHS, start=1):
        ws.column_dimensions[chr(64 + col_idx)].width = width

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    wb.close()
    return buf
