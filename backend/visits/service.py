# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Visit request state machine.

    pending_host_review ──approve──▶ pending_security ──approve──▶ approved
            │                                │
            └──reject──▶ rejected_by_host    └──reject──▶ rejected_by_security

Every transition is written as a conditional UPDATE guarded on the source
state, so a request can only move along the edges in
``models.visit_request.TRANSITIONS`` even under concurrent decisions.
Security approval is delegated to :func:`passes.issuer.issue_pass`, which
flips the status and writes the permit atomically.
"""

import enum
from datetime import date, datetime
from typing import Optional, Union

from sqlalchemy.orm import Session

from core.clock import utc_today, utcnow
from core.errors import AuthorizationError, NotFoundError, StateError, ValidationError
from core.logger import logger
from database import atomic
from models import Role, User, VisitRequest, VisitStatus
from models.visit_request import TRANSITIONS
from passes.issuer import IssuedPass, issue_pass


class Decision(str, enum.Enum):
    approve = "approve"
    reject = "reject"


# -- helpers ----------------------------------------------------------------


def _parse_visit_date(value: Union[str, date, datetime, None]) -> date:
    """
    A bare ``YYYY-MM-DD`` or a complete ISO timestamp; only the date part
    of a timestamp counts.  Anything else is refused, trailing text included.
    """
    if value is None or value == "":
        raise ValidationError("Host email, purpose, and visit date are required")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        # datetime.fromisoformat only learned the "Z" suffix in 3.11
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError("Invalid visit date format")


def _clean_reason(reason: Optional[str]) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Rejection reason is required")
    return reason


def get_request(db: Session, request_id: int) -> VisitRequest:
    visit = db.query(VisitRequest).filter(VisitRequest.id == request_id).first()
    if not visit:
        raise NotFoundError("Visit request not found")
    return visit


def _transition(
    db: Session,
    visit: VisitRequest,
    source: VisitStatus,
    target: VisitStatus,
    rejection_reason: Optional[str] = None,
) -> VisitRequest:
    """Move *visit* from *source* to *target*, or raise StateError."""
    if target not in TRANSITIONS.get(source, ()):
        raise StateError(f"Illegal transition {source.value} -> {target.value}")

    values = {VisitRequest.status: target, VisitRequest.updated_at: utcnow()}
    if rejection_reason is not None:
        values[VisitRequest.rejection_reason] = rejection_reason

    with atomic(db):
        moved = (
            db.query(VisitRequest)
            .filter(VisitRequest.id == visit.id, VisitRequest.status == source)
            .update(values, synchronize_session=False)
        )
        if moved != 1:
            raise StateError("Visit request status changed; reload and try again")

    db.refresh(visit)
    return visit


# -- operations -------------------------------------------------------------


def create_visit(
    db: Session,
    guest_id: int,
    host_email: Optional[str],
    purpose: Optional[str],
    visit_date: Union[str, date, datetime, None],
    description: Optional[str] = None,
    host_id: Optional[int] = None,
    today: Optional[date] = None,
) -> VisitRequest:
    """
    Open a new request in ``pending_host_review``.

    The visit date is compared to today (the UTC calendar day) by date
    only; a visit scheduled for today is accepted at any time of day.
    """
    purpose = (purpose or "").strip()
    host_email = (host_email or "").strip().lower()
    if (not host_email and host_id is None) or not purpose:
        raise ValidationError("Host email, purpose, and visit date are required")

    day = _parse_visit_date(visit_date)
    if day < (today or utc_today()):
        raise ValidationError("Visit date cannot be in the past")

    # The host is addressed by email from the API, by id from internal callers
    q = db.query(User).filter(User.role == Role.host)
    if host_id is not None:
        q = q.filter(User.id == host_id)
    else:
        q = q.filter(User.email == host_email)
    host = q.first()
    if not host:
        raise NotFoundError("Host not found or user is not a host")

    visit = VisitRequest(
        guest_id=guest_id,
        host_id=host.id,
        purpose=purpose,
        description=(description or "").strip() or None,
        visit_date=day,
        status=VisitStatus.pending_host_review,
    )
    with atomic(db):
        db.add(visit)
    db.refresh(visit)

    logger.info("visit created | visit_request_id=%d guest_id=%d host_id=%d", visit.id, guest_id, host.id)
    return visit


def host_decide(
    db: Session,
    request_id: int,
    acting_host_id: int,
    decision: Decision,
    reason: Optional[str] = None,
) -> VisitRequest:
    """Approve (→ pending_security) or reject (→ rejected_by_host)."""
    if decision == Decision.reject:
        reason = _clean_reason(reason)

    visit = get_request(db, request_id)
    if visit.host_id != acting_host_id:
        raise AuthorizationError(f"You are not authorized to {decision.value} this request")
    if visit.status != VisitStatus.pending_host_review:
        raise StateError(f"Cannot {decision.value} request with status: {visit.status.value}")

    if decision == Decision.approve:
        visit = _transition(db, visit, VisitStatus.pending_host_review, VisitStatus.pending_security)
    else:
        visit = _transition(
            db, visit, VisitStatus.pending_host_review, VisitStatus.rejected_by_host, reason
        )

    logger.info(
        "host decision | visit_request_id=%d host_id=%d decision=%s",
        visit.id,
        acting_host_id,
        decision.value,
    )
    return visit


def security_decide(
    db: Session,
    request_id: int,
    acting_security_id: int,
    decision: Decision,
    reason: Optional[str] = None,
) -> tuple[VisitRequest, Optional[IssuedPass]]:
    """
    Approve (issue a permit, → approved) or reject (→ rejected_by_security).

    Returns the updated request and, on approval, the issued permit.
    """
    if decision == Decision.reject:
        reason = _clean_reason(reason)

    visit = get_request(db, request_id)
    if visit.status != VisitStatus.pending_security:
        raise StateError(f"Cannot {decision.value} this request. Current status: {visit.status.value}")

    issued = None
    if decision == Decision.approve:
        issued = issue_pass(db, visit.id, acting_security_id)
        db.refresh(visit)
    else:
        visit = _transition(
            db, visit, VisitStatus.pending_security, VisitStatus.rejected_by_security, reason
        )

    logger.info(
        "security decision | visit_request_id=%d security_id=%d decision=%s",
        visit.id,
        acting_security_id,
        decision.value,
    )
    return visit, issued


# -- queries ----------------------------------------------------------------


def list_for_guest(db: Session, guest_id: int) -> list[VisitRequest]:
    return (
        db.query(VisitRequest)
        .filter(VisitRequest.guest_id == guest_id)
        .order_by(VisitRequest.created_at.desc(), VisitRequest.id.desc())
        .all()
    )


def list_for_host(db: Session, host_id: int, status: Optional[str] = None) -> list[VisitRequest]:
    q = db.query(VisitRequest).filter(VisitRequest.host_id == host_id)
    if status:
        try:
            q = q.filter(VisitRequest.status == VisitStatus(status))
        except ValueError:
            raise ValidationError(f"Invalid status filter: {status}")
    return q.order_by(VisitRequest.created_at.desc(), VisitRequest.id.desc()).all()


def list_pending_security(db: Session) -> list[VisitRequest]:
    """Earliest visits first, then oldest requests first."""
    return (
        db.query(VisitRequest)
        .filter(VisitRequest.status == VisitStatus.pending_security)
        .order_by(VisitRequest.visit_date, VisitRequest.created_at, VisitRequest.id)
        .all()
    )
