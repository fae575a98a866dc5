# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Security endpoints – second-stage review, permit issuance and redemption.

Every endpoint in this router is restricted to the ``security`` role.

* ``PATCH /{id}/approve`` issues the permit and approves the request in
  one transaction; a concurrent second approval gets 409.
* ``POST /check-in`` / ``POST /check-out`` redeem a permit by code.  Each
  refusal carries its own error code (``already_used``, ``expired``,
  ``not_yet_valid``, ``not_checked_in``, ``already_checked_out``).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.access import Operation, require
from core.schemas import GuestBrief, UserBrief
from database import get_db
from models import TrafficLog
from models.user import User
from passes import ledger
from passes.schemas import (
    ApprovalData,
    ApprovalResponse,
    IssuedPassRow,
    LookupData,
    LookupPassRow,
    LookupResponse,
    LookupVisit,
    PassCodeRequest,
    PassRow,
    PendingListData,
    PendingListResponse,
    RedemptionData,
    RedemptionResponse,
    RejectionData,
    RejectionResponse,
    SecurityRejectRequest,
    TrafficRow,
)
from visits import service as visits
from visits.schemas import VisitRow

router = APIRouter(prefix="/api/passes", tags=["passes"])


def _redemption(traffic_log: TrafficLog, message: str) -> RedemptionResponse:
    entry_pass = traffic_log.entry_pass
    visit = entry_pass.visit_request
    return RedemptionResponse(
        message=message,
        data=RedemptionData(
            traffic=TrafficRow.model_validate(traffic_log),
            entry_pass=PassRow.model_validate(entry_pass),
            guest=GuestBrief.model_validate(visit.guest),
            host=UserBrief.model_validate(visit.host),
            purpose=visit.purpose,
            visit_date=visit.visit_date,
        ),
    )


# ---------------------------------------------------------------------------
# GET /api/passes/pending  – requests awaiting security review
# ---------------------------------------------------------------------------


@router.get("/pending", response_model=PendingListResponse)
def pending_visits(
    current_user: User = Depends(require(Operation.LIST_PENDING_SECURITY)),
    db: Session = Depends(get_db),
):
    rows = [VisitRow.model_validate(v) for v in visits.list_pending_security(db)]
    return PendingListResponse(data=PendingListData(visits=rows, count=len(rows)))


# ---------------------------------------------------------------------------
# PATCH /api/passes/{id}/approve  – approve and issue the entry permit
# ---------------------------------------------------------------------------


@router.patch("/{request_id}/approve", response_model=ApprovalResponse)
def approve_and_issue(
    request_id: int,
    current_user: User = Depends(require(Operation.SECURITY_DECIDE)),
    db: Session = Depends(get_db),
):
    visit, issued = visits.security_decide(
        db, request_id, current_user.id, visits.Decision.approve
    )
    pass_row = IssuedPassRow(
        **PassRow.model_validate(issued.entry_pass).model_dump(),
        validity_hours=issued.validity_hours,
    )
    return ApprovalResponse(
        message="Entry permit created successfully",
        data=ApprovalData(visit=VisitRow.model_validate(visit), entry_pass=pass_row),
    )


# ---------------------------------------------------------------------------
# PATCH /api/passes/{id}/reject  – security rejects with a reason
# ---------------------------------------------------------------------------


@router.patch("/{request_id}/reject", response_model=RejectionResponse)
def reject_visit(
    request_id: int,
    body: SecurityRejectRequest,
    current_user: User = Depends(require(Operation.SECURITY_DECIDE)),
    db: Session = Depends(get_db),
):
    visit, _ = visits.security_decide(
        db, request_id, current_user.id, visits.Decision.reject, body.reason
    )
    return RejectionResponse(
        message="Visit request rejected by security",
        data=RejectionData(visit=VisitRow.model_validate(visit)),
    )


# ---------------------------------------------------------------------------
# POST /api/passes/check-in
# ---------------------------------------------------------------------------


@router.post("/check-in", response_model=RedemptionResponse)
def check_in(
    body: PassCodeRequest,
    current_user: User = Depends(require(Operation.CHECK_IN)),
    db: Session = Depends(get_db),
):
    traffic_log = ledger.check_in(db, body.code, current_user.id)
    return _redemption(traffic_log, "Check-in registered successfully")


# ---------------------------------------------------------------------------
# POST /api/passes/check-out
# ---------------------------------------------------------------------------


@router.post("/check-out", response_model=RedemptionResponse)
def check_out(
    body: PassCodeRequest,
    current_user: User = Depends(require(Operation.CHECK_OUT)),
    db: Session = Depends(get_db),
):
    traffic_log = ledger.check_out(db, body.code)
    return _redemption(traffic_log, "Check-out registered successfully")


# ---------------------------------------------------------------------------
# GET /api/passes/{code}  – read-only lookup with derived status
# ---------------------------------------------------------------------------


@router.get("/{code}", response_model=LookupResponse)
def lookup_pass(
    code: str,
    current_user: User = Depends(require(Operation.LOOKUP_PASS)),
    db: Session = Depends(get_db),
):
    found = ledger.lookup(db, code)
    entry_pass = found.entry_pass
    visit = entry_pass.visit_request
    traffic = entry_pass.traffic_log
    return LookupResponse(
        data=LookupData(
            entry_pass=LookupPassRow(
                **PassRow.model_validate(entry_pass).model_dump(),
                status=found.status,
            ),
            traffic=TrafficRow.model_validate(traffic) if traffic else None,
            visit=LookupVisit(id=visit.id, purpose=visit.purpose, visit_date=visit.visit_date),
            guest=GuestBrief.model_validate(visit.guest),
            host=UserBrief.model_validate(visit.host),
            issued_by=UserBrief.model_validate(entry_pass.issuer),
        )
    )
