# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Visit request endpoints for guests and hosts.

* Guests create requests and list their own.
* Hosts list the requests addressed to them and approve or reject those in
  ``pending_host_review``.  A host acting on another host's request gets
  403 and the request is left untouched.

Security-stage decisions live in the passes router because approval there
issues the entry permit.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.access import Operation, require
from database import get_db
from models.user import User
from visits import service
from visits.schemas import (
    CreateVisitRequest,
    HostRejectRequest,
    VisitData,
    VisitListData,
    VisitListResponse,
    VisitResponse,
    VisitRow,
)

router = APIRouter(prefix="/api/visits", tags=["visits"])


def _list(visits) -> VisitListResponse:
    rows = [VisitRow.model_validate(v) for v in visits]
    return VisitListResponse(data=VisitListData(visits=rows, count=len(rows)))


# ---------------------------------------------------------------------------
# POST /api/visits  – guest opens a request
# ---------------------------------------------------------------------------


@router.post("", response_model=VisitResponse, status_code=status.HTTP_201_CREATED)
def create_visit(
    body: CreateVisitRequest,
    current_user: User = Depends(require(Operation.CREATE_VISIT)),
    db: Session = Depends(get_db),
):
    visit = service.create_visit(
        db,
        guest_id=current_user.id,
        host_email=body.host_email,
        purpose=body.purpose,
        visit_date=body.visit_date,
        description=body.description,
    )
    return VisitResponse(
        message="Visit request created successfully",
        data=VisitData(visit=VisitRow.model_validate(visit)),
    )


# ---------------------------------------------------------------------------
# GET /api/visits/me  – guest's own requests, newest first
# ---------------------------------------------------------------------------


@router.get("/me", response_model=VisitListResponse)
def my_visits(
    current_user: User = Depends(require(Operation.LIST_OWN_VISITS)),
    db: Session = Depends(get_db),
):
    return _list(service.list_for_guest(db, current_user.id))


# ---------------------------------------------------------------------------
# GET /api/visits/host  – requests addressed to the current host
# ---------------------------------------------------------------------------


@router.get("/host", response_model=VisitListResponse)
def host_visits(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by visit status"),
    current_user: User = Depends(require(Operation.LIST_HOST_VISITS)),
    db: Session = Depends(get_db),
):
    return _list(service.list_for_host(db, current_user.id, status_filter))


# ---------------------------------------------------------------------------
# PATCH /api/visits/{id}/approve  – host forwards to security
# ---------------------------------------------------------------------------


@router.patch("/{request_id}/approve", response_model=VisitResponse)
def approve_visit(
    request_id: int,
    current_user: User = Depends(require(Operation.HOST_DECIDE)),
    db: Session = Depends(get_db),
):
    visit = service.host_decide(db, request_id, current_user.id, service.Decision.approve)
    return VisitResponse(
        message="Visit request approved successfully",
        data=VisitData(visit=VisitRow.model_validate(visit)),
    )


# ---------------------------------------------------------------------------
# PATCH /api/visits/{id}/reject  – host rejects with a reason
# ---------------------------------------------------------------------------


@router.patch("/{request_id}/reject", response_model=VisitResponse)
def reject_visit(
    request_id: int,
    body: HostRejectRequest,
    current_user: User = Depends(require(Operation.HOST_DECIDE)),
    db: Session = Depends(get_db),
):
    visit = service.host_decide(
        db, request_id, current_user.id, service.Decision.reject, body.rejection_reason
    )
    return VisitResponse(
        message="Visit request rejected",
        data=VisitData(visit=VisitRow.model_validate(visit)),
    )
