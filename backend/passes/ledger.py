# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Permit redemption ledger – check-in, check-out and lookup by code.

Invariants
----------
* ``Pass.is_used`` is true exactly when a TrafficLog row exists for the
  pass.  Check-in sets the flag and inserts the log in one transaction.
* The flag is claimed with a conditional UPDATE (``WHERE is_used = false``)
  inside that transaction, so of two concurrent check-ins with the same
  code only one can win, even though both passed the pre-checks.
* Check-out is likewise a conditional UPDATE on ``checked_out_at IS NULL``.
"""

import enum
from datetime import datetime
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from core.clock import as_utc, utcnow
from core.errors import NotFoundError, StateError, ValidationError
from core.logger import logger
from database import atomic
from models import Pass, TrafficLog
from passes.issuer import normalize_code


class PassStatus(str, enum.Enum):
    completed = "completed"
    checked_in = "checked_in"
    expired = "expired"
    not_yet_valid = "not_yet_valid"
    valid = "valid"


class PassLookup(NamedTuple):
    entry_pass: Pass
    status: PassStatus


def derive_status(entry_pass: Pass, now: datetime) -> PassStatus:
    """
    Display status, first match wins:
    completed > checked_in > expired > not_yet_valid > valid.

    A pass that was checked out after its window closed still reports
    ``completed``.
    """
    log = entry_pass.traffic_log
    if log is not None and log.checked_out_at is not None:
        return PassStatus.completed
    if log is not None and log.checked_in_at is not None:
        return PassStatus.checked_in
    if now > as_utc(entry_pass.valid_until):
        return PassStatus.expired
    if now < as_utc(entry_pass.valid_from):
        return PassStatus.not_yet_valid
    return PassStatus.valid


def _find_pass(db: Session, code: Optional[str]) -> Pass:
    normalized = normalize_code(code)
    if not normalized:
        raise ValidationError("Pass code is required")
    entry_pass = db.query(Pass).filter(Pass.code == normalized).first()
    if not entry_pass:
        raise NotFoundError("Invalid pass code")
    return entry_pass


def check_in(
    db: Session,
    code: Optional[str],
    security_id: int,
    now: Optional[datetime] = None,
) -> TrafficLog:
    """Redeem a permit at the gate.  Returns the new TrafficLog row."""
    entry_pass = _find_pass(db, code)
    now = now or utcnow()

    if entry_pass.is_used:
        raise StateError("This pass has already been used for check-in", code="already_used")
    if now > as_utc(entry_pass.valid_until):
        raise StateError("This pass has expired", code="expired")
    if now < as_utc(entry_pass.valid_from):
        raise StateError("This pass is not yet valid", code="not_yet_valid")

    with atomic(db):
        claimed = (
            db.query(Pass)
            .filter(Pass.id == entry_pass.id, Pass.is_used.is_(False))
            .update({Pass.is_used: True}, synchronize_session=False)
        )
        if claimed != 1:
            raise StateError("This pass has already been used for check-in", code="already_used")

        traffic_log = TrafficLog(
            pass_id=entry_pass.id,
            checked_in_at=now,
            recorded_by=security_id,
        )
        db.add(traffic_log)

    db.refresh(traffic_log)
    logger.info(
        "check-in | pass_id=%d traffic_log_id=%d recorded_by=%d",
        entry_pass.id,
        traffic_log.id,
        security_id,
    )
    return traffic_log


def check_out(db: Session, code: Optional[str], now: Optional[datetime] = None) -> TrafficLog:
    """
    Close the presence episode of a checked-in permit.  Any security
    officer may do this, not only the one who recorded the check-in.
    """
    entry_pass = _find_pass(db, code)
    traffic_log = entry_pass.traffic_log

    if traffic_log is None:
        raise StateError("This pass has not been checked in yet", code="not_checked_in")
    if traffic_log.checked_out_at is not None:
        raise StateError("This pass has already been checked out", code="already_checked_out")

    with atomic(db):
        closed = (
            db.query(TrafficLog)
            .filter(TrafficLog.id == traffic_log.id, TrafficLog.checked_out_at.is_(None))
            .update({TrafficLog.checked_out_at: now or utcnow()}, synchronize_session=False)
        )
        if closed != 1:
            raise StateError("This pass has already been checked out", code="already_checked_out")

    db.refresh(traffic_log)
    logger.info("check-out | pass_id=%d traffic_log_id=%d", entry_pass.id, traffic_log.id)
    return traffic_log


def lookup(db: Session, code: Optional[str], now: Optional[datetime] = None) -> PassLookup:
    """Read-only: the permit plus its derived display status."""
    entry_pass = _find_pass(db, code)
    return PassLookup(entry_pass, derive_status(entry_pass, now or utcnow()))
