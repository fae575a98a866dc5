# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Entry permit issuer.

``issue_pass`` mints the one permit a visit request may ever have and flips
the request to ``approved`` in the same transaction.  The status flip is a
conditional UPDATE (``WHERE status = 'pending_security'``): when two
security officers approve the same request concurrently, exactly one
UPDATE matches a row and the other caller gets a StateError.  No permit is
written unless the flip succeeded, and a failure after the flip rolls the
flip back.
"""

import secrets
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from core.clock import utcnow
from core.errors import StateError, UnexpectedError
from core.logger import logger
from database import atomic
from models import Pass, VisitRequest, VisitStatus

# Fixed for every permit; not configurable per request
PASS_VALIDITY_HOURS = 8

_CODE_BYTES = 4          # 4 random bytes → 8 hex characters
_MAX_CODE_ATTEMPTS = 64  # a collision streak this long means something is broken


class IssuedPass(NamedTuple):
    entry_pass: Pass
    validity_hours: int


def generate_pass_code() -> str:
    """8 upper-case hex characters from the OS CSPRNG."""
    return secrets.token_bytes(_CODE_BYTES).hex().upper()


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def _unique_code(db: Session) -> str:
    for _ in range(_MAX_CODE_ATTEMPTS):
        code = generate_pass_code()
        if not db.query(Pass.id).filter(Pass.code == code).first():
            return code
        logger.warning("pass code collision on %s – regenerating", code)
    raise UnexpectedError("Could not generate a unique pass code")


def issue_pass(
    db: Session,
    request_id: int,
    issuing_security_id: int,
    now: Optional[datetime] = None,
) -> IssuedPass:
    """
    Approve *request_id* and bind a fresh permit to it.

    Raises StateError if the request is no longer ``pending_security`` at
    the moment of the write.
    """
    valid_from = now or utcnow()

    with atomic(db):
        claimed = (
            db.query(VisitRequest)
            .filter(
                VisitRequest.id == request_id,
                VisitRequest.status == VisitStatus.pending_security,
            )
            .update(
                {VisitRequest.status: VisitStatus.approved, VisitRequest.updated_at: utcnow()},
                synchronize_session=False,
            )
        )
        if claimed != 1:
            raise StateError("Visit request is no longer awaiting security review")

        entry_pass = Pass(
            visit_request_id=request_id,
            code=_unique_code(db),
            issued_by=issuing_security_id,
            valid_from=valid_from,
            valid_until=valid_from + timedelta(hours=PASS_VALIDITY_HOURS),
            is_used=False,
        )
        db.add(entry_pass)
        db.flush()

    db.refresh(entry_pass)
    logger.info(
        "pass issued | visit_request_id=%d pass_id=%d issued_by=%d",
        request_id,
        entry_pass.id,
        issuing_security_id,
    )
    return IssuedPass(entry_pass, PASS_VALIDITY_HOURS)
