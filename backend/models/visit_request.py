# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""VisitRequest ORM model and its lifecycle states."""

import enum

from sqlalchemy import Column, Integer, String, Text, Date, Enum, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from core.clock import utcnow
from database import Base


class VisitStatus(str, enum.Enum):
    pending_host_review = "pending_host_review"
    pending_security = "pending_security"
    approved = "approved"
    rejected_by_host = "rejected_by_host"
    rejected_by_security = "rejected_by_security"


# The only edges of the lifecycle.  Terminal states have no entry.
TRANSITIONS = {
    VisitStatus.pending_host_review: frozenset(
        {VisitStatus.pending_security, VisitStatus.rejected_by_host}
    ),
    VisitStatus.pending_security: frozenset(
        {VisitStatus.approved, VisitStatus.rejected_by_security}
    ),
}

TERMINAL_STATES = frozenset(set(VisitStatus) - set(TRANSITIONS))


class VisitRequest(Base):
    __tablename__ = "visit_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    guest_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    host_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    purpose = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    visit_date = Column(Date, nullable=False)
    status = Column(
        Enum(VisitStatus, name="visit_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=VisitStatus.pending_host_review,
        index=True,
    )
    # Shared by both rejection branches (host and security)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    guest = relationship("User", foreign_keys=[guest_id])
    host = relationship("User", foreign_keys=[host_id])
    entry_pass = relationship("Pass", back_populates="visit_request", uselist=False)
