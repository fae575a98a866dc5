# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""Pass (entry permit) ORM model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from core.clock import utcnow
from database import Base


class Pass(Base):
    __tablename__ = "passes"
    __table_args__ = (CheckConstraint("valid_from <= valid_until", name="ck_passes_window"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    # UNIQUE: a visit request has at most one permit
    visit_request_id = Column(
        Integer,
        ForeignKey("visit_requests.id"),
        unique=True,
        nullable=False,
    )
    # 8 upper-case hex characters
    code = Column(String(16), unique=True, nullable=False, index=True)
    issued_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    valid_from = Column(DateTime(timezone=True), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=False)
    # Flips once, at check-in
    is_used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    visit_request = relationship("VisitRequest", back_populates="entry_pass")
    issuer = relationship("User", foreign_keys=[issued_by])
    traffic_log = relationship("TrafficLog", back_populates="entry_pass", uselist=False)
