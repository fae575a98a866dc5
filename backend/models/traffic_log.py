# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""TrafficLog ORM model – one physical presence episode per pass."""

from sqlalchemy import Column, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from core.clock import utcnow
from database import Base


class TrafficLog(Base):
    __tablename__ = "traffic_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pass_id = Column(Integer, ForeignKey("passes.id"), unique=True, nullable=False)
    checked_in_at = Column(DateTime(timezone=True), nullable=False, index=True)
    # NULL means the visitor is still on site
    checked_out_at = Column(DateTime(timezone=True), nullable=True, index=True)
    recorded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    entry_pass = relationship("Pass", back_populates="traffic_log")
    recorder = relationship("User", foreign_keys=[recorded_by])
