# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""AuditLog ORM model – logins and admin role changes."""

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from core.clock import utcnow
from database import Base


class AuditAction(str, enum.Enum):
    user_login = "user_login"
    change_role = "change_role"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # NULL for login events; the actor is then the target
    admin_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    target_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    # Stored as plain text so old rows survive new action names
    action = Column(String(64), nullable=False, index=True)
    detail = Column(Text, nullable=True)         # "guest -> host" for role changes
    request_ip = Column(String(45), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    admin = relationship("User", foreign_keys=[admin_id])
    target = relationship("User", foreign_keys=[target_user_id])
