# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""ORM models.  Importing this package registers every table on Base."""

from models.user import Role, User
from models.visit_request import VisitRequest, VisitStatus
from models.entry_pass import Pass
from models.traffic_log import TrafficLog
from models.token_blacklist import TokenBlacklist
from models.audit_log import AuditAction, AuditLog

__all__ = [
    "AuditAction",
    "AuditLog",
    "Pass",
    "Role",
    "TokenBlacklist",
    "TrafficLog",
    "User",
    "VisitRequest",
    "VisitStatus",
]
