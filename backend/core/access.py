# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Access control gate.

Every gated endpoint names one :class:`Operation`.  ``PERMISSIONS`` maps
each operation to the roles allowed to perform it.  The table is checked
at import time: an operation without an entry, or an entry naming
something that is not a :class:`Role`, stops the service from starting.

Usage::

    @router.post("/check-in")
    def check_in(..., current_user: User = Depends(require(Operation.CHECK_IN))):
"""

import enum

from fastapi import Depends

from core.errors import AuthorizationError
from core.security import get_current_user
from models.user import Role, User


class Operation(str, enum.Enum):
    # guest
    CREATE_VISIT = "create_visit"
    LIST_OWN_VISITS = "list_own_visits"
    # host
    LIST_HOST_VISITS = "list_host_visits"
    HOST_DECIDE = "host_decide"
    # security
    LIST_PENDING_SECURITY = "list_pending_security"
    SECURITY_DECIDE = "security_decide"
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    LOOKUP_PASS = "lookup_pass"
    # admin
    LIST_USERS = "list_users"
    CHANGE_ROLE = "change_role"
    FULL_REPORT = "full_report"
    PRESENT_REPORT = "present_report"
    STATS = "stats"
    AUDIT_LOGS = "audit_logs"
    # any authenticated role
    VIEW_PROFILE = "view_profile"
    LOGOUT = "logout"


_GUEST = frozenset({Role.guest})
_HOST = frozenset({Role.host})
_SECURITY = frozenset({Role.security})
_ADMIN = frozenset({Role.admin})
_ANYONE = frozenset(Role)

PERMISSIONS: dict[Operation, frozenset[Role]] = {
    Operation.CREATE_VISIT: _GUEST,
    Operation.LIST_OWN_VISITS: _GUEST,
    Operation.LIST_HOST_VISITS: _HOST,
    Operation.HOST_DECIDE: _HOST,
    Operation.LIST_PENDING_SECURITY: _SECURITY,
    Operation.SECURITY_DECIDE: _SECURITY,
    Operation.CHECK_IN: _SECURITY,
    Operation.CHECK_OUT: _SECURITY,
    Operation.LOOKUP_PASS: _SECURITY,
    Operation.LIST_USERS: _ADMIN,
    Operation.CHANGE_ROLE: _ADMIN,
    Operation.FULL_REPORT: _ADMIN,
    Operation.PRESENT_REPORT: _ADMIN,
    Operation.STATS: _ADMIN,
    Operation.AUDIT_LOGS: _ADMIN,
    Operation.VIEW_PROFILE: _ANYONE,
    Operation.LOGOUT: _ANYONE,
}


def _check_table() -> None:
    missing = set(Operation) - set(PERMISSIONS)
    if missing:
        raise RuntimeError(f"Operations without a permission entry: {sorted(m.value for m in missing)}")
    for op, roles in PERMISSIONS.items():
        if not roles or not all(isinstance(r, Role) for r in roles):
            raise RuntimeError(f"Permission entry for {op.value} must be a non-empty set of roles")


_check_table()


def is_allowed(role: Role, operation: Operation) -> bool:
    return role in PERMISSIONS[operation]


def require(operation: Operation):
    """
    Build a dependency that authenticates the caller (via
    :func:`get_current_user`) and then asserts their role may perform
    *operation*.  Raises AuthorizationError (403) otherwise.
    """

    def _guard(current_user: User = Depends(get_current_user)) -> User:
        if not is_allowed(current_user.role, operation):
            raise AuthorizationError("You do not have permission to perform this action")
        return current_user

    return _guard
