# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""User administration: listing accounts, role changes, the audit trail."""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from admin.schemas import AuditLogRow
from core.errors import NotFoundError, ValidationError
from core.logger import logger
from database import atomic
from models import AuditAction, AuditLog, Role, User

_ROLE_CHOICES = ", ".join(r.value for r in Role)


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def change_role(
    db: Session,
    admin: User,
    user_id: int,
    role: Optional[str],
    request_ip: Optional[str] = None,
) -> User:
    """
    Set *user_id*'s role.  Guards:
    * The role must be one of the four fixed values.
    * An admin cannot change their own role (prevents accidental self-lockout).

    Every change is written to the audit trail in the same transaction.
    """
    try:
        new_role = Role((role or "").strip())
    except ValueError:
        raise ValidationError(f"Invalid role. Must be one of: {_ROLE_CHOICES}")

    if user_id == admin.id:
        raise ValidationError("Cannot change your own role")

    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise NotFoundError("User not found")

    old_role = target.role
    with atomic(db):
        target.role = new_role
        db.add(AuditLog(
            admin_id=admin.id,
            target_user_id=target.id,
            action=AuditAction.change_role.value,
            detail=f"{old_role.value} -> {new_role.value}",
            request_ip=request_ip,
        ))
    db.refresh(target)

    logger.info(
        "role changed | admin_id=%d user_id=%d %s -> %s",
        admin.id,
        target.id,
        old_role.value,
        new_role.value,
    )
    return target


def list_audit_logs(db: Session, limit: int = 200) -> list[AuditLogRow]:
    """Newest first, with the admin and target users resolved to emails."""
    rows = (
        db.query(AuditLog)
        .options(joinedload(AuditLog.admin), joinedload(AuditLog.target))
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )
    return [
        AuditLogRow(
            id=row.id,
            admin_email=row.admin.email if row.admin else None,
            target_email=row.target.email if row.target else None,
            action=row.action,
            detail=row.detail,
            request_ip=row.request_ip,
            created_at=row.created_at,
        )
        for row in rows
    ]
