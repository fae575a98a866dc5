"""Initial schema – users, visit requests, passes, traffic, token blacklist, audit

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

Creates every table with the uniqueness constraints the lifecycle relies
on: one pass per visit request, one traffic log per pass, unique pass codes
and unique (lower-cased) emails.
"""

from alembic import op
import sqlalchemy as sa

# Alembic revision identifiers
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

_ROLES = ("guest", "host", "security", "admin")
_STATUSES = (
    "pending_host_review",
    "pending_security",
    "approved",
    "rejected_by_host",
    "rejected_by_security",
)


def _timestamps():
    # No NOW() defaults: the application writes every timestamp in UTC
    return (
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def upgrade() -> None:
    # -- users ----------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column(
            "role",
            sa.Enum(*_ROLES, name="user_role"),
            nullable=False,
            server_default="guest",
        ),
        *_timestamps(),
    )
    op.create_index("idx_users_email", "users", ["email"])

    # -- visit_requests -------------------------------------------------
    op.create_table(
        "visit_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("guest_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("host_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("purpose", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("visit_date", sa.Date(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*_STATUSES, name="visit_status"),
            nullable=False,
            server_default="pending_host_review",
        ),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_visit_requests_guest_id", "visit_requests", ["guest_id"])
    op.create_index("idx_visit_requests_host_id", "visit_requests", ["host_id"])
    op.create_index("idx_visit_requests_status", "visit_requests", ["status"])

    # -- passes ---------------------------------------------------------
    op.create_table(
        "passes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "visit_request_id",
            sa.Integer(),
            sa.ForeignKey("visit_requests.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("code", sa.String(16), nullable=False, unique=True),
        sa.Column("issued_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("valid_from <= valid_until", name="ck_passes_window"),
    )
    op.create_index("idx_passes_code", "passes", ["code"])

    # -- traffic_logs ---------------------------------------------------
    op.create_table(
        "traffic_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("pass_id", sa.Integer(), sa.ForeignKey("passes.id"), nullable=False, unique=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("checked_out_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("recorded_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_traffic_logs_checked_in_at", "traffic_logs", ["checked_in_at"])
    op.create_index("idx_traffic_logs_checked_out_at", "traffic_logs", ["checked_out_at"])

    # -- token_blacklist ------------------------------------------------
    op.create_table(
        "token_blacklist",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("jti", sa.String(64), nullable=False, unique=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_token_blacklist_user_id", "token_blacklist", ["user_id"])

    # -- audit_logs -----------------------------------------------------
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "admin_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "target_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("request_ip", sa.String(45), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_audit_logs_admin_id", "audit_logs", ["admin_id"])
    op.create_index("idx_audit_logs_target_user_id", "audit_logs", ["target_user_id"])
    op.create_index("idx_audit_logs_action", "audit_logs", ["action"])
    op.create_index("idx_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("token_blacklist")
    op.drop_table("traffic_logs")
    op.drop_table("passes")
    op.drop_table("visit_requests")
    op.drop_table("users")
