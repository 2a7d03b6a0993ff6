"""initial schema: users, bin master, counting sessions/data, performance, OTP, audit

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _uuid_pk():
    return sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False)


def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True)


def upgrade() -> None:
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("user_id", sa.String(length=100), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("warehouse_name", sa.String(length=255), nullable=True),
        sa.Column("vendor_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("team_leader_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint(
            "role IN ('admin', 'vendor', 'team_leader', 'worker')",
            name="chk_user_role",
        ),
    )
    op.create_index("ix_users_user_id", "users", ["user_id"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_vendor_id", "users", ["vendor_id"])
    op.create_index("ix_users_team_leader_id", "users", ["team_leader_id"])

    op.create_table(
        "bin_master",
        _uuid_pk(),
        sa.Column("bin_no", sa.String(length=100), nullable=False),
        sa.Column("warehouse_name", sa.String(length=255), nullable=False),
        sa.Column("qty_as_per_books", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.CheckConstraint("qty_as_per_books >= 0", name="chk_bin_qty_non_negative"),
        sa.UniqueConstraint("bin_no", "warehouse_name", name="uq_bin_master_bin_warehouse"),
    )
    op.create_index("ix_bin_master_warehouse_name", "bin_master", ["warehouse_name"])

    op.create_table(
        "counting_sessions",
        _uuid_pk(),
        sa.Column("worker_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("team_leader_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("warehouse_name", sa.String(length=255), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        _created_at(),
        sa.CheckConstraint("status IN ('active', 'completed')", name="chk_counting_session_status"),
        sa.CheckConstraint(
            "end_time IS NULL OR end_time >= start_time",
            name="chk_counting_session_end_after_start",
        ),
    )
    op.create_index("ix_counting_sessions_worker_id", "counting_sessions", ["worker_id"])
    op.create_index("ix_counting_sessions_team_leader_id", "counting_sessions", ["team_leader_id"])
    op.create_index(
        "uq_counting_sessions_active_worker",
        "counting_sessions",
        ["worker_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "counting_data",
        _uuid_pk(),
        sa.Column("session_id", sa.Uuid(as_uuid=True), sa.ForeignKey("counting_sessions.id"), nullable=False),
        sa.Column("wh_name", sa.String(length=255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("tl_name", sa.String(length=100), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("bin_no", sa.String(length=100), nullable=False),
        sa.Column("qty_counted", sa.Integer(), nullable=False),
        sa.Column("qty_recounted_tl", sa.Integer(), nullable=True),
        sa.Column("qty_as_per_books", sa.Integer(), nullable=False),
        sa.Column(
            "difference",
            sa.Integer(),
            sa.Computed("COALESCE(qty_recounted_tl, qty_counted) - qty_as_per_books", persisted=True),
        ),
        sa.Column("reason_for_difference", sa.Text(), nullable=True),
        _created_at(),
        sa.CheckConstraint("qty_counted >= 0", name="chk_counting_qty_non_negative"),
        sa.CheckConstraint(
            "qty_recounted_tl IS NULL OR qty_recounted_tl >= 0",
            name="chk_counting_recount_non_negative",
        ),
    )
    op.create_index("ix_counting_data_session_id", "counting_data", ["session_id"])
    op.create_index("ix_counting_data_date", "counting_data", ["date"])
    op.create_index("ix_counting_data_username", "counting_data", ["username"])
    op.create_index("ix_counting_data_created_at", "counting_data", ["created_at"])

    op.create_table(
        "worker_performance",
        _uuid_pk(),
        sa.Column("wh_name", sa.String(length=255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("no_of_bins_counted", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("no_of_qty_counted", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_taken_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("efficiency", sa.Numeric(8, 2), nullable=False, server_default="0"),
        sa.Column("ranking", sa.Integer(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("username", "date", name="uq_worker_performance_user_date"),
    )
    op.create_index("ix_worker_performance_wh_name", "worker_performance", ["wh_name"])
    op.create_index("ix_worker_performance_date", "worker_performance", ["date"])

    op.create_table(
        "otp_requests",
        _uuid_pk(),
        sa.Column("worker_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("team_leader_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("otp_code", sa.String(length=16), nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
    )
    op.create_index("ix_otp_requests_worker_id", "otp_requests", ["worker_id"])
    op.create_index("ix_otp_requests_team_leader_id", "otp_requests", ["team_leader_id"])
    op.create_index("ix_otp_requests_expires_at", "otp_requests", ["expires_at"])

    op.create_table(
        "audit_logs",
        _uuid_pk(),
        sa.Column("user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        _created_at(),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("otp_requests")
    op.drop_table("worker_performance")
    op.drop_table("counting_data")
    op.drop_index("uq_counting_sessions_active_worker", table_name="counting_sessions")
    op.drop_table("counting_sessions")
    op.drop_table("bin_master")
    op.drop_table("users")
