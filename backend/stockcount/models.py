"""SQLAlchemy models for users, bins, counting sessions and derived performance."""
from sqlalchemy import (
    Boolean, Column, Computed, String, Integer, Date, DateTime, Numeric, Text,
    ForeignKey, CheckConstraint, Index, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from .database import Base


USER_ROLES = ("admin", "vendor", "team_leader", "worker")
SESSION_STATUSES = ("active", "completed")


class User(Base):
    """User model (flat record; hierarchy via nullable parent links)."""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # Login name; also the "username" stamped onto counting and performance rows.
    user_id = Column(String(100), unique=True, nullable=False, index=True)
    role = Column(String(20), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    warehouse_name = Column(String(255), nullable=True)
    vendor_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    team_leader_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    is_approved = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(role.in_(USER_ROLES), name="chk_user_role"),
    )


class BinRecord(Base):
    """Bin master row: book quantity per (bin, warehouse)."""
    __tablename__ = "bin_master"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bin_no = Column(String(100), nullable=False)
    warehouse_name = Column(String(255), nullable=False, index=True)
    qty_as_per_books = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(qty_as_per_books >= 0, name="chk_bin_qty_non_negative"),
        UniqueConstraint("bin_no", "warehouse_name", name="uq_bin_master_bin_warehouse"),
    )


class CountingSession(Base):
    """Worker counting session."""
    __tablename__ = "counting_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    worker_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    team_leader_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    warehouse_name = Column(String(255), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    end_time = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(SESSION_STATUSES), name="chk_counting_session_status"),
        CheckConstraint(
            "end_time IS NULL OR end_time >= start_time",
            name="chk_counting_session_end_after_start",
        ),
        # One active session per worker.
        Index(
            "uq_counting_sessions_active_worker",
            "worker_id",
            unique=True,
            postgresql_where=(status == "active"),
            sqlite_where=(status == "active"),
        ),
    )

    worker = relationship("User", foreign_keys=[worker_id])
    team_leader = relationship("User", foreign_keys=[team_leader_id])
    records = relationship("CountingRecord", back_populates="session")


class CountingRecord(Base):
    """One bin count submission."""
    __tablename__ = "counting_data"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("counting_sessions.id"), nullable=False, index=True)
    wh_name = Column(String(255), nullable=False)
    date = Column(Date, nullable=False, index=True)
    tl_name = Column(String(100), nullable=False)
    username = Column(String(100), nullable=False, index=True)
    bin_no = Column(String(100), nullable=False)
    qty_counted = Column(Integer, nullable=False)
    qty_recounted_tl = Column(Integer, nullable=True)
    qty_as_per_books = Column(Integer, nullable=False)
    difference = Column(
        Integer,
        Computed("COALESCE(qty_recounted_tl, qty_counted) - qty_as_per_books", persisted=True),
    )
    reason_for_difference = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (
        CheckConstraint(qty_counted >= 0, name="chk_counting_qty_non_negative"),
        CheckConstraint(
            "qty_recounted_tl IS NULL OR qty_recounted_tl >= 0",
            name="chk_counting_recount_non_negative",
        ),
    )

    session = relationship("CountingSession", back_populates="records")


class WorkerPerformance(Base):
    """Per-worker per-day counting totals."""
    __tablename__ = "worker_performance"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    wh_name = Column(String(255), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    username = Column(String(100), nullable=False)
    no_of_bins_counted = Column(Integer, nullable=False, default=0)
    no_of_qty_counted = Column(Integer, nullable=False, default=0)
    time_taken_minutes = Column(Integer, nullable=False, default=0)
    efficiency = Column(Numeric(8, 2, asdecimal=False), nullable=False, default=0)
    ranking = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("username", "date", name="uq_worker_performance_user_date"),
    )


class OTPRequest(Base):
    """Worker login approval request, addressed to the worker's team leader."""
    __tablename__ = "otp_requests"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    worker_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    team_leader_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    otp_code = Column(String(16), nullable=False)
    is_approved = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    worker = relationship("User", foreign_keys=[worker_id])


class AuditLog(Base):
    """Append-only audit trail."""
    __tablename__ = "audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String(50), nullable=False, index=True)
    details = Column(Text, nullable=False)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
