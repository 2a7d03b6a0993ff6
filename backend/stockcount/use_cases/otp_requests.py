"""Worker login approval codes (OTP) issued to a worker's team leader.

Expiry is checked against the current time when a row is read; expired rows
are left in place and simply ignored.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import DomainError, ForbiddenError, NotFoundError
from ..models import OTPRequest, User
from ..services.audit_trail import append_audit_log
from ..services.performance_math import as_utc


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_otp_code(length: int | None = None) -> str:
    size = length or settings.OTP_CODE_LENGTH
    return "".join(secrets.choice("0123456789") for _ in range(size))


def is_expired(otp: OTPRequest, now: datetime | None = None) -> bool:
    return as_utc(otp.expires_at) <= (now or _utc_now())


def request_otp_use_case(*, db: Session, current_user: User) -> OTPRequest:
    if current_user.role != "worker":
        raise ForbiddenError("OTP_WORKERS_ONLY", "Only workers request login approval")
    if current_user.team_leader_id is None:
        raise DomainError(
            code="TEAM_LEADER_NOT_ASSIGNED",
            http_status=400,
            message="Worker has no team leader assigned",
        )

    now = _utc_now()
    otp = OTPRequest(
        worker_id=current_user.id,
        team_leader_id=current_user.team_leader_id,
        otp_code=generate_otp_code(),
        is_approved=False,
        expires_at=now + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        created_at=now,
    )
    db.add(otp)
    db.commit()
    db.refresh(otp)

    append_audit_log(
        db,
        user_id=current_user.id,
        action="OTP_REQUESTED",
        details=f"Login approval requested by {current_user.user_id}",
    )
    return otp


def list_pending_otp_use_case(*, db: Session, current_user: User) -> list[OTPRequest]:
    query = db.query(OTPRequest).filter(OTPRequest.is_approved.is_(False))
    if current_user.role != "admin":
        query = query.filter(OTPRequest.team_leader_id == current_user.id)
    rows = query.order_by(OTPRequest.created_at.desc()).all()
    now = _utc_now()
    return [row for row in rows if not is_expired(row, now)]


def _get_actionable_otp(*, db: Session, current_user: User, request_id: UUID) -> OTPRequest:
    otp = db.query(OTPRequest).filter(OTPRequest.id == request_id).first()
    if not otp:
        raise NotFoundError("OTP_NOT_FOUND", "OTP request not found")
    if current_user.role != "admin" and otp.team_leader_id != current_user.id:
        raise ForbiddenError("OTP_ACCESS_DENIED", "OTP request is addressed to another team leader")
    if is_expired(otp):
        raise DomainError(code="OTP_EXPIRED", http_status=410, message="OTP request has expired")
    return otp


def approve_otp_use_case(*, db: Session, current_user: User, request_id: UUID) -> OTPRequest:
    otp = _get_actionable_otp(db=db, current_user=current_user, request_id=request_id)
    otp.is_approved = True
    db.commit()
    db.refresh(otp)

    append_audit_log(
        db,
        user_id=current_user.id,
        action="OTP_APPROVED",
        details=f"Approved login request {otp.id}",
    )
    return otp


def reject_otp_use_case(*, db: Session, current_user: User, request_id: UUID) -> OTPRequest:
    otp = _get_actionable_otp(db=db, current_user=current_user, request_id=request_id)
    otp.is_approved = False
    otp.expires_at = _utc_now()
    db.commit()
    db.refresh(otp)

    append_audit_log(
        db,
        user_id=current_user.id,
        action="OTP_REJECTED",
        details=f"Rejected login request {otp.id}",
    )
    return otp


def verify_otp_use_case(*, db: Session, current_user: User, code: str) -> bool:
    """True for an approved, unexpired request of this worker carrying ``code``."""
    candidates = (
        db.query(OTPRequest)
        .filter(
            OTPRequest.worker_id == current_user.id,
            OTPRequest.is_approved.is_(True),
        )
        .order_by(OTPRequest.created_at.desc())
        .all()
    )
    now = _utc_now()
    return any(
        not is_expired(otp, now) and secrets.compare_digest(otp.otp_code, code.strip())
        for otp in candidates
    )
