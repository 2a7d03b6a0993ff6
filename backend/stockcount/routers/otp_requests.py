"""Login approval (OTP) endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import OTPPendingResponse, OTPRequestResponse, OTPVerifyRequest, OTPVerifyResponse
from ..use_cases.otp_requests import (
    approve_otp_use_case,
    list_pending_otp_use_case,
    reject_otp_use_case,
    request_otp_use_case,
    verify_otp_use_case,
)

router = APIRouter(prefix="/otp-requests", tags=["otp"])


@router.post("", response_model=OTPRequestResponse, status_code=201)
def request_otp(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Worker asks their team leader for a login approval code."""
    otp = request_otp_use_case(db=db, current_user=current_user)
    return OTPRequestResponse.model_validate(otp)


@router.get("/pending", response_model=list[OTPPendingResponse])
def list_pending(
    current_user: User = Depends(PermissionChecker("canApproveOtp")),
    db: Session = Depends(get_db),
):
    rows = list_pending_otp_use_case(db=db, current_user=current_user)
    return [
        OTPPendingResponse(
            id=row.id,
            worker_id=row.worker_id,
            team_leader_id=row.team_leader_id,
            is_approved=row.is_approved,
            expires_at=row.expires_at,
            created_at=row.created_at,
            otp_code=row.otp_code,
            worker_user_id=row.worker.user_id if row.worker else None,
        )
        for row in rows
    ]


@router.post("/{request_id}/approve", response_model=OTPRequestResponse)
def approve(
    request_id: UUID,
    current_user: User = Depends(PermissionChecker("canApproveOtp")),
    db: Session = Depends(get_db),
):
    otp = approve_otp_use_case(db=db, current_user=current_user, request_id=request_id)
    return OTPRequestResponse.model_validate(otp)


@router.post("/{request_id}/reject", response_model=OTPRequestResponse)
def reject(
    request_id: UUID,
    current_user: User = Depends(PermissionChecker("canApproveOtp")),
    db: Session = Depends(get_db),
):
    otp = reject_otp_use_case(db=db, current_user=current_user, request_id=request_id)
    return OTPRequestResponse.model_validate(otp)


@router.post("/verify", response_model=OTPVerifyResponse)
def verify(
    payload: OTPVerifyRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return OTPVerifyResponse(valid=verify_otp_use_case(db=db, current_user=current_user, code=payload.code))
