"""Counting data endpoints."""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import CountingDataCreate, CountingRecordResponse, RecountRequest
from ..use_cases.counting_data import list_counts_use_case, record_count_use_case, recount_use_case
from .auth import get_client_ip

router = APIRouter(prefix="/counting-data", tags=["counting-data"])


@router.post("", response_model=CountingRecordResponse, status_code=201)
def record_count(
    payload: CountingDataCreate,
    request: Request,
    current_user: User = Depends(PermissionChecker("canCount")),
    db: Session = Depends(get_db),
):
    """Record one bin count and fold it into today's performance row."""
    record = record_count_use_case(
        db=db,
        current_user=current_user,
        payload=payload,
        ip_address=get_client_ip(request),
    )
    return CountingRecordResponse.model_validate(record)


@router.get("", response_model=list[CountingRecordResponse])
def list_counts(
    session_id: Optional[UUID] = Query(None, alias="sessionId"),
    username: Optional[str] = Query(None, alias="workerId"),
    day: Optional[date] = Query(None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    records = list_counts_use_case(
        db=db,
        current_user=current_user,
        session_id=session_id,
        username=username,
        day=day,
    )
    return [CountingRecordResponse.model_validate(r) for r in records]


@router.patch("/{record_id}/recount", response_model=CountingRecordResponse)
def recount(
    record_id: UUID,
    payload: RecountRequest,
    current_user: User = Depends(PermissionChecker("canRecount")),
    db: Session = Depends(get_db),
):
    record = recount_use_case(db=db, current_user=current_user, record_id=record_id, payload=payload)
    return CountingRecordResponse.model_validate(record)
