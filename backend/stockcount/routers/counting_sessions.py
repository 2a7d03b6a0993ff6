"""Counting session endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import CountingSessionResponse, CountingSessionStart
from ..use_cases.counting_sessions import (
    end_session_use_case,
    get_active_session_use_case,
    start_session_use_case,
)

router = APIRouter(prefix="/counting-session", tags=["counting-session"])


@router.get("/active/{worker_id}", response_model=Optional[CountingSessionResponse])
def get_active_session(
    worker_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Active session of a worker, or null."""
    session = get_active_session_use_case(db=db, current_user=current_user, worker_id=worker_id)
    if session is None:
        return None
    return CountingSessionResponse.model_validate(session)


@router.post("/start", response_model=CountingSessionResponse, status_code=201)
def start_session(
    payload: CountingSessionStart,
    current_user: User = Depends(PermissionChecker("canCount")),
    db: Session = Depends(get_db),
):
    session = start_session_use_case(db=db, current_user=current_user, payload=payload)
    return CountingSessionResponse.model_validate(session)


@router.post("/end/{session_id}", response_model=CountingSessionResponse)
def end_session(
    session_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = end_session_use_case(db=db, current_user=current_user, session_id=session_id)
    return CountingSessionResponse.model_validate(session)
