"""Worker performance and leaderboard endpoints."""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import TodayStatsResponse, WorkerPerformanceResponse, WorkerPerformanceUpsert
from ..use_cases.worker_performance import (
    get_today_stats_use_case,
    list_performance_use_case,
    upsert_performance_use_case,
)

router = APIRouter(prefix="/worker-performance", tags=["worker-performance"])


@router.get("/today/{worker_id}", response_model=TodayStatsResponse)
def get_today_stats(
    worker_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_today_stats_use_case(db=db, worker_id=worker_id, current_user=current_user)


@router.get("", response_model=list[WorkerPerformanceResponse])
def get_leaderboard(
    warehouse: Optional[str] = None,
    day: Optional[date] = Query(None, alias="date"),
    limit: Optional[int] = None,
    current_user: User = Depends(PermissionChecker("canViewLeaderboard")),
    db: Session = Depends(get_db),
):
    """Ranked rows for one day; ``limit`` bounds the ranking window."""
    return list_performance_use_case(
        db=db,
        current_user=current_user,
        day=day,
        warehouse=warehouse,
        limit=limit,
    )


@router.post("", response_model=WorkerPerformanceResponse)
def upsert_performance(
    payload: WorkerPerformanceUpsert,
    current_user: User = Depends(PermissionChecker("canManagePerformance")),
    db: Session = Depends(get_db),
):
    row = upsert_performance_use_case(db=db, current_user=current_user, payload=payload)
    return WorkerPerformanceResponse.model_validate(row)
