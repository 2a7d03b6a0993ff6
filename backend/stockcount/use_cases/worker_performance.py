"""Worker performance aggregation, leaderboard and dashboard use-cases."""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import ConflictError, DomainError, ForbiddenError, NotFoundError
from ..models import CountingSession, User, WorkerPerformance
from ..schemas import TodayStatsResponse, WorkerPerformanceResponse, WorkerPerformanceUpsert
from ..security import can_view_user, visible_usernames_query
from ..services.audit_trail import append_audit_log
from ..services.performance_math import (
    assign_rankings,
    compute_efficiency,
    elapsed_minutes,
    rank_order,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return _utc_now().date()


def _get_day_row_for_update(db: Session, *, username: str, day: date) -> WorkerPerformance | None:
    # Row lock serializes concurrent counts for the same worker/day on PostgreSQL.
    return (
        db.query(WorkerPerformance)
        .filter(WorkerPerformance.username == username, WorkerPerformance.date == day)
        .with_for_update()
        .first()
    )


def _new_day_row(*, wh_name: str, username: str, day: date) -> WorkerPerformance:
    return WorkerPerformance(
        wh_name=wh_name,
        date=day,
        username=username,
        no_of_bins_counted=0,
        no_of_qty_counted=0,
        time_taken_minutes=0,
        efficiency=0.0,
    )


def apply_count_to_performance(
    *,
    db: Session,
    session: CountingSession,
    username: str,
    qty_counted: int,
    day: date,
) -> WorkerPerformance:
    """Fold one bin count into the worker's day row. The caller commits.

    Minutes are taken from the session only once it has ended; counts made
    mid-session keep whatever minutes were stored before.
    """
    row = _get_day_row_for_update(db, username=username, day=day)
    if row is None:
        row = _new_day_row(wh_name=session.warehouse_name, username=username, day=day)
        db.add(row)

    row.no_of_bins_counted = int(row.no_of_bins_counted or 0) + 1
    row.no_of_qty_counted = int(row.no_of_qty_counted or 0) + int(qty_counted)

    minutes = elapsed_minutes(session.start_time, session.end_time)
    if minutes is not None:
        row.time_taken_minutes = minutes
    row.efficiency = compute_efficiency(row.no_of_bins_counted, int(row.time_taken_minutes or 0))
    return row


def refresh_session_time(
    *,
    db: Session,
    session: CountingSession,
    username: str,
    day: date,
) -> WorkerPerformance | None:
    """After a session ends, store its elapsed minutes on an existing day row. The caller commits."""
    minutes = elapsed_minutes(session.start_time, session.end_time)
    if minutes is None:
        return None
    row = _get_day_row_for_update(db, username=username, day=day)
    if row is None:
        return None
    row.time_taken_minutes = minutes
    row.efficiency = compute_efficiency(int(row.no_of_bins_counted or 0), minutes)
    return row


def list_performance_use_case(
    *,
    db: Session,
    current_user: User,
    day: date | None = None,
    warehouse: str | None = None,
    limit: int | None = None,
) -> list[WorkerPerformanceResponse]:
    """Leaderboard for one day.

    ``ranking`` is the position inside the returned (filtered, limited) window
    and is written back onto those rows only.
    """
    target_day = day or utc_today()
    window = settings.PERFORMANCE_DEFAULT_LIMIT if limit is None else limit
    if window < 1 or window > settings.PERFORMANCE_MAX_LIMIT:
        raise DomainError(
            code="PERFORMANCE_LIMIT_OUT_OF_RANGE",
            http_status=400,
            message=f"limit must be between 1 and {settings.PERFORMANCE_MAX_LIMIT}",
        )

    query = db.query(WorkerPerformance).filter(WorkerPerformance.date == target_day)
    if warehouse:
        query = query.filter(WorkerPerformance.wh_name == warehouse)
    visible = visible_usernames_query(db, current_user)
    if visible is not None:
        query = query.filter(WorkerPerformance.username.in_(visible))

    rows = (
        query.order_by(WorkerPerformance.efficiency.desc(), WorkerPerformance.username.asc())
        .limit(window)
        .all()
    )
    ranked = assign_rankings(rank_order(rows))
    result = [WorkerPerformanceResponse.model_validate(row) for row in ranked]

    try:
        db.commit()
    except SQLAlchemyError:
        # Rankings are a display aid; the computed window is still returned.
        db.rollback()
        logger.exception("Failed to persist rankings for date=%s warehouse=%s", target_day, warehouse)

    if settings.DEBUG:
        logger.info("performance.rank date=%s warehouse=%s rows=%d", target_day, warehouse, len(result))
    return result


def get_today_stats_use_case(*, db: Session, worker_id: UUID, current_user: User) -> TodayStatsResponse:
    """Today's totals for one worker, zeros when nothing was counted yet."""
    worker = db.query(User).filter(User.id == worker_id).first()
    if not worker:
        raise NotFoundError("USER_NOT_FOUND", "User not found")
    if not can_view_user(current_user, worker):
        raise ForbiddenError("PERFORMANCE_ACCESS_DENIED", "Access denied")

    row = (
        db.query(WorkerPerformance)
        .filter(WorkerPerformance.username == worker.user_id, WorkerPerformance.date == utc_today())
        .first()
    )
    if row is None:
        return TodayStatsResponse()
    return TodayStatsResponse(
        todayBins=int(row.no_of_bins_counted or 0),
        todayQuantity=int(row.no_of_qty_counted or 0),
        todayTime=int(row.time_taken_minutes or 0),
        efficiency=float(row.efficiency or 0),
        ranking=int(row.ranking or 0),
    )


def upsert_performance_use_case(
    *,
    db: Session,
    current_user: User,
    payload: WorkerPerformanceUpsert,
) -> WorkerPerformance:
    """Admin/bulk path: write a day row directly. Efficiency is always derived."""
    day = payload.date or utc_today()
    row = _get_day_row_for_update(db, username=payload.username, day=day)
    if row is None:
        row = _new_day_row(wh_name=payload.wh_name, username=payload.username, day=day)
        db.add(row)

    row.wh_name = payload.wh_name
    row.no_of_bins_counted = payload.no_of_bins_counted
    row.no_of_qty_counted = payload.no_of_qty_counted
    row.time_taken_minutes = payload.time_taken_minutes
    row.efficiency = compute_efficiency(payload.no_of_bins_counted, payload.time_taken_minutes)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(
            "PERFORMANCE_CONFLICT",
            "Performance row was created concurrently; retry the request",
        )
    db.refresh(row)

    append_audit_log(
        db,
        user_id=current_user.id,
        action="UPSERT_PERFORMANCE",
        details=f"Set performance for {payload.username} on {day.isoformat()}",
    )
    return row
