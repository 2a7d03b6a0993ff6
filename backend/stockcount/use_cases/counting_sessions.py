"""Counting session lifecycle: start, look up active, end."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import ConflictError, DomainError, ForbiddenError, InvalidInputError, NotFoundError
from ..models import CountingSession, User
from ..schemas import CountingSessionStart
from ..security import can_access_session, is_superior_of, require_user_with_role
from ..services.audit_trail import append_audit_log
from ..services.performance_math import as_utc
from .worker_performance import refresh_session_time

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_session_or_404(*, db: Session, session_id: UUID, for_update: bool = False) -> CountingSession:
    query = db.query(CountingSession).filter(CountingSession.id == session_id)
    if for_update:
        # Serializes concurrent ends of the same session on PostgreSQL.
        query = query.with_for_update()
    session = query.first()
    if not session:
        raise NotFoundError("SESSION_NOT_FOUND", "Session not found")
    return session


def find_active_session(*, db: Session, worker_id: UUID) -> CountingSession | None:
    return (
        db.query(CountingSession)
        .filter(CountingSession.worker_id == worker_id, CountingSession.status == "active")
        .first()
    )


def _ensure_can_act_for_worker(current_user: User, worker: User) -> None:
    if current_user.id == worker.id or is_superior_of(current_user, worker):
        return
    raise ForbiddenError("SESSION_ACCESS_DENIED", "Access denied")


def start_session_use_case(
    *,
    db: Session,
    current_user: User,
    payload: CountingSessionStart,
) -> CountingSession:
    """Open a session; a worker may hold at most one active session."""
    worker = require_user_with_role(
        db,
        user_id=payload.worker_id,
        role="worker",
        code="WORKER_NOT_FOUND",
        not_found="Worker not found",
    )
    team_leader = require_user_with_role(
        db,
        user_id=payload.team_leader_id,
        role="team_leader",
        code="TEAM_LEADER_NOT_FOUND",
        not_found="Team leader not found",
    )
    _ensure_can_act_for_worker(current_user, worker)
    if current_user.role != "admin" and team_leader.id != worker.team_leader_id:
        raise ForbiddenError(
            "TEAM_LEADER_MISMATCH",
            "Sessions must be opened with the worker's own team leader",
        )

    warehouse_name = payload.warehouse_name.strip()
    if not warehouse_name:
        raise InvalidInputError("WAREHOUSE_REQUIRED", "warehouseName is required")

    if find_active_session(db=db, worker_id=worker.id) is not None:
        raise ConflictError(
            "SESSION_ALREADY_ACTIVE",
            "Worker already has an active counting session",
        )

    now = _utc_now()
    session = CountingSession(
        worker_id=worker.id,
        team_leader_id=team_leader.id,
        warehouse_name=warehouse_name,
        start_time=now,
        status="active",
        created_at=now,
    )
    db.add(session)
    try:
        db.commit()
    except IntegrityError:
        # Partial unique index caught a concurrent start.
        db.rollback()
        raise ConflictError(
            "SESSION_ALREADY_ACTIVE",
            "Worker already has an active counting session",
        )
    db.refresh(session)

    if settings.DEBUG:
        logger.info("session.start id=%s worker=%s warehouse=%s", session.id, worker.user_id, session.warehouse_name)

    append_audit_log(
        db,
        user_id=current_user.id,
        action="START_SESSION",
        details=f"Started counting session in {session.warehouse_name} for {worker.user_id}",
    )
    return session


def get_active_session_use_case(
    *,
    db: Session,
    current_user: User,
    worker_id: UUID,
) -> CountingSession | None:
    worker = require_user_with_role(
        db,
        user_id=worker_id,
        role="worker",
        code="WORKER_NOT_FOUND",
        not_found="Worker not found",
    )
    _ensure_can_act_for_worker(current_user, worker)
    return find_active_session(db=db, worker_id=worker_id)


def end_session_use_case(
    *,
    db: Session,
    current_user: User,
    session_id: UUID,
) -> CountingSession:
    """Complete a session exactly once; end_time never moves afterwards."""
    session = get_session_or_404(db=db, session_id=session_id, for_update=True)
    worker = session.worker
    if not can_access_session(current_user, session, worker):
        raise ForbiddenError("SESSION_ACCESS_DENIED", "Access denied")

    if session.status == "completed":
        raise ConflictError(
            "SESSION_ALREADY_COMPLETED",
            "Counting session is already completed",
            details={"end_time": session.end_time.isoformat() if session.end_time else None},
        )

    now = _utc_now()
    start = as_utc(session.start_time)
    session.end_time = now if start is None or now >= start else start
    session.status = "completed"

    if worker is not None:
        refresh_session_time(
            db=db,
            session=session,
            username=worker.user_id,
            day=as_utc(session.end_time).date(),
        )

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to end counting session %s", session_id)
        raise DomainError(code="SESSION_END_FAILED", http_status=500, message="Failed to end counting session")
    db.refresh(session)

    if settings.DEBUG:
        logger.info("session.end id=%s", session.id)

    append_audit_log(
        db,
        user_id=current_user.id,
        action="END_SESSION",
        details=f"Ended counting session {session.id}",
    )
    return session
