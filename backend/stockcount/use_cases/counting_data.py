"""Bin count recording, listing and team-leader recount."""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain_errors import ConflictError, DomainError, ForbiddenError, InvalidInputError, NotFoundError
from ..models import BinRecord, CountingRecord, CountingSession, User
from ..schemas import CountingDataCreate, RecountRequest
from ..security import can_access_session, visible_usernames_query
from ..services.audit_trail import append_audit_log
from .counting_sessions import get_session_or_404
from .worker_performance import apply_count_to_performance

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_book_quantity(
    *,
    db: Session,
    warehouse_name: str,
    bin_no: str,
    client_qty: int | None,
) -> int:
    """Book quantity snapshot for a submission.

    The catalog value wins; the client value is only used for bins that are
    not catalogued for the session's warehouse.
    """
    bin_record = (
        db.query(BinRecord)
        .filter(BinRecord.bin_no == bin_no, BinRecord.warehouse_name == warehouse_name)
        .first()
    )
    if bin_record is not None:
        book_qty = int(bin_record.qty_as_per_books or 0)
        if client_qty is not None and client_qty != book_qty:
            logger.warning(
                "Ignoring client book quantity for bin=%s warehouse=%s client=%s catalog=%s",
                bin_no,
                warehouse_name,
                client_qty,
                book_qty,
            )
        return book_qty
    if client_qty is None:
        raise NotFoundError(
            "BIN_NOT_FOUND",
            f"Bin {bin_no} not found in warehouse {warehouse_name}",
        )
    return int(client_qty)


def record_count_use_case(
    *,
    db: Session,
    current_user: User,
    payload: CountingDataCreate,
    ip_address: str | None = None,
) -> CountingRecord:
    """Store one bin count and fold it into the worker's day totals in one commit."""
    session = get_session_or_404(db=db, session_id=payload.session_id)
    worker = session.worker
    team_leader = session.team_leader
    if worker is None or team_leader is None:
        raise NotFoundError("SESSION_USERS_NOT_FOUND", "Session worker or team leader not found")
    if not can_access_session(current_user, session, worker):
        raise ForbiddenError("SESSION_ACCESS_DENIED", "Access denied")

    bin_no = payload.bin_no.strip()
    if not bin_no:
        raise InvalidInputError("BIN_NO_REQUIRED", "binNo is required")

    book_qty = resolve_book_quantity(
        db=db,
        warehouse_name=session.warehouse_name,
        bin_no=bin_no,
        client_qty=payload.qty_as_per_books,
    )

    now = _utc_now()
    day = now.date()
    record = CountingRecord(
        session_id=session.id,
        wh_name=session.warehouse_name,
        date=day,
        tl_name=team_leader.user_id,
        username=worker.user_id,
        bin_no=bin_no,
        qty_counted=payload.qty_counted,
        qty_as_per_books=book_qty,
        created_at=now,
    )
    db.add(record)
    apply_count_to_performance(
        db=db,
        session=session,
        username=worker.user_id,
        qty_counted=payload.qty_counted,
        day=day,
    )

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.exception("Concurrent performance row creation for %s on %s", worker.user_id, day)
        raise ConflictError(
            "PERFORMANCE_CONFLICT",
            "Count could not be applied concurrently; retry the request",
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to record count for session %s", session.id)
        raise DomainError(code="COUNT_SAVE_FAILED", http_status=500, message="Failed to save counting data")
    db.refresh(record)

    append_audit_log(
        db,
        user_id=session.worker_id,
        action="COUNT_BIN",
        details=f"Counted bin {bin_no}: {payload.qty_counted} units",
        ip_address=ip_address,
    )
    return record


def list_counts_use_case(
    *,
    db: Session,
    current_user: User,
    session_id: UUID | None = None,
    username: str | None = None,
    day: date | None = None,
) -> list[CountingRecord]:
    """Counting records, most recent first, within the caller's visible scope."""
    query = db.query(CountingRecord)
    if session_id:
        query = query.filter(CountingRecord.session_id == session_id)
    if username:
        query = query.filter(CountingRecord.username == username)
    if day:
        query = query.filter(CountingRecord.date == day)

    visible = visible_usernames_query(db, current_user)
    if visible is not None:
        query = query.filter(CountingRecord.username.in_(visible))

    return query.order_by(CountingRecord.created_at.desc()).all()


def recount_use_case(
    *,
    db: Session,
    current_user: User,
    record_id: UUID,
    payload: RecountRequest,
) -> CountingRecord:
    """Team-leader recount; the database recomputes ``difference``."""
    record = db.query(CountingRecord).filter(CountingRecord.id == record_id).first()
    if not record:
        raise NotFoundError("COUNT_NOT_FOUND", "Counting record not found")

    session: CountingSession | None = record.session
    if session is None:
        raise NotFoundError("SESSION_NOT_FOUND", "Session not found")
    if current_user.id == session.worker_id or not can_access_session(current_user, session, session.worker):
        raise ForbiddenError("RECOUNT_ACCESS_DENIED", "Only the team leader or a superior can recount")

    record.qty_recounted_tl = payload.qty_recounted_tl
    if payload.reason_for_difference is not None:
        record.reason_for_difference = payload.reason_for_difference.strip() or None

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to save recount for record %s", record_id)
        raise DomainError(code="RECOUNT_SAVE_FAILED", http_status=500, message="Failed to save recount")
    db.refresh(record)

    append_audit_log(
        db,
        user_id=current_user.id,
        action="RECOUNT_BIN",
        details=f"Recounted bin {record.bin_no}: {payload.qty_recounted_tl} units",
    )
    return record
