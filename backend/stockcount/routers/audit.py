"""Audit log endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..models import AuditLog, User
from ..schemas import AuditLogResponse

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=list[AuditLogResponse])
def get_audit_logs(
    action: Optional[str] = None,
    user_id: Optional[UUID] = Query(None, alias="userId"),
    limit: int = Query(200, ge=1, le=1000),
    current_user: User = Depends(PermissionChecker("canViewAudit")),
    db: Session = Depends(get_db),
):
    """Get recent audit rows (optionally filtered by action or actor)."""
    query = db.query(AuditLog)

    if action:
        query = query.filter(AuditLog.action == action)
    if user_id:
        query = query.filter(AuditLog.user_id == user_id)

    rows = (
        query.order_by(AuditLog.created_at.desc())
        .limit(limit)
        .all()
    )
    return [AuditLogResponse.model_validate(row) for row in rows]
