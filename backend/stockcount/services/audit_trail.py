"""Best-effort audit trail writer."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import AuditLog

logger = logging.getLogger(__name__)


def append_audit_log(
    db: Session,
    *,
    user_id: UUID | None,
    action: str,
    details: str,
    ip_address: str | None = None,
) -> bool:
    """Insert one audit row in its own commit.

    Call only after the primary mutation has committed: a failure here is
    rolled back, logged and swallowed. Returns whether the row was written.
    """
    try:
        db.add(
            AuditLog(
                user_id=user_id,
                action=action,
                details=details,
                ip_address=ip_address,
                created_at=datetime.now(timezone.utc),
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to write audit event action=%s user=%s", action, user_id)
        return False
    return True
