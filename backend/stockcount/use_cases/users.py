"""User creation and approval within the vendor/team-leader/worker hierarchy."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import get_password_hash
from ..domain_errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from ..models import User
from ..schemas import UserCreate
from ..security import apply_user_scope, is_superior_of, require_user_with_role
from ..services.audit_trail import append_audit_log

logger = logging.getLogger(__name__)

# Which roles each creator may create.
CREATABLE_ROLES: dict[str, tuple[str, ...]] = {
    "admin": ("vendor", "team_leader", "worker"),
    "vendor": ("team_leader", "worker"),
    "team_leader": ("worker",),
    "worker": (),
}


def _resolve_parent_links(*, db: Session, creator: User, payload: UserCreate) -> tuple[UUID | None, UUID | None]:
    """Return (vendor_id, team_leader_id) for the new user, validated by role."""
    if payload.role == "vendor":
        return None, None

    if payload.role == "team_leader":
        if creator.role == "vendor":
            return creator.id, None
        if payload.vendor_id is None:
            raise InvalidInputError("VENDOR_REQUIRED", "vendor_id is required for a team leader")
        vendor = require_user_with_role(
            db, user_id=payload.vendor_id, role="vendor", code="VENDOR_NOT_FOUND", not_found="Vendor not found"
        )
        return vendor.id, None

    # worker
    if creator.role == "team_leader":
        return creator.vendor_id, creator.id
    if payload.team_leader_id is None:
        raise InvalidInputError("TEAM_LEADER_REQUIRED", "team_leader_id is required for a worker")
    team_leader = require_user_with_role(
        db,
        user_id=payload.team_leader_id,
        role="team_leader",
        code="TEAM_LEADER_NOT_FOUND",
        not_found="Team leader not found",
    )
    if creator.role == "vendor" and team_leader.vendor_id != creator.id:
        raise ForbiddenError("TEAM_LEADER_OUTSIDE_SCOPE", "Team leader belongs to another vendor")
    return team_leader.vendor_id, team_leader.id


def create_user_use_case(*, db: Session, current_user: User, payload: UserCreate) -> User:
    if payload.role not in CREATABLE_ROLES.get(current_user.role, ()):
        raise ForbiddenError(
            "ROLE_NOT_CREATABLE",
            f"{current_user.role} cannot create {payload.role} users",
        )

    user_id = payload.user_id.strip()
    if db.query(User).filter(User.user_id == user_id).first():
        raise ConflictError("USER_ALREADY_EXISTS", "User ID already exists")

    vendor_id, team_leader_id = _resolve_parent_links(db=db, creator=current_user, payload=payload)
    user = User(
        user_id=user_id,
        role=payload.role,
        password_hash=get_password_hash(payload.password),
        email=payload.email,
        warehouse_name=payload.warehouse_name,
        vendor_id=vendor_id,
        team_leader_id=team_leader_id,
        # Admin-created accounts are trusted; others wait for a superior's approval.
        is_approved=current_user.role == "admin",
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("USER_ALREADY_EXISTS", "User ID already exists")
    db.refresh(user)

    append_audit_log(
        db,
        user_id=current_user.id,
        action="CREATE_USER",
        details=f"Created {user.role} {user.user_id}",
    )
    return user


def set_approval_use_case(*, db: Session, current_user: User, user_id: UUID, approved: bool) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("USER_NOT_FOUND", "User not found")
    if not is_superior_of(current_user, user):
        raise ForbiddenError("APPROVAL_ACCESS_DENIED", "Only a superior can change approval")

    user.is_approved = approved
    db.commit()
    db.refresh(user)

    append_audit_log(
        db,
        user_id=current_user.id,
        action="APPROVE_USER" if approved else "REVOKE_USER",
        details=f"{'Approved' if approved else 'Revoked'} {user.user_id}",
    )
    return user


def list_users_use_case(*, db: Session, current_user: User, role: str | None = None) -> list[User]:
    query = apply_user_scope(db.query(User), current_user)
    if role:
        query = query.filter(User.role == role)
    return query.order_by(User.role, User.user_id).all()
