"""Security helpers: hierarchy predicates, scoping and access checks.

The admin → vendor → team_leader → worker hierarchy is a flat ``users`` table
with nullable ``vendor_id`` / ``team_leader_id`` parent links. Every check here
is an explicit predicate over those fields.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .domain_errors import NotFoundError
from .models import CountingSession, User


def require_user_with_role(db: Session, *, user_id: UUID, role: str, code: str, not_found: str) -> User:
    """Load a user by id that must carry ``role`` or raise 404."""
    user = db.query(User).filter(User.id == user_id, User.role == role).first()
    if not user:
        raise NotFoundError(code, not_found)
    return user


def is_superior_of(actor: User, user: User) -> bool:
    """True when ``actor`` sits above ``user`` in the hierarchy."""
    if actor.id == user.id:
        return False
    if actor.role == "admin":
        return user.role != "admin"
    if actor.role == "vendor":
        return user.role in ("team_leader", "worker") and user.vendor_id == actor.id
    if actor.role == "team_leader":
        return user.role == "worker" and user.team_leader_id == actor.id
    return False


def can_view_user(actor: User, user: User) -> bool:
    return actor.id == user.id or is_superior_of(actor, user)


def can_access_session(actor: User, session: CountingSession, worker: User | None) -> bool:
    """Session visibility: the worker, the session's team leader, the worker's superiors."""
    if actor.role == "admin":
        return True
    if session.worker_id == actor.id or session.team_leader_id == actor.id:
        return True
    return worker is not None and is_superior_of(actor, worker)


def apply_user_scope(query: Any, actor: User):
    """Restrict a ``User`` query to the actor and the actor's subordinates."""
    if actor.role == "admin":
        return query
    if actor.role == "vendor":
        return query.filter(or_(User.id == actor.id, User.vendor_id == actor.id))
    if actor.role == "team_leader":
        return query.filter(or_(User.id == actor.id, User.team_leader_id == actor.id))
    return query.filter(User.id == actor.id)


def visible_usernames_query(db: Session, actor: User):
    """Subquery of login names whose counting/performance rows the actor may read.

    Returns ``None`` for unrestricted (admin) access.
    """
    if actor.role == "admin":
        return None
    return apply_user_scope(db.query(User.user_id), actor)
