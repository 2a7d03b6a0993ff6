"""User endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..models import User
from ..schemas import UserApprovalUpdate, UserCreate, UserResponse
from ..use_cases.users import create_user_use_case, list_users_use_case, set_approval_use_case

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
def get_users(
    role: Optional[str] = None,
    current_user: User = Depends(PermissionChecker("canManageUsers")),
    db: Session = Depends(get_db),
):
    """Users visible to the caller (self and subordinates)."""
    users = list_users_use_case(db=db, current_user=current_user, role=role)
    return [UserResponse.model_validate(u) for u in users]


@router.post("", response_model=UserResponse, status_code=201)
def create_user(
    payload: UserCreate,
    current_user: User = Depends(PermissionChecker("canManageUsers")),
    db: Session = Depends(get_db),
):
    user = create_user_use_case(db=db, current_user=current_user, payload=payload)
    return UserResponse.model_validate(user)


@router.post("/{user_id}/approval", response_model=UserResponse)
def set_user_approval(
    user_id: UUID,
    payload: UserApprovalUpdate,
    current_user: User = Depends(PermissionChecker("canManageUsers")),
    db: Session = Depends(get_db),
):
    user = set_approval_use_case(db=db, current_user=current_user, user_id=user_id, approved=payload.is_approved)
    return UserResponse.model_validate(user)
