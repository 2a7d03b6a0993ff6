"""Bin master endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import BinBookQuantityUpdate, BinRecordCreate, BinRecordResponse
from ..use_cases.bin_master import create_bins_use_case, list_bins_use_case, update_book_quantity_use_case

router = APIRouter(prefix="/bin-master", tags=["bin-master"])


@router.get("", response_model=list[BinRecordResponse])
def get_bins(
    warehouse: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Bins of a warehouse (all warehouses when omitted)."""
    return [BinRecordResponse.model_validate(b) for b in list_bins_use_case(db=db, warehouse=warehouse)]


@router.post("", response_model=list[BinRecordResponse], status_code=201)
def import_bins(
    payload: list[BinRecordCreate],
    current_user: User = Depends(PermissionChecker("canManageBins")),
    db: Session = Depends(get_db),
):
    rows = create_bins_use_case(db=db, current_user=current_user, items=payload)
    return [BinRecordResponse.model_validate(r) for r in rows]


@router.patch("/{bin_id}", response_model=BinRecordResponse)
def update_book_quantity(
    bin_id: UUID,
    payload: BinBookQuantityUpdate,
    current_user: User = Depends(PermissionChecker("canManageBins")),
    db: Session = Depends(get_db),
):
    row = update_book_quantity_use_case(
        db=db,
        current_user=current_user,
        bin_id=bin_id,
        qty=payload.qty_as_per_books,
    )
    return BinRecordResponse.model_validate(row)
