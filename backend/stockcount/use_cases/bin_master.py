"""Bin catalog reads and admin maintenance."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain_errors import ConflictError, NotFoundError
from ..models import BinRecord, User
from ..schemas import BinRecordCreate
from ..services.audit_trail import append_audit_log


def list_bins_use_case(*, db: Session, warehouse: str | None = None) -> list[BinRecord]:
    query = db.query(BinRecord)
    if warehouse:
        query = query.filter(BinRecord.warehouse_name == warehouse)
    return query.order_by(BinRecord.warehouse_name, BinRecord.bin_no).all()


def create_bins_use_case(*, db: Session, current_user: User, items: list[BinRecordCreate]) -> list[BinRecord]:
    """Bulk import; the whole batch is rejected on any duplicate (bin_no, warehouse_name)."""
    keys = [(item.bin_no.strip(), item.warehouse_name.strip()) for item in items]
    duplicates_in_batch = sorted({key for key in keys if keys.count(key) > 1})
    if duplicates_in_batch:
        raise ConflictError(
            "BIN_ALREADY_EXISTS",
            "Duplicate bins in import",
            details={"bins": [f"{w}/{b}" for b, w in duplicates_in_batch]},
        )

    key_set = set(keys)
    existing = [
        (row.bin_no, row.warehouse_name)
        for row in db.query(BinRecord).filter(BinRecord.bin_no.in_([b for b, _ in keys])).all()
        if (row.bin_no, row.warehouse_name) in key_set
    ]
    if existing:
        raise ConflictError(
            "BIN_ALREADY_EXISTS",
            "Bins already exist",
            details={"bins": sorted(f"{w}/{b}" for b, w in existing)},
        )

    rows = [
        BinRecord(bin_no=bin_no, warehouse_name=warehouse_name, qty_as_per_books=item.qty_as_per_books)
        for (bin_no, warehouse_name), item in zip(keys, items)
    ]
    db.add_all(rows)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("BIN_ALREADY_EXISTS", "Bins already exist")
    for row in rows:
        db.refresh(row)

    append_audit_log(
        db,
        user_id=current_user.id,
        action="IMPORT_BINS",
        details=f"Imported {len(rows)} bins",
    )
    return rows


def update_book_quantity_use_case(*, db: Session, current_user: User, bin_id: UUID, qty: int) -> BinRecord:
    row = db.query(BinRecord).filter(BinRecord.id == bin_id).first()
    if not row:
        raise NotFoundError("BIN_NOT_FOUND", "Bin not found")

    old_qty = row.qty_as_per_books
    row.qty_as_per_books = qty
    db.commit()
    db.refresh(row)

    append_audit_log(
        db,
        user_id=current_user.id,
        action="UPDATE_BOOK_QTY",
        details=f"Bin {row.warehouse_name}/{row.bin_no}: {old_qty} -> {qty}",
    )
    return row
