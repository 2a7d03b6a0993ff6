"""Seed database with demo data."""
from stockcount.database import Base, SessionLocal, engine
from stockcount.models import BinRecord, User
from stockcount.auth import get_password_hash
import uuid


USERS_DATA = [
    {
        'id': uuid.UUID('00000000-0000-0000-0000-000000000101'),
        'user_id': 'admin',
        'password': 'admin123',
        'role': 'admin',
    },
    {
        'id': uuid.UUID('00000000-0000-0000-0000-000000000102'),
        'user_id': 'vendor1',
        'password': 'vendor123',
        'role': 'vendor',
        'email': 'vendor1@example.com',
    },
    {
        'id': uuid.UUID('00000000-0000-0000-0000-000000000103'),
        'user_id': 'tl1',
        'password': 'leader123',
        'role': 'team_leader',
        'warehouse_name': 'Warehouse A',
        'vendor_id': uuid.UUID('00000000-0000-0000-0000-000000000102'),
    },
    {
        'id': uuid.UUID('00000000-0000-0000-0000-000000000104'),
        'user_id': 'worker1',
        'password': 'worker123',
        'role': 'worker',
        'warehouse_name': 'Warehouse A',
        'vendor_id': uuid.UUID('00000000-0000-0000-0000-000000000102'),
        'team_leader_id': uuid.UUID('00000000-0000-0000-0000-000000000103'),
    },
]

BINS_DATA = [
    ('BIN001', 'Warehouse A', 100),
    ('BIN002', 'Warehouse A', 150),
    ('BIN003', 'Warehouse A', 200),
    ('BIN004', 'Warehouse B', 75),
    ('BIN005', 'Warehouse B', 125),
]


def seed(db=None):
    """Seed database with demo data. Returns the number of rows inserted."""
    owns_session = db is None
    if owns_session:
        db = SessionLocal()
    inserted = 0

    try:
        for user_data in USERS_DATA:
            data = dict(user_data)
            password = data.pop('password')
            if db.query(User).filter(User.user_id == data['user_id']).first():
                continue
            db.add(User(password_hash=get_password_hash(password), is_approved=True, **data))
            # Parent rows must exist before children reference them.
            db.flush()
            inserted += 1

        for bin_no, warehouse_name, qty in BINS_DATA:
            exists = (
                db.query(BinRecord)
                .filter(BinRecord.bin_no == bin_no, BinRecord.warehouse_name == warehouse_name)
                .first()
            )
            if exists:
                continue
            db.add(BinRecord(bin_no=bin_no, warehouse_name=warehouse_name, qty_as_per_books=qty))
            inserted += 1

        db.commit()
        print("✅ Database seeded successfully!")
        print("\nDemo users:")
        print("  admin/admin123 (Administrator)")
        print("  vendor1/vendor123 (Vendor)")
        print("  tl1/leader123 (Team leader, Warehouse A)")
        print("  worker1/worker123 (Worker, Warehouse A)")
        return inserted

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise
    finally:
        if owns_session:
            db.close()


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    seed()
