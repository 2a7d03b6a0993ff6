from __future__ import annotations

import os

# Settings are read at import time; never reach for PostgreSQL in tests.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DEBUG", "false")

from types import SimpleNamespace  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from stockcount import models  # noqa: E402,F401
from stockcount.auth import create_access_token, get_password_hash  # noqa: E402
from stockcount.database import Base, get_db  # noqa: E402
from stockcount.main import app  # noqa: E402
from stockcount.models import BinRecord, User  # noqa: E402
from stockcount.routers import auth as auth_router  # noqa: E402


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def fake_rate_limit_counter(monkeypatch):
    counters: dict[str, int] = {}

    def _incr(key: str, ttl_seconds: int) -> tuple[int, int]:
        counters[key] = counters.get(key, 0) + 1
        return counters[key], ttl_seconds

    monkeypatch.setattr(auth_router, "_incr_with_ttl", _incr)
    return counters


@pytest.fixture()
def client(session_factory):
    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_db, None)


def _make_user(db, *, user_id, role, password="secret123", approved=True, vendor=None, team_leader=None, warehouse=None):
    user = User(
        id=uuid4(),
        user_id=user_id,
        role=role,
        password_hash=get_password_hash(password),
        is_approved=approved,
        warehouse_name=warehouse,
        vendor_id=vendor.id if vendor is not None else None,
        team_leader_id=team_leader.id if team_leader is not None else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def make_user(db):
    def _inner(**kwargs):
        return _make_user(db, **kwargs)

    return _inner


@pytest.fixture()
def org(db):
    """Admin, one vendor, one team leader and two workers under them."""
    admin = _make_user(db, user_id="admin", role="admin")
    vendor = _make_user(db, user_id="vendor1", role="vendor")
    leader = _make_user(db, user_id="tl1", role="team_leader", vendor=vendor, warehouse="Warehouse A")
    worker = _make_user(
        db, user_id="worker1", role="worker", vendor=vendor, team_leader=leader, warehouse="Warehouse A"
    )
    worker2 = _make_user(
        db, user_id="worker2", role="worker", vendor=vendor, team_leader=leader, warehouse="Warehouse A"
    )
    return SimpleNamespace(admin=admin, vendor=vendor, leader=leader, worker=worker, worker2=worker2)


@pytest.fixture()
def bins(db):
    rows = [
        BinRecord(bin_no="BIN001", warehouse_name="Warehouse A", qty_as_per_books=100),
        BinRecord(bin_no="BIN002", warehouse_name="Warehouse A", qty_as_per_books=150),
        BinRecord(bin_no="BIN004", warehouse_name="Warehouse B", qty_as_per_books=75),
    ]
    db.add_all(rows)
    db.commit()
    return rows


def auth_headers(user) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def headers_for():
    return auth_headers
